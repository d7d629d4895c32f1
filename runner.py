#!/usr/bin/env python3
from __future__ import annotations

import argparse
import os
from pathlib import Path
import shlex
import subprocess
import sys
from typing import Iterable


REPO_ROOT = Path(__file__).resolve().parent
APPS_DIR = REPO_ROOT / "apps"


def _app_dir(app: str) -> Path:
    return (APPS_DIR / app).resolve()


def _python_for(app_dir: Path) -> str:
    for venv_py in (app_dir / ".venv" / "bin" / "python", REPO_ROOT / ".venv" / "bin" / "python"):
        if venv_py.exists() and os.access(venv_py, os.X_OK):
            return str(venv_py)
    return "python3"


def _with_pythonpath(env: dict[str, str], app_dir: Path) -> dict[str, str]:
    """Put apps/<app>/src on PYTHONPATH so apps run without `pip install -e`."""

    app_src = app_dir / "src"
    if not app_src.is_dir():
        return env
    cur = env.get("PYTHONPATH", "")
    out = dict(env)
    out["PYTHONPATH"] = os.pathsep.join([str(app_src)] + ([cur] if cur else []))
    return out


def _list_apps() -> list[str]:
    return sorted(p.name for p in APPS_DIR.iterdir() if p.is_dir() and not p.name.startswith("."))


def cmd_list_apps(_args: argparse.Namespace) -> int:
    if not APPS_DIR.is_dir():
        print("apps/ folder not found", file=sys.stderr)
        return 2
    for a in _list_apps():
        print(a)
    return 0


def cmd_runapp(args: argparse.Namespace) -> int:
    app = str(args.app)
    app_dir = _app_dir(app)
    if not app_dir.is_dir():
        print(f"Unknown app: {app} (expected folder: {app_dir})", file=sys.stderr)
        return 2

    # Accept --print-cmd after <app> too: `./runner.py echolink --print-cmd --headless 60`.
    app_args = list(args.app_args or [])
    print_cmd = bool(args.print_cmd)
    if "--print-cmd" in app_args:
        app_args.remove("--print-cmd")
        print_cmd = True

    cmd = [_python_for(app_dir), "-m", str(args.module or app), *app_args]
    if print_cmd:
        print("+", " ".join(shlex.quote(x) for x in cmd))
        return 0

    env = _with_pythonpath(dict(os.environ), app_dir)
    return int(subprocess.run(cmd, cwd=str(app_dir), env=env).returncode)


def cmd_test(args: argparse.Namespace) -> int:
    app_dir = _app_dir(str(args.app))
    tests = app_dir / "tests"
    if not tests.is_dir():
        print(f"No tests/ folder for app: {args.app}", file=sys.stderr)
        return 2
    cmd = [_python_for(app_dir), "-m", "pytest", str(tests), *(args.pytest_args or [])]
    env = _with_pythonpath(dict(os.environ), app_dir)
    return int(subprocess.run(cmd, cwd=str(REPO_ROOT), env=env).returncode)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="runner.py",
        description="echolink repo helper (run apps and their tests).",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("list", help="List apps under apps/.")
    sp.set_defaults(fn=cmd_list_apps)

    sp = sub.add_parser("runapp", help="Run an app module from apps/<app>/, passing through arguments.")
    sp.add_argument("app", help="App folder name under apps/ (e.g. echolink).")
    sp.add_argument("--module", default=None, help="Python module to run (default: the app name).")
    sp.add_argument("--print-cmd", action="store_true", help="Print the resolved command and exit.")
    sp.add_argument("app_args", nargs=argparse.REMAINDER, help="Arguments forwarded to the app.")
    sp.set_defaults(fn=cmd_runapp)

    sp = sub.add_parser("test", help="Run pytest for apps/<app>/tests.")
    sp.add_argument("app", help="App folder name under apps/.")
    sp.add_argument("pytest_args", nargs=argparse.REMAINDER, help="Extra pytest arguments.")
    sp.set_defaults(fn=cmd_test)

    return p


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    raw = list(argv) if argv is not None else sys.argv[1:]
    # `./runner.py echolink --headless 60` is shorthand for `./runner.py runapp echolink --headless 60`.
    if raw and not raw[0].startswith("-") and raw[0] not in {"list", "runapp", "test"}:
        raw = ["runapp", *raw]
    args = parser.parse_args(raw)
    return int(args.fn(args))


if __name__ == "__main__":
    raise SystemExit(main())
