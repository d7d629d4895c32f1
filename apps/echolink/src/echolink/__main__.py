from __future__ import annotations

import argparse
import logging

from echolink.app_config import RunConfig, default_endpoint, validate_endpoint


def _endpoint_arg(value: str) -> str:
    try:
        return validate_endpoint(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="echolink", description="echolink demo runner")
    parser.add_argument(
        "--endpoint",
        type=_endpoint_arg,
        default=default_endpoint(),
        help="WebSocket echo endpoint (ws:// or wss://). Defaults to $ECHOLINK_ENDPOINT or the public echo server.",
    )
    parser.add_argument(
        "--send-interval",
        type=float,
        default=1.0,
        help="Seconds between transform snapshot sends (0 = every frame).",
    )
    parser.add_argument("--connect-timeout", type=float, default=10.0, help="Handshake timeout in seconds.")
    parser.add_argument("--max-workers", type=int, default=2, help="Worker threads for handshakes.")
    parser.add_argument(
        "--drop-on-fault",
        action="store_true",
        help="Remove a connection after a send/receive fault (default keeps it and retries next frame).",
    )
    parser.add_argument(
        "--smoke",
        action="store_true",
        help="Run briefly and exit (for quick verification).",
    )
    parser.add_argument(
        "--headless",
        dest="headless_ticks",
        type=int,
        default=0,
        metavar="TICKS",
        help="Run TICKS frames without a window: connect once, pump a static scene, exit.",
    )
    parser.add_argument("--log-level", default="INFO", help="Python logging level (DEBUG shows snapshot contents).")
    parser.add_argument("--error-log", dest="error_log_path", default=None, help="Append network errors to this file.")
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        endpoint=str(args.endpoint),
        send_interval=max(0.0, float(args.send_interval)),
        connect_timeout=max(0.1, float(args.connect_timeout)),
        max_workers=max(1, int(args.max_workers)),
        drop_on_fault=bool(args.drop_on_fault),
        smoke=bool(args.smoke),
        headless_ticks=max(0, int(args.headless_ticks)),
        log_level=str(args.log_level).upper(),
        error_log_path=args.error_log_path,
    )


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    cfg = config_from_args(args)
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if cfg.headless_ticks > 0:
        from echolink.headless import run_headless

        run_headless(cfg)
        return

    from echolink.app import run

    run(cfg)


if __name__ == "__main__":
    main()
