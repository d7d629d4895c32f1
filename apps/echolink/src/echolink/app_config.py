from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse

DEFAULT_ENDPOINT = "wss://echo.websocket.org/"
ENDPOINT_ENV = "ECHOLINK_ENDPOINT"


@dataclass(frozen=True)
class RunConfig:
    # Fixed per run; the core never takes an endpoint from gameplay input.
    endpoint: str = DEFAULT_ENDPOINT
    # Seconds between snapshot sends. 0 sends on every frame.
    send_interval: float = 1.0
    # Handshake timeout for the worker thread (DNS + TCP + TLS + upgrade).
    connect_timeout: float = 10.0
    # Worker threads available for concurrent handshakes.
    max_workers: int = 2
    # Remove a slot after a steady-state send/receive fault instead of retrying next frame.
    drop_on_fault: bool = False
    smoke: bool = False
    # When > 0, run this many ticks without a window instead of the Panda3D demo.
    headless_ticks: int = 0
    log_level: str = "INFO"
    # Optional file that receives every new network error line.
    error_log_path: str | None = None


def default_endpoint() -> str:
    return os.environ.get(ENDPOINT_ENV, "").strip() or DEFAULT_ENDPOINT


def validate_endpoint(url: str) -> str:
    u = str(url or "").strip()
    parsed = urlparse(u)
    if parsed.scheme not in ("ws", "wss"):
        raise ValueError(f"Endpoint must use ws:// or wss://, got {u!r}")
    if not parsed.hostname:
        raise ValueError(f"Endpoint has no host: {u!r}")
    return u
