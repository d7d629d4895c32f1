from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Executor, Future
from dataclasses import dataclass
from typing import Callable

import websocket

from echolink.net.channel import SocketChannel

logger = logging.getLogger(__name__)


class ConnectionSetupError(Exception):
    def __init__(self, endpoint: str, cause: BaseException) -> None:
        super().__init__(f"{endpoint}: {type(cause).__name__}: {cause}")
        self.endpoint = str(endpoint)
        self.cause = cause


@dataclass(frozen=True)
class ConnectOk:
    channel: SocketChannel


@dataclass(frozen=True)
class ConnectErr:
    error: ConnectionSetupError


ConnectResult = ConnectOk | ConnectErr
Connector = Callable[..., SocketChannel]


def connect_websocket(endpoint: str, *, timeout: float = 10.0) -> SocketChannel:
    """Blocking handshake. Only ever run this on a worker thread."""

    ws = websocket.create_connection(endpoint, timeout=float(timeout))
    # Plain and TLS sockets both expose setblocking(); everything after the
    # handshake must never stall the frame loop.
    ws.sock.setblocking(False)
    logger.info("Connected successfully to %s", endpoint)
    return SocketChannel(ws)


class DaemonThreadExecutor(Executor):
    """
    Runs each submitted call on its own daemon thread, at most `max_workers` at once.

    Interpreter exit does not join daemon threads, so a handshake still blocked in
    connect cannot hold the process open after the window closes. The abandoned
    thread ends on its own once the connect timeout expires.
    """

    def __init__(self, max_workers: int = 2, *, name_prefix: str = "echolink-connect") -> None:
        self._slots = threading.BoundedSemaphore(max(1, int(max_workers)))
        self._name_prefix = str(name_prefix)
        self._lock = threading.Lock()
        self._started = 0
        self._work: list[tuple[threading.Thread, Future]] = []
        self._shutdown = False

    def submit(self, fn, /, *args, **kwargs) -> Future:
        fut: Future = Future()

        def run() -> None:
            with self._slots:
                if not fut.set_running_or_notify_cancel():
                    return
                try:
                    result = fn(*args, **kwargs)
                except BaseException as e:
                    fut.set_exception(e)
                else:
                    fut.set_result(result)

        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule new futures after shutdown")
            self._started += 1
            th = threading.Thread(target=run, name=f"{self._name_prefix}-{self._started}", daemon=True)
            self._work = [(t, f) for t, f in self._work if not f.done()]
            self._work.append((th, fut))
        th.start()
        return fut

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        with self._lock:
            self._shutdown = True
            work = list(self._work)
        if cancel_futures:
            # Only calls still waiting for a worker slot can be cancelled.
            for _th, fut in work:
                fut.cancel()
        if wait:
            for th, _fut in work:
                th.join()


class ConnectionTask:
    """
    Background handshake for one slot.

    The worker hands its outcome back through the future only; poll() is the one
    place it is looked at, and it never waits.
    """

    def __init__(self, *, endpoint: str, future: Future) -> None:
        self.endpoint = str(endpoint)
        self._future = future
        self._consumed = False

    @classmethod
    def start(
        cls,
        endpoint: str,
        *,
        executor: Executor,
        connector: Connector = connect_websocket,
        timeout: float = 10.0,
    ) -> "ConnectionTask":
        def worker() -> ConnectResult:
            try:
                return ConnectOk(channel=connector(endpoint, timeout=timeout))
            except Exception as e:
                return ConnectErr(error=ConnectionSetupError(endpoint, e))

        return cls(endpoint=endpoint, future=executor.submit(worker))

    @property
    def consumed(self) -> bool:
        return self._consumed

    def discard(self) -> None:
        """Give up on the result; a handshake that still succeeds gets closed."""

        if self._consumed:
            return
        self._consumed = True

        def _close_late(fut: Future) -> None:
            if fut.cancelled() or fut.exception() is not None:
                return
            res = fut.result()
            if isinstance(res, ConnectOk):
                res.channel.close()

        self._future.add_done_callback(_close_late)

    def poll(self) -> ConnectResult | None:
        if self._consumed:
            raise RuntimeError("Connection task result was already taken")
        if not self._future.done():
            return None
        self._consumed = True
        if self._future.cancelled():
            return ConnectErr(error=ConnectionSetupError(self.endpoint, CancelledError("handshake was cancelled")))
        exc = self._future.exception()
        if exc is not None:
            return ConnectErr(error=ConnectionSetupError(self.endpoint, exc))
        return self._future.result()
