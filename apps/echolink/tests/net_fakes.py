from __future__ import annotations

from collections import deque
from concurrent.futures import Future

from websocket import ABNF, continuous_frame

from echolink.net.task import ConnectErr, ConnectOk, ConnectionSetupError


class FakeSock:
    """Scripted non-blocking socket: each send() consumes one step (byte budget or exception)."""

    def __init__(self, steps: list | None = None) -> None:
        self.steps: deque = deque(steps or [])
        self.written = bytearray()
        self.blocking: bool | None = None

    def setblocking(self, flag: bool) -> None:
        self.blocking = bool(flag)

    def send(self, data: bytes) -> int:
        step = self.steps.popleft() if self.steps else None
        if isinstance(step, BaseException):
            raise step
        n = len(data) if step is None else min(int(step), len(data))
        self.written += data[:n]
        return n


class FakeWs:
    """Stands in for websocket.WebSocket: scripted recv_frame() results, FakeSock underneath.

    Inbound items are ABNF frames, (opcode, data) pairs for single final frames, or
    exceptions to raise.
    """

    def __init__(self, *, sock: FakeSock | None = None, inbound: list | None = None) -> None:
        self.sock = sock if sock is not None else FakeSock()
        self.inbound: deque = deque(inbound or [])
        self.cont_frame = continuous_frame(False, False)
        self.closed = False

    @staticmethod
    def get_mask_key(n: int) -> bytes:
        return b"\x00" * n

    def queue_binary(self, data: bytes) -> None:
        self.inbound.append((ABNF.OPCODE_BINARY, data))

    def queue_text(self, text: str) -> None:
        self.inbound.append((ABNF.OPCODE_TEXT, text.encode("utf-8")))

    def queue_ping(self, data: bytes = b"") -> None:
        self.inbound.append((ABNF.OPCODE_PING, data))

    def recv_frame(self) -> ABNF:
        if not self.inbound:
            raise BlockingIOError(11, "Resource temporarily unavailable")
        item = self.inbound.popleft()
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, tuple):
            opcode, data = item
            return ABNF(fin=1, opcode=opcode, data=data)
        return item

    def close(self, **_kwargs) -> None:
        self.closed = True


class ScriptedTask:
    """Registry-side task double: None for `pending_polls` polls, then the given result."""

    def __init__(self, result, *, pending_polls: int = 0, endpoint: str = "ws://echo.test/") -> None:
        self.endpoint = endpoint
        self._result = result
        self._left = int(pending_polls)
        self.polls = 0
        self.discarded = False

    def poll(self):
        self.polls += 1
        if self._left > 0:
            self._left -= 1
            return None
        return self._result

    def discard(self) -> None:
        self.discarded = True


class ManualExecutor:
    """Executor that only runs submitted work when the test says so."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Future, object]] = []

    def submit(self, fn, *args, **kwargs) -> Future:
        fut: Future = Future()
        self.jobs.append((fut, lambda: fn(*args, **kwargs)))
        return fut

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        if cancel_futures:
            for fut, _call in self.jobs:
                fut.cancel()
            self.jobs = []

    def run_all(self) -> None:
        jobs, self.jobs = self.jobs, []
        for fut, call in jobs:
            try:
                fut.set_result(call())
            except BaseException as e:  # noqa: BLE001 - mirror Future semantics
                fut.set_exception(e)


def ok_result(channel) -> ConnectOk:
    return ConnectOk(channel=channel)


def err_result(message: str = "refused") -> ConnectErr:
    return ConnectErr(error=ConnectionSetupError("ws://echo.test/", ConnectionRefusedError(message)))
