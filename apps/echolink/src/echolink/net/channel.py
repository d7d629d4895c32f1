from __future__ import annotations

import errno
import ssl
from dataclasses import dataclass

from websocket import ABNF


class ChannelError(Exception):
    pass


class SendError(ChannelError):
    pass


class RecvError(ChannelError):
    pass


_WOULD_BLOCK_ERRNOS = {errno.EAGAIN, errno.EWOULDBLOCK}


def _as_bytes(data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data or b"")


def is_would_block(exc: BaseException) -> bool:
    """True when a non-blocking socket operation just had nothing to do right now."""

    if isinstance(exc, (BlockingIOError, ssl.SSLWantReadError, ssl.SSLWantWriteError)):
        return True
    return isinstance(exc, OSError) and exc.errno in _WOULD_BLOCK_ERRNOS


@dataclass(frozen=True)
class Message:
    opcode: int
    data: bytes

    @property
    def is_text(self) -> bool:
        return self.opcode == ABNF.OPCODE_TEXT

    @property
    def is_binary(self) -> bool:
        return self.opcode == ABNF.OPCODE_BINARY

    @property
    def is_close(self) -> bool:
        return self.opcode == ABNF.OPCODE_CLOSE

    def describe(self, *, limit: int = 64) -> str:
        if self.is_text:
            text = self.data.decode("utf-8", errors="replace")
            if len(text) > limit:
                text = text[:limit] + "..."
            return f"text {text!r}"
        if self.is_close:
            return "close"
        head = self.data[:limit].hex()
        if len(self.data) > limit:
            head += "..."
        return f"binary[{len(self.data)}] {head}"


class SocketChannel:
    """
    One established WebSocket whose socket is already in non-blocking mode.

    Frames are written straight to the socket so a short write can be resumed on
    the next send instead of leaving half a frame on the wire.
    """

    def __init__(self, ws) -> None:
        self._ws = ws
        self._unflushed = b""
        self._close_replied = False

    @property
    def ws(self):
        return self._ws

    @property
    def has_unflushed(self) -> bool:
        return bool(self._unflushed)

    def send(self, payload: bytes) -> bool:
        """Returns False on would-block; the payload is then dropped for this cycle.

        Raises SendError for anything else.
        """

        if self._unflushed and not self._flush():
            return False

        wire = self._encode(bytes(payload), ABNF.OPCODE_BINARY)
        self._unflushed = wire
        if self._flush():
            return True
        if len(self._unflushed) == len(wire):
            # Nothing of this frame reached the socket: drop it rather than queue it.
            self._unflushed = b""
            return False
        # A started frame counts as sent; its tail goes out before the next one.
        return True

    def _encode(self, data: bytes, opcode: int) -> bytes:
        frame = ABNF.create_frame(data, opcode)
        mask_key = getattr(self._ws, "get_mask_key", None)
        if mask_key is not None:
            frame.get_mask_key = mask_key
        return frame.format()

    def _reply(self, data: bytes, opcode: int) -> None:
        # Control replies share the tail buffer so they never cut into a data frame.
        self._unflushed += self._encode(data, opcode)
        try:
            self._flush()
        except SendError as e:
            raise RecvError(str(e)) from e

    def _flush(self) -> bool:
        sock = getattr(self._ws, "sock", None)
        if sock is None:
            self._unflushed = b""
            raise SendError("Socket is already closed")
        while self._unflushed:
            try:
                n = sock.send(self._unflushed)
            except Exception as e:
                if is_would_block(e):
                    return False
                self._unflushed = b""
                raise SendError(f"{type(e).__name__}: {e}") from e
            if not n:
                return False
            self._unflushed = self._unflushed[n:]
        return True

    def receive_one(self) -> Message | None:
        """
        One data or close message, or None when nothing complete is buffered.

        Frames are read one at a time so ping and close replies go through the
        same tail buffer as outgoing data instead of the codec's blocking send.
        """

        if self._unflushed:
            try:
                self._flush()
            except SendError as e:
                raise RecvError(str(e)) from e
        while True:
            try:
                frame = self._ws.recv_frame()
            except Exception as e:
                if is_would_block(e):
                    return None
                raise RecvError(f"{type(e).__name__}: {e}") from e
            if frame is None:
                raise RecvError("Not a valid frame")

            op = frame.opcode
            if op in (ABNF.OPCODE_TEXT, ABNF.OPCODE_BINARY, ABNF.OPCODE_CONT):
                cont = self._ws.cont_frame
                try:
                    cont.validate(frame)
                    cont.add(frame)
                    if not cont.is_fire(frame):
                        continue
                    opcode, frame = cont.extract(frame)
                except Exception as e:
                    raise RecvError(f"{type(e).__name__}: {e}") from e
                return Message(opcode=int(opcode), data=_as_bytes(frame.data))
            if op == ABNF.OPCODE_PING:
                self._reply(_as_bytes(frame.data), ABNF.OPCODE_PONG)
                continue
            if op == ABNF.OPCODE_PONG:
                continue
            if op == ABNF.OPCODE_CLOSE:
                data = _as_bytes(frame.data)
                if not self._close_replied:
                    self._close_replied = True
                    self._reply(data[:2], ABNF.OPCODE_CLOSE)
                return Message(opcode=ABNF.OPCODE_CLOSE, data=data)
            raise RecvError(f"Unexpected opcode {op}")

    def close(self) -> None:
        try:
            self._ws.close(timeout=0)
        except Exception:
            pass
