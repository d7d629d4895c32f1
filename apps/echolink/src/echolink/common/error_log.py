from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ErrorItem:
    ts: float
    context: str
    message: str
    count: int = 1

    def summary_line(self) -> str:
        base = f"{self.context}: {self.message}".strip()
        if self.count > 1:
            base += f" (x{self.count})"
        return base


class ErrorLog:
    """
    Recent network failures for the overlay, mirrored to the warning log.

    A channel that keeps faulting reports the same error every frame. The feed
    folds consecutive identical entries into one with a repeat count; every
    occurrence still goes to the warning log and the optional file.
    """

    def __init__(self, *, max_items: int = 30, persist_path: Path | None = None) -> None:
        self._max_items = max(1, int(max_items))
        self._items: list[ErrorItem] = []
        self._last_key: tuple[str, str] | None = None
        self._persist_path = Path(persist_path) if persist_path is not None else None

    def items(self) -> list[ErrorItem]:
        return list(self._items)

    def last(self) -> ErrorItem | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()
        self._last_key = None

    def log_message(self, *, context: str, message: str) -> None:
        context = str(context or "unknown")
        message = str(message or "").strip() or "Unknown error"
        self._append(context=context, message=message)
        logger.warning("%s: %s", context, message)
        self._persist(context=context, message=message)

    def log_exception(self, *, context: str, exc: BaseException) -> None:
        self.log_message(context=context, message=f"{type(exc).__name__}: {exc}")

    def _append(self, *, context: str, message: str) -> None:
        ts = time.time()
        key = (context, message)
        if self._items and self._last_key == key:
            self._items[-1].ts = ts
            self._items[-1].count += 1
            return

        self._items.append(ErrorItem(ts=ts, context=context, message=message))
        self._last_key = key
        if len(self._items) > self._max_items:
            self._items = self._items[-self._max_items :]

    def _persist(self, *, context: str, message: str) -> None:
        p = self._persist_path
        if p is None:
            return
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            ts = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
            with p.open("a", encoding="utf-8") as fh:
                fh.write(f"[{ts}] {context}: {message}\n")
        except OSError:
            logger.debug("Could not append to %s", p, exc_info=True)
