from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from echolink.common.error_log import ErrorLog
from echolink.net.channel import SocketChannel
from echolink.net.task import ConnectErr, ConnectionTask, ConnectOk

logger = logging.getLogger(__name__)

SlotId = int

STATE_PENDING = "pending"
STATE_LIVE = "live"


@dataclass(frozen=True)
class Pending:
    task: ConnectionTask


@dataclass(frozen=True)
class Live:
    channel: SocketChannel


SlotState = Pending | Live


@dataclass(frozen=True)
class SlotEvent:
    slot: SlotId
    kind: str  # "promoted" | "failed"
    detail: str = ""


class TaskRegistry:
    """
    Slot table: each slot id maps to exactly one of Pending/Live, absent means empty.

    Only the frame thread touches the table. Promotion swaps the entry value in a
    single assignment so a slot is never seen with both a task and a channel, or
    with neither while its handshake is still in flight.
    """

    def __init__(self, *, error_log: ErrorLog | None = None) -> None:
        self._slots: dict[SlotId, SlotState] = {}
        self._next_id: SlotId = 1
        self._error_log = error_log

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, slot: object) -> bool:
        return slot in self._slots

    def open(self, task: ConnectionTask) -> SlotId:
        slot = self._next_id
        self._next_id += 1
        self._slots[slot] = Pending(task=task)
        return slot

    def state(self, slot: SlotId) -> str | None:
        st = self._slots.get(slot)
        if isinstance(st, Pending):
            return STATE_PENDING
        if isinstance(st, Live):
            return STATE_LIVE
        return None

    def pending_count(self) -> int:
        return sum(1 for st in self._slots.values() if isinstance(st, Pending))

    def live_count(self) -> int:
        return sum(1 for st in self._slots.values() if isinstance(st, Live))

    def live_channels(self) -> Iterator[tuple[SlotId, SocketChannel]]:
        # Snapshot so the pump may remove slots while iterating.
        for slot, st in list(self._slots.items()):
            if isinstance(st, Live):
                yield slot, st.channel

    def poll(self) -> list[SlotEvent]:
        events: list[SlotEvent] = []
        for slot, st in list(self._slots.items()):
            if not isinstance(st, Pending):
                continue
            result = st.task.poll()
            if result is None:
                continue
            if isinstance(result, ConnectOk):
                self._slots[slot] = Live(channel=result.channel)
                logger.info("Slot %d connected to %s", slot, st.task.endpoint)
                events.append(SlotEvent(slot=slot, kind="promoted", detail=st.task.endpoint))
            elif isinstance(result, ConnectErr):
                del self._slots[slot]
                self._report_failure(slot, result)
                events.append(SlotEvent(slot=slot, kind="failed", detail=str(result.error)))
        return events

    def _report_failure(self, slot: SlotId, result: ConnectErr) -> None:
        if self._error_log is not None:
            self._error_log.log_message(context="net.connect", message=f"Slot {slot} connection failed with: {result.error}")
        else:
            logger.warning("Slot %d connection failed with: %s", slot, result.error)

    def remove(self, slot: SlotId) -> bool:
        st = self._slots.pop(slot, None)
        if st is None:
            return False
        if isinstance(st, Live):
            st.channel.close()
        else:
            st.task.discard()
        return True

    def close_all(self) -> None:
        for slot in list(self._slots):
            self.remove(slot)
