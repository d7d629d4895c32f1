from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from echolink.common.error_log import ErrorLog
from echolink.net.channel import RecvError, SendError
from echolink.net.registry import TaskRegistry
from echolink.net.serializer import Transform, encode_transforms

logger = logging.getLogger(__name__)

SnapshotSource = Callable[[], Iterable[Transform]]


class SendTimer:
    """Repeating timer fed with frame dt. interval <= 0 fires on every tick."""

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = float(interval)
        self.elapsed = 0.0

    def reset(self) -> None:
        self.elapsed = 0.0

    def tick(self, dt: float) -> bool:
        if self.interval <= 0.0:
            return True
        self.elapsed += max(0.0, float(dt))
        if self.elapsed < self.interval:
            return False
        # One firing per tick at most; a long frame must not trigger a burst.
        self.elapsed = 0.0
        return True


@dataclass
class PumpReport:
    send_cycle: bool = False
    sent: int = 0
    would_block: int = 0
    send_errors: int = 0
    received: int = 0
    recv_errors: int = 0
    dropped_slots: int = 0


class Pump:
    def __init__(
        self,
        registry: TaskRegistry,
        timer: SendTimer,
        *,
        error_log: ErrorLog,
        drop_on_fault: bool = False,
    ) -> None:
        self.registry = registry
        self.timer = timer
        self.error_log = error_log
        self.drop_on_fault = bool(drop_on_fault)

    def tick(self, dt: float, snapshot_source: SnapshotSource) -> PumpReport:
        report = PumpReport()
        if self.timer.tick(dt):
            self._send_cycle(snapshot_source, report)
        self._recv_cycle(report)
        return report

    def _send_cycle(self, snapshot_source: SnapshotSource, report: PumpReport) -> None:
        live = list(self.registry.live_channels())
        if not live:
            return
        report.send_cycle = True
        logger.info("Time to send data again...")
        for slot, channel in live:
            transforms = list(snapshot_source())
            logger.debug("Slot %d sending %d transforms: %r", slot, len(transforms), transforms)
            payload = encode_transforms(transforms)
            try:
                ok = channel.send(payload)
            except SendError as e:
                report.send_errors += 1
                self.error_log.log_message(context=f"net.send.slot{slot}", message=f"Could not send the message: {e}")
                self._fault(slot, report)
                continue
            if ok:
                report.sent += 1
                logger.info("Slot %d: data successfully sent (%d bytes)", slot, len(payload))
            else:
                report.would_block += 1

    def _recv_cycle(self, report: PumpReport) -> None:
        for slot, channel in list(self.registry.live_channels()):
            while True:
                try:
                    msg = channel.receive_one()
                except RecvError as e:
                    report.recv_errors += 1
                    self.error_log.log_message(context=f"net.recv.slot{slot}", message=f"error receiving: {e}")
                    self._fault(slot, report)
                    break
                if msg is None:
                    break
                report.received += 1
                logger.info("Slot %d received message %s", slot, msg.describe())
                if msg.is_close and self.drop_on_fault:
                    self._fault(slot, report)
                    break

    def _fault(self, slot: int, report: PumpReport) -> None:
        if not self.drop_on_fault:
            return
        if self.registry.remove(slot):
            report.dropped_slots += 1
            logger.info("Slot %d dropped after transport fault", slot)
