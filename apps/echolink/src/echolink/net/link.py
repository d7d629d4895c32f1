from __future__ import annotations

import logging
from pathlib import Path

from echolink.app_config import RunConfig
from echolink.common.error_log import ErrorLog
from echolink.net.pump import Pump, PumpReport, SendTimer, SnapshotSource
from echolink.net.registry import SlotEvent, SlotId, TaskRegistry
from echolink.net.task import ConnectionTask, Connector, DaemonThreadExecutor, connect_websocket

logger = logging.getLogger(__name__)


class EchoLink:
    """
    Frame-side entry point: trigger() starts a handshake, tick() runs once per frame.

    tick() polls handshakes before pumping, so a slot promoted this frame is
    already served by the same frame's pump.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        send_interval: float = 1.0,
        connect_timeout: float = 10.0,
        max_workers: int = 2,
        drop_on_fault: bool = False,
        error_log: ErrorLog | None = None,
        connector: Connector = connect_websocket,
    ) -> None:
        self.endpoint = str(endpoint)
        self.connect_timeout = float(connect_timeout)
        self.error_log = error_log if error_log is not None else ErrorLog()
        self._connector = connector
        self._executor = DaemonThreadExecutor(max_workers)
        self.registry = TaskRegistry(error_log=self.error_log)
        self.timer = SendTimer(send_interval)
        self.pump = Pump(self.registry, self.timer, error_log=self.error_log, drop_on_fault=drop_on_fault)
        self.last_event: SlotEvent | None = None
        self.last_report = PumpReport()
        self._closed = False

    def trigger(self) -> SlotId:
        if self._closed:
            raise RuntimeError("EchoLink is shut down")
        logger.info("Setting up connection to %s", self.endpoint)
        task = ConnectionTask.start(
            self.endpoint,
            executor=self._executor,
            connector=self._connector,
            timeout=self.connect_timeout,
        )
        return self.registry.open(task)

    def tick(self, dt: float, snapshot_source: SnapshotSource) -> PumpReport:
        events = self.registry.poll()
        if events:
            self.last_event = events[-1]
        self.last_report = self.pump.tick(dt, snapshot_source)
        return self.last_report

    def status_text(self) -> str:
        pending = self.registry.pending_count()
        live = self.registry.live_count()
        if not pending and not live:
            text = "net: idle (space to connect)"
        else:
            text = f"net: {live} live, {pending} pending"
        ev = self.last_event
        if ev is not None:
            text += f" | slot {ev.slot} {ev.kind}"
        err = self.error_log.last()
        if err is not None:
            text += f" | last error: {err.summary_line()}"
        return text

    def shutdown(self) -> None:
        """
        Closes live channels and drops pending slots without waiting.

        A handshake already inside connect keeps running on its daemon thread until
        it finishes or times out; its channel is then closed by the discarded task.
        """

        if self._closed:
            return
        self._closed = True
        self.registry.close_all()
        self._executor.shutdown(wait=False, cancel_futures=True)


def link_from_config(cfg: RunConfig, *, connector: Connector = connect_websocket) -> EchoLink:
    persist = Path(cfg.error_log_path) if cfg.error_log_path else None
    return EchoLink(
        cfg.endpoint,
        send_interval=cfg.send_interval,
        connect_timeout=cfg.connect_timeout,
        max_workers=cfg.max_workers,
        drop_on_fault=cfg.drop_on_fault,
        error_log=ErrorLog(persist_path=persist),
        connector=connector,
    )
