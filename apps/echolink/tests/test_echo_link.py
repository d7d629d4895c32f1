from __future__ import annotations

from concurrent.futures import Future

import pytest

from echolink.app_config import RunConfig
from echolink.net.channel import SocketChannel
from echolink.net.link import EchoLink, link_from_config
from echolink.net.serializer import Transform, decode_transforms
from net_fakes import FakeWs, ManualExecutor

SCENE = [Transform(translation=(1.0, 2.0, 3.0))]


def _link(monkeypatch: pytest.MonkeyPatch, connector, **kwargs) -> tuple[EchoLink, ManualExecutor]:
    link = EchoLink("ws://echo.test/", connector=connector, **kwargs)
    executor = ManualExecutor()
    # Swap the worker pool for one the test drives by hand.
    link._executor.shutdown(wait=False)
    monkeypatch.setattr(link, "_executor", executor)
    return link, executor


def test_trigger_then_tick_promotes_and_pumps_in_same_tick(monkeypatch: pytest.MonkeyPatch) -> None:
    ws = FakeWs()
    ws.queue_text("hello")
    link, executor = _link(monkeypatch, lambda endpoint, *, timeout: SocketChannel(ws), send_interval=0.0)

    slot = link.trigger()
    report = link.tick(0.016, lambda: SCENE)
    assert link.registry.state(slot) == "pending"
    assert report.sent == 0

    executor.run_all()
    report = link.tick(0.016, lambda: SCENE)

    assert link.registry.state(slot) == "live"
    assert report.sent == 1
    assert report.received == 1
    assert decode_transforms(bytes(ws.sock.written[6:])) == SCENE
    assert "1 live" in link.status_text()
    assert "promoted" in link.status_text()


def test_failed_connection_leaves_no_slot(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(endpoint: str, *, timeout: float) -> SocketChannel:
        raise ConnectionRefusedError(111, "Connection refused")

    link, executor = _link(monkeypatch, refuse)
    slot = link.trigger()
    executor.run_all()
    link.tick(0.016, lambda: SCENE)

    assert link.registry.state(slot) is None
    text = link.status_text()
    assert "idle" in text
    assert "failed" in text
    assert "Connection refused" in text


def test_each_trigger_gets_its_own_slot(monkeypatch: pytest.MonkeyPatch) -> None:
    link, executor = _link(monkeypatch, lambda endpoint, *, timeout: SocketChannel(FakeWs()))

    first = link.trigger()
    second = link.trigger()
    executor.run_all()
    link.tick(0.016, lambda: SCENE)

    assert first != second
    assert link.registry.live_count() == 2


def test_shutdown_closes_channels_and_rejects_new_triggers(monkeypatch: pytest.MonkeyPatch) -> None:
    ws = FakeWs()
    link, executor = _link(monkeypatch, lambda endpoint, *, timeout: SocketChannel(ws))
    link.trigger()
    executor.run_all()
    link.tick(0.016, lambda: SCENE)

    link.shutdown()

    assert ws.closed
    assert len(link.registry) == 0
    with pytest.raises(RuntimeError):
        link.trigger()


def test_link_from_config_uses_run_settings(tmp_path) -> None:
    cfg = RunConfig(
        endpoint="ws://localhost:9000/",
        send_interval=0.5,
        connect_timeout=2.0,
        max_workers=3,
        drop_on_fault=True,
        error_log_path=str(tmp_path / "net.log"),
    )
    link = link_from_config(cfg)
    try:
        assert link.endpoint == "ws://localhost:9000/"
        assert link.timer.interval == 0.5
        assert link.connect_timeout == 2.0
        assert link.pump.drop_on_fault is True
        link.error_log.log_message(context="net.test", message="written")
        assert "written" in (tmp_path / "net.log").read_text(encoding="utf-8")
    finally:
        link.shutdown()


def test_real_pool_handshake_is_polled_without_blocking() -> None:
    gate: Future = Future()

    def slow(endpoint: str, *, timeout: float) -> SocketChannel:
        return gate.result(timeout=5.0)

    link = EchoLink("ws://echo.test/", connector=slow)
    try:
        slot = link.trigger()
        link.tick(0.016, lambda: SCENE)
        assert link.registry.state(slot) == "pending"
        gate.set_result(SocketChannel(FakeWs()))
    finally:
        link.shutdown()
