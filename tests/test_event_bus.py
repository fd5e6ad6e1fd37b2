from __future__ import annotations

import json
import time

from watchinstall.core.events.bus import EventBus, EventBusConfig, OverflowPolicy
from watchinstall.core.events.models import BaseEvent, SourceSubsystem
from watchinstall.core.events.subscribers import CoreEventJsonlSubscriber


def _ev(event_type: str = "install.installed", **payload) -> BaseEvent:
    return BaseEvent(event_type=event_type, source_subsystem=SourceSubsystem.cycle, payload=payload)


def test_publish_subscribe_multiple_subscribers():
    bus = EventBus(cfg=EventBusConfig(enabled=True, max_queue_size=100), logger=None)
    got1 = []
    got2 = []
    bus.subscribe("install.installed", lambda ev: got1.append(ev.event_id), priority=10)
    bus.subscribe("install.*", lambda ev: got2.append(ev.event_id), priority=20)

    ev = _ev(uri="/libs/a/install/x.jar")
    bus.publish(ev)
    time.sleep(0.3)
    assert got1 == [ev.event_id]
    assert got2 == [ev.event_id]
    bus.shutdown(0.5)


def test_handler_exception_isolated_and_reported():
    bus = EventBus(cfg=EventBusConfig(enabled=True, max_queue_size=100), logger=None)
    ok = {"n": 0}
    errors = []

    def bad(_ev):  # noqa: ANN001
        raise RuntimeError("boom")

    def good(_ev):  # noqa: ANN001
        ok["n"] += 1

    bus.subscribe("install.installed", bad, priority=10)
    bus.subscribe("install.installed", good, priority=20)
    bus.subscribe("error.raised", lambda ev: errors.append(ev.payload))
    bus.publish(_ev(x=1))
    time.sleep(0.4)
    assert ok["n"] == 1
    assert errors and errors[0]["handler"] == "bad"
    assert bus.get_stats()["handler_errors_total"] == 1
    bus.shutdown(0.5)


def test_ordering_preserved_per_subscriber():
    bus = EventBus(cfg=EventBusConfig(enabled=True, max_queue_size=100), logger=None)
    seen = []

    def handler(ev):  # noqa: ANN001
        if ev.event_type == "install.installed":
            seen.append(ev.payload["seq"])

    bus.subscribe("*", handler)
    for i in range(5):
        bus.publish(_ev("install.installed", seq=i))
        bus.publish(_ev("install.uninstalled", seq=i))
    time.sleep(0.4)
    assert seen == [0, 1, 2, 3, 4]
    bus.shutdown(0.5)


def test_backpressure_drop_oldest():
    # start disabled so the dispatcher never drains, then accept publishes
    bus = EventBus(cfg=EventBusConfig(enabled=False, max_queue_size=10, overflow_policy=OverflowPolicy.DROP_OLDEST), logger=None)
    bus.set_enabled(True)
    for i in range(30):
        bus.publish(_ev(i=i))
    st = bus.get_stats()
    assert st["dropped_total"] == 20
    assert st["published_total"] == 30
    assert st["queue_depth"] == 10
    bus.shutdown(0.1)


def test_backpressure_drop_newest():
    bus = EventBus(cfg=EventBusConfig(enabled=False, max_queue_size=10, overflow_policy=OverflowPolicy.DROP_NEWEST), logger=None)
    bus.set_enabled(True)
    accepted = [bus.publish(_ev(i=i)) for i in range(12)]
    assert accepted == [True] * 10 + [False, False]
    bus.shutdown(0.1)


def test_publish_after_shutdown_is_refused():
    bus = EventBus(cfg=EventBusConfig(enabled=True), logger=None)
    bus.shutdown(0.2)
    assert bus.publish(_ev()) is False


def test_payload_is_redacted():
    ev = _ev(uri="/x", token="SECRET")
    assert ev.payload["token"] == "***REDACTED***"


def test_jsonl_subscriber_writes_events(tmp_path):
    path = tmp_path / "events" / "install_events.jsonl"
    sub = CoreEventJsonlSubscriber(path=str(path))
    sub(_ev(uri="/libs/a/install/x.jar"))
    sub(_ev("install.uninstalled", uri="/libs/a/install/x.jar"))
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(x)["event_type"] for x in lines] == ["install.installed", "install.uninstalled"]
    assert json.loads(lines[0])["source_subsystem"] == "cycle"


def test_unsubscribe_and_recent():
    bus = EventBus(cfg=EventBusConfig(enabled=True, max_queue_size=100), logger=None)
    got = []

    def handler(ev):  # noqa: ANN001
        got.append(ev.event_type)

    bus.subscribe("install.*", handler)
    assert bus.unsubscribe(handler) == 1
    bus.publish(_ev())
    time.sleep(0.2)
    assert got == []
    assert bus.dump_recent(1)[0]["event_type"] == "install.installed"
    bus.shutdown(0.5)
