"""EventBus"""

import threading

from item_catalog.core.event_bus import MAX_DEPTH, CatalogEvent, EventBus
from item_catalog.core.event_types import EventTypes


def _event(event_type: str = EventTypes.ITEM_CREATED, source: str = "test") -> CatalogEvent:
    return CatalogEvent(event_type=event_type, data={"item_id": "r1"}, source=source)


class TestSubscribeEmit:
    def test_handlers_called_in_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(EventTypes.ITEM_CREATED, lambda e: calls.append(("a", e.data["item_id"])))
        bus.subscribe(EventTypes.ITEM_CREATED, lambda e: calls.append(("b", e.data["item_id"])))
        bus.emit(_event())
        assert calls == [("a", "r1"), ("b", "r1")]

    def test_other_types_not_delivered(self):
        bus = EventBus()
        calls = []
        bus.subscribe(EventTypes.ITEM_DELETED, calls.append)
        bus.emit(_event(EventTypes.ITEM_MERGED))
        assert calls == []

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        bus.subscribe(EventTypes.ITEM_MERGED, calls.append)
        bus.unsubscribe(EventTypes.ITEM_MERGED, calls.append)
        bus.emit(_event(EventTypes.ITEM_MERGED))
        assert calls == []

    def test_unsubscribe_unknown_handler(self):
        """Only logs a warning"""
        bus = EventBus()
        bus.subscribe(EventTypes.ITEM_MERGED, print)
        bus.unsubscribe(EventTypes.ITEM_MERGED, lambda e: None)
        assert bus.handler_count == 1

    def test_same_event_can_repeat(self):
        bus = EventBus()
        calls = []
        bus.subscribe(EventTypes.ITEM_MERGED, calls.append)
        bus.emit(_event(EventTypes.ITEM_MERGED))
        bus.emit(_event(EventTypes.ITEM_MERGED))
        assert len(calls) == 2


class TestDepthLimit:
    def test_cascade_stops_at_max_depth(self):
        bus = EventBus()
        depths = []

        def cascade(event: CatalogEvent):
            depths.append(event._depth)
            bus.emit(_event(EventTypes.SUBMISSION_RECORDED))

        bus.subscribe(EventTypes.SUBMISSION_RECORDED, cascade)
        bus.emit(_event(EventTypes.SUBMISSION_RECORDED))
        assert depths == list(range(MAX_DEPTH))

    def test_depth_resets_after_emit(self):
        bus = EventBus()
        depths = []
        bus.subscribe(EventTypes.ITEM_CREATED, lambda e: depths.append(e._depth))
        bus.emit(_event())
        bus.emit(_event())
        assert depths == [0, 0]

    def test_depth_is_per_thread(self):
        bus = EventBus()
        depths = []

        def nested(event: CatalogEvent):
            depths.append(event._depth)
            if event.source == "outer":
                worker = threading.Thread(target=bus.emit, args=(_event(EventTypes.ITEM_MERGED, "inner"),))
                worker.start()
                worker.join()

        bus.subscribe(EventTypes.ITEM_CREATED, nested)
        bus.subscribe(EventTypes.ITEM_MERGED, nested)
        bus.emit(_event(source="outer"))
        assert depths == [0, 0]
        assert bus._current_depth == 0


class TestHandlerError:
    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        calls = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(EventTypes.CATALOG_CLEARED, broken)
        bus.subscribe(EventTypes.CATALOG_CLEARED, calls.append)
        bus.emit(_event(EventTypes.CATALOG_CLEARED))
        assert len(calls) == 1


class TestClear:
    def test_clear_removes_all(self):
        bus = EventBus()
        bus.subscribe(EventTypes.ITEM_CREATED, print)
        bus.subscribe(EventTypes.ITEM_DELETED, print)
        assert bus.handler_count == 2
        bus.clear()
        assert bus.handler_count == 0
