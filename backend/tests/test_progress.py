import asyncio

from uploader.routers.events import event_generator
from uploader.schemas.upload import ProgressEvent
from uploader.services.progress import NullChannel, ProgressHub


def test_events_reach_only_their_session():
    async def _go():
        hub = ProgressHub()
        qa = hub.subscribe("a")
        qb = hub.subscribe("b")
        hub.channel("a").emit(10, 100)
        return qa.qsize(), qb.qsize(), qa.get_nowait()

    size_a, size_b, event = asyncio.run(_go())
    assert (size_a, size_b) == (1, 0)
    assert event.model_dump() == {"type": "progress", "bytesReceived": 10, "bytesExpected": 100}


def test_new_subscriber_replaces_previous_one():
    async def _go():
        hub = ProgressHub()
        old = hub.subscribe("s")
        new = hub.subscribe("s")
        hub.unsubscribe("s", old)
        hub.channel("s").emit(1, 2)
        return hub.is_closed(old.get_nowait()), new.qsize()

    old_closed, new_size = asyncio.run(_go())
    assert old_closed
    assert new_size == 1


def test_no_session_means_null_channel():
    hub = ProgressHub()
    assert isinstance(hub.channel(None), NullChannel)
    assert isinstance(hub.channel("  "), NullChannel)
    assert hub.publish("nobody", ProgressEvent(bytesReceived=1, bytesExpected=1)) is False


def test_full_queue_drops_events():
    async def _go():
        hub = ProgressHub(queue_size=1)
        q = hub.subscribe("s")
        first = hub.publish("s", ProgressEvent(bytesReceived=1, bytesExpected=3))
        second = hub.publish("s", ProgressEvent(bytesReceived=2, bytesExpected=3))
        return first, second, q.qsize()

    assert asyncio.run(_go()) == (True, False, 1)


class _Request:
    async def is_disconnected(self):
        return False


def test_event_stream_format(monkeypatch):
    import uploader.routers.events as events_module

    async def _go():
        hub = ProgressHub()
        monkeypatch.setattr(events_module, "hub", hub)
        q = hub.subscribe("s")
        hub.channel("s").emit(5, 10)
        hub.subscribe("s")  # closes the first stream
        return [chunk async for chunk in event_generator(_Request(), "s", q)]

    chunks = asyncio.run(_go())
    assert chunks[0] == ": connected\n\n"
    assert chunks[1] == 'event: upload\ndata: {"type":"progress","bytesReceived":5,"bytesExpected":10}\n\n'
    assert len(chunks) == 2
