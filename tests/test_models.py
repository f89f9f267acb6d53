import pytest

from autobot.models import DebugEvent

from .conftest import make_event


def test_event_data_cannot_be_changed_after_creation():
    source = {"content": "hi"}
    event = make_event("request", "frontend", source)

    source["content"] = "changed"
    with pytest.raises(TypeError):
        event.data["content"] = "changed"

    assert event.data["content"] == "hi"
    assert event.to_dict()["data"] == {"content": "hi"}


def test_events_are_hashable_and_compare_by_value():
    event = make_event("error", "llm", {"error": "boom"})
    copy = DebugEvent.from_dict(event.to_dict())

    assert copy == event
    assert hash(copy) == hash(event)
    assert len({event, copy}) == 1


def test_event_rejects_unknown_kinds_and_empty_description():
    with pytest.raises(ValueError):
        make_event("progress", "llm", {})
    with pytest.raises(ValueError):
        make_event("request", "browser", {})
    with pytest.raises(ValueError):
        DebugEvent(id="e", timestamp=1, type="request", source="frontend", data={}, description="")
