from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from autobot.adapters.json_store import JsonFileConfigStore, JsonFileEventStore
from autobot.adapters.sqlalchemy_store import SQLAlchemyConfigStore, SQLAlchemyEventStore, create_schema
from autobot.errors import PersistenceError, ValidationError
from autobot.models import ChatConfig

from .conftest import make_event


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'autobot.db'}")
    create_schema(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture(params=["sqlalchemy", "json"])
def event_store(request, tmp_path):
    if request.param == "sqlalchemy":
        return SQLAlchemyEventStore(request.getfixturevalue("session_factory"))
    return JsonFileEventStore(tmp_path / "data")


@pytest.fixture(params=["sqlalchemy", "json"])
def config_store(request, tmp_path):
    if request.param == "sqlalchemy":
        return SQLAlchemyConfigStore(request.getfixturevalue("session_factory"))
    return JsonFileConfigStore(tmp_path / "data")


def test_load_unknown_conversation_is_empty(event_store):
    assert list(event_store.load("missing")) == []


def test_append_adds_exactly_one_event_at_the_end(event_store):
    first = make_event("request", "frontend", {"content": "hi"})
    second = make_event("response", "llm", {"message": {"content": "hello", "tool_calls": []}})

    event_store.append("conv-1", first)
    before = list(event_store.load("conv-1"))
    event_store.append("conv-1", second)
    after = list(event_store.load("conv-1"))

    assert len(after) == len(before) + 1
    assert after[:-1] == before
    assert after[-1] == second


def test_events_survive_reopening(event_store, tmp_path):
    event = make_event("tool_call", "llm", {"component": {"id": "c", "type": "chart", "props": {"data": [1]}}})
    event_store.append("conv-1", event)

    if isinstance(event_store, JsonFileEventStore):
        reopened = JsonFileEventStore(tmp_path / "data")
    else:
        reopened = SQLAlchemyEventStore(event_store.session_factory)

    assert list(reopened.load("conv-1")) == [event]


def test_list_reports_last_event_timestamp(event_store):
    event_store.append("conv-1", make_event("request", "frontend", {"content": "a"}, timestamp=10))
    event_store.append("conv-1", make_event("request", "frontend", {"content": "b"}, timestamp=20))
    event_store.append("conv-2", make_event("request", "frontend", {"content": "c"}, timestamp=30))

    summaries = {summary.conversation_id: summary for summary in event_store.list()}

    assert summaries["conv-1"].last_event_timestamp == 20
    assert summaries["conv-1"].event_count == 2
    assert summaries["conv-2"].last_event_timestamp == 30


def test_clear_keeps_conversation_and_delete_removes_it(event_store):
    event_store.append("conv-1", make_event("request", "frontend", {"content": "a"}))
    event_store.append("conv-2", make_event("request", "frontend", {"content": "b"}))

    event_store.clear("conv-1")
    event_store.delete("conv-2")

    summaries = {summary.conversation_id: summary for summary in event_store.list()}
    assert set(summaries) == {"conv-1"}
    assert summaries["conv-1"].event_count == 0
    assert summaries["conv-1"].last_event_timestamp is None
    assert list(event_store.load("conv-1")) == []
    assert list(event_store.load("conv-2")) == []


def test_config_round_trip(config_store):
    assert config_store.get() is None
    config = ChatConfig(
        api_endpoint="https://openrouter.ai/api/v1",
        api_key="sk-test",
        model="google/gemini-2.0-flash-001",
        include_reasoning=True,
        site_name="Autobot Demo",
    )

    config_store.put(config)
    assert config_store.get() == config

    config_store.clear()
    assert config_store.get() is None


def test_sqlalchemy_append_failure_is_surfaced(session_factory):
    store = SQLAlchemyEventStore(session_factory)
    with session_factory.begin() as db:
        db.execute(text("DROP TABLE conversation_events"))

    with pytest.raises(PersistenceError):
        store.append("conv-1", make_event("request", "frontend", {"content": "hi"}))


def test_sqlalchemy_store_is_usable_from_several_threads(session_factory):
    store = SQLAlchemyEventStore(session_factory)

    def fill(conversation_id):
        for index in range(5):
            store.append(conversation_id, make_event("request", "frontend", {"content": str(index)}))
            store.load(conversation_id)
        return conversation_id

    with ThreadPoolExecutor(max_workers=3) as pool:
        finished = list(pool.map(fill, ["conv-a", "conv-b", "conv-c"]))

    assert finished == ["conv-a", "conv-b", "conv-c"]
    for conversation_id in finished:
        contents = [event.data["content"] for event in store.load(conversation_id)]
        assert contents == ["0", "1", "2", "3", "4"]


def test_json_store_rejects_unsafe_conversation_ids(tmp_path):
    store = JsonFileEventStore(tmp_path)

    with pytest.raises(ValidationError):
        store.load("../config")


def test_json_store_reports_corrupt_files(tmp_path):
    store = JsonFileEventStore(tmp_path)
    (tmp_path / "conversations" / "conv-1.json").write_text("{broken", encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.load("conv-1")
