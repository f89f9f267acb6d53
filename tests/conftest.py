import itertools
import json

import pytest

from autobot.errors import RemoteCallError
from autobot.models import ChatConfig, Completion, ConversationSummary, DebugEvent

_ids = itertools.count()


def make_event(event_type, source, data, description=None, timestamp=1_700_000_000_000):
    return DebugEvent(
        id=f"evt-{next(_ids)}",
        timestamp=timestamp,
        type=event_type,
        source=source,
        data=data,
        description=description or f"{event_type} from {source}",
    )


def render_call(component_type="button", props=None, arguments=None):
    if arguments is None:
        arguments = json.dumps({"type": component_type, "props": props or {"label": "Click me"}})
    return {
        "id": "call-1",
        "type": "function",
        "function": {"name": "render_ui_component", "arguments": arguments},
    }


class FakeStore:
    def __init__(self):
        self.logs = {}
        self.order = []

    def append(self, conversation_id, event):
        self.logs.setdefault(conversation_id, []).append(event)
        self._touch(conversation_id)

    def load(self, conversation_id):
        return list(self.logs.get(conversation_id, []))

    def list(self):
        return [
            ConversationSummary(
                conversation_id=conversation_id,
                last_event_timestamp=self.logs[conversation_id][-1].timestamp if self.logs[conversation_id] else None,
                event_count=len(self.logs[conversation_id]),
            )
            for conversation_id in reversed(self.order)
        ]

    def clear(self, conversation_id):
        self.logs[conversation_id] = []
        self._touch(conversation_id)

    def delete(self, conversation_id):
        self.logs.pop(conversation_id, None)
        if conversation_id in self.order:
            self.order.remove(conversation_id)

    def _touch(self, conversation_id):
        if conversation_id in self.order:
            self.order.remove(conversation_id)
        self.order.append(conversation_id)


class FakeConfigStore:
    def __init__(self, config=None):
        self.config = config

    def get(self):
        return self.config

    def put(self, config):
        self.config = config

    def clear(self):
        self.config = None


class FakeCompletionClient:
    def __init__(self, completion=None, error=None):
        self.completion = completion or Completion(content="hello", usage={"total_tokens": 12})
        self.error = error
        self.requests = []

    async def complete(self, config, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.completion


class RecordingPublisher:
    def __init__(self):
        self.published = []

    def publish(self, conversation_id, events):
        self.published.append((conversation_id, list(events)))


@pytest.fixture
def config():
    return ChatConfig(api_endpoint="https://api.test/v1", api_key="sk-test", model="test-model")


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def failing_client():
    return FakeCompletionClient(error=RemoteCallError("Internal server error", status_code=500))
