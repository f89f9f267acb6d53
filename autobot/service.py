"""Application service orchestrating chat turns over the debug-event log."""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .cursor import TimeTravelCursor
from .errors import ExtractionError, NotConfigured, RemoteCallError, ValidationError
from .extractor import A2UI_SYSTEM_PROMPT, RENDER_UI_COMPONENT_TOOL, extract_component, is_render_call
from .models import (
    ChatConfig,
    CompletionRequest,
    ConversationSummary,
    DebugEvent,
    DisplayMessage,
    EventSource,
    EventType,
)
from .ports import CompletionClient, EventPublisher, EventStore
from .reducer import build_chat_history, reduce_events, summarize_events

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """Events appended by one chat turn and the assistant message they produced."""

    conversation_id: str
    events: List[DebugEvent] = field(default_factory=list)
    message: Optional[DisplayMessage] = None


class ChatService:
    """
    Facade that runs chat turns and exposes conversation views.

    Each turn appends events one at a time and publishes each one as soon as
    it is stored; the store's per-event atomic append is the only ordering
    guarantee. Concurrent turns against the same conversation interleave
    their events and are otherwise undefined, so callers should keep at most
    one turn in flight per conversation.
    """

    def __init__(
        self,
        store: EventStore,
        client: CompletionClient,
        publisher: Optional[EventPublisher] = None,
        system_prompt: str = A2UI_SYSTEM_PROMPT,
        tools: Sequence[Mapping[str, Any]] = (RENDER_UI_COMPONENT_TOOL,),
    ):
        self.store = store
        self.client = client
        self.publisher = publisher
        self.system_prompt = system_prompt
        self.tools = tuple(tools)

    def new_conversation(self) -> str:
        return str(uuid.uuid4())

    async def send_message(
        self,
        conversation_id: str,
        utterance: str,
        config: ChatConfig,
        cursor: Optional[int] = None,
    ) -> TurnResult:
        """
        Run one chat turn and record every step as a debug event.

        ``cursor`` bounds the history sent to the model to the prefix the user
        was looking at. New events are always appended at the end of the log;
        events after the cursor are kept.

        Raises:
            ValidationError: empty utterance or malformed configuration.
            NotConfigured: no API key set.
            RemoteCallError: the completion call failed; one error event is recorded.
        """
        _validate_turn(utterance, config)

        events = list(self.store.load(conversation_id))
        prefix = _bounded_prefix(events, cursor)
        result = TurnResult(conversation_id=conversation_id)
        logger.info("Chat turn started for conversation %s (%d events)", conversation_id, len(events))

        self._append(
            result,
            events,
            "request",
            "frontend",
            {"content": utterance},
            "User message received",
        )

        history = build_chat_history(reduce_events(prefix), system_prompt=self.system_prompt)
        history.append({"role": "user", "content": utterance})
        request = CompletionRequest(
            model=config.model,
            messages=history,
            tools=self.tools,
            include_reasoning=config.include_reasoning,
        )
        self._append(
            result,
            events,
            "request",
            "backend",
            request.to_dict(),
            f"Sending request to LLM ({config.model})",
        )

        try:
            completion = await self.client.complete(config, request)
        except RemoteCallError as exc:
            logger.error("Completion call failed for conversation %s: %s", conversation_id, exc.message)
            self._append(
                result,
                events,
                "error",
                "llm",
                {"error": exc.message, "status_code": exc.status_code},
                f"Error: {exc.message}",
            )
            raise

        render_calls = [call for call in completion.tool_calls if is_render_call(call)]
        response_data: Dict[str, Any] = {
            "message": completion.message_dict(),
            "usage": dict(completion.usage) if completion.usage else None,
            "model": completion.model,
            "id": completion.id,
        }
        total_tokens = (completion.usage or {}).get("total_tokens") or 0
        self._append(
            result,
            events,
            "response",
            "llm",
            response_data,
            f"LLM responded ({total_tokens} tokens, {len(render_calls)} UI components)",
        )

        for call in render_calls:
            try:
                component = extract_component(call)
            except ExtractionError as exc:
                logger.warning("Skipping UI component in conversation %s: %s", conversation_id, exc)
                continue
            self._append(
                result,
                events,
                "tool_call",
                "llm",
                {
                    "function": call["function"].get("name"),
                    "arguments": call["function"].get("arguments"),
                    "component": component.to_dict(),
                },
                f"LLM rendered {component.type} component via A2UI",
            )

        if completion.reasoning:
            self._append(
                result,
                events,
                "thought",
                "llm",
                {"reasoning": completion.reasoning},
                "Reasoning generated by the model",
            )

        messages = reduce_events(events)
        result.message = messages[-1] if messages and messages[-1].role == "assistant" else None
        logger.info(
            "Chat turn finished for conversation %s (%d new events)", conversation_id, len(result.events)
        )
        return result

    def record_model_change(self, conversation_id: str, model: str) -> DebugEvent:
        """Append a bookkeeping event noting the selected model; produces no message."""
        if not model or not model.strip():
            raise ValidationError("Model must not be empty")
        result = TurnResult(conversation_id=conversation_id)
        events = list(self.store.load(conversation_id))
        return self._append(result, events, "request", "frontend", {"model": model}, f"Model changed to {model}")

    def conversation_view(self, conversation_id: str, cursor: Optional[int] = None) -> Dict:
        """Return the raw log, the cursor state and the messages visible at the cursor."""
        events = list(self.store.load(conversation_id))
        position = TimeTravelCursor(len(events))
        if cursor is not None:
            position.set(cursor)
        visible = position.visible(events)
        return {
            "conversationId": conversation_id,
            "events": [event.to_dict() for event in events],
            "cursor": position.position,
            "live": position.is_live,
            "messages": [message.to_dict() for message in reduce_events(visible)],
            "stats": summarize_events(visible),
        }

    def list_conversations(self) -> Sequence[ConversationSummary]:
        return self.store.list()

    def clear_conversation(self, conversation_id: str) -> None:
        self.store.clear(conversation_id)

    def delete_conversation(self, conversation_id: str) -> None:
        self.store.delete(conversation_id)

    def _append(
        self,
        result: TurnResult,
        events: List[DebugEvent],
        event_type: EventType,
        source: EventSource,
        data: Mapping[str, Any],
        description: str,
    ) -> DebugEvent:
        event = DebugEvent(
            id=str(uuid.uuid4()),
            timestamp=_next_timestamp(events),
            type=event_type,
            source=source,
            data=dict(data),
            description=description,
        )
        self.store.append(result.conversation_id, event)
        events.append(event)
        result.events.append(event)
        if self.publisher is not None:
            self.publisher.publish(result.conversation_id, [event])
        return event


class ConversationSession:
    """A conversation log with its time-travel cursor, as seen by one client."""

    def __init__(self, service: ChatService, conversation_id: Optional[str] = None):
        self.service = service
        self.conversation_id = conversation_id or service.new_conversation()
        self.events: List[DebugEvent] = []
        self.cursor = TimeTravelCursor()
        self.load()

    def load(self) -> None:
        self.events = list(self.service.store.load(self.conversation_id))
        self.cursor.reset(len(self.events))

    def switch(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        self.load()

    @property
    def messages(self) -> List[DisplayMessage]:
        return reduce_events(self.cursor.visible(self.events))

    def set_cursor(self, position: int) -> None:
        self.cursor.set(position)

    def go_live(self) -> None:
        self.cursor.go_live()

    async def send(self, utterance: str, config: ChatConfig) -> TurnResult:
        """Send from the current cursor position; the cursor ends at the new tip."""
        try:
            return await self.service.send_message(
                self.conversation_id, utterance, config, cursor=self.cursor.position
            )
        finally:
            events = list(self.service.store.load(self.conversation_id))
            if len(events) != len(self.events):
                self.events = events
                self.cursor.reset(len(events))

    def clear(self) -> None:
        self.service.clear_conversation(self.conversation_id)
        self.load()


def _validate_turn(utterance: str, config: ChatConfig) -> None:
    if not isinstance(utterance, str) or not utterance.strip():
        raise ValidationError("Message is required")
    if not config.is_configured:
        raise NotConfigured("LLM service not configured")
    if not isinstance(config.model, str) or not config.model.strip():
        raise ValidationError("Model must not be empty")
    if not isinstance(config.api_endpoint, str):
        raise ValidationError("API endpoint must be a string")


def _bounded_prefix(events: Sequence[DebugEvent], cursor: Optional[int]) -> List[DebugEvent]:
    if cursor is None:
        return list(events)
    position = TimeTravelCursor(len(events))
    position.set(cursor)
    return position.visible(events)


def _next_timestamp(events: Sequence[DebugEvent]) -> int:
    now = int(time.time() * 1000)
    if events:
        return max(now, events[-1].timestamp)
    return now
