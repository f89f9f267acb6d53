"""Pure functions that derive conversation views from debug-event prefixes."""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    DebugEvent,
    DisplayMessage,
    ResponsePayload,
    ThoughtPayload,
    ToolCallPayload,
    UserRequestPayload,
    event_payload,
)


def reduce_events(events: Iterable[DebugEvent]) -> List[DisplayMessage]:
    """
    Fold an event-log prefix into display messages, left to right.

    Only log position matters; timestamps are copied but never compared.
    Tool calls and thoughts attach to the most recent assistant message and
    are dropped when there is none yet.
    """
    messages: List[DisplayMessage] = []
    for event in events:
        payload = event_payload(event)

        if isinstance(payload, UserRequestPayload):
            messages.append(
                DisplayMessage(
                    id=event.id,
                    role="user",
                    content=payload.content,
                    timestamp=event.timestamp,
                )
            )
        elif isinstance(payload, ResponsePayload):
            messages.append(
                DisplayMessage(
                    id=event.id,
                    role="assistant",
                    content=payload.content,
                    timestamp=event.timestamp,
                    usage=payload.usage,
                )
            )
        elif isinstance(payload, ToolCallPayload):
            if messages and messages[-1].role == "assistant":
                last = messages[-1]
                messages[-1] = replace(
                    last, ui_components=tuple(last.ui_components) + (payload.component,)
                )
        elif isinstance(payload, ThoughtPayload):
            index = _last_assistant_index(messages)
            if index is not None:
                messages[index] = replace(messages[index], reasoning=payload.reasoning)

    return messages


def build_chat_history(
    messages: Iterable[DisplayMessage],
    system_prompt: Optional[str] = None,
) -> List[Dict[str, str]]:
    """Return the role/content list sent to the completion API."""
    history: List[Dict[str, str]] = []
    if system_prompt:
        history.append({"role": "system", "content": system_prompt})
    for message in messages:
        history.append({"role": message.role, "content": message.content})
    return history


def summarize_events(events: Sequence[DebugEvent]) -> Dict:
    """Count events by type and source and sum the reported token usage."""
    by_type: Dict[str, int] = {}
    by_source: Dict[str, int] = {}
    total_tokens = 0
    for event in events:
        by_type[event.type] = by_type.get(event.type, 0) + 1
        by_source[event.source] = by_source.get(event.source, 0) + 1
        payload = event_payload(event)
        if isinstance(payload, ResponsePayload) and payload.usage and payload.usage.total_tokens:
            total_tokens += payload.usage.total_tokens

    return {
        "total_events": len(events),
        "by_type": by_type,
        "by_source": by_source,
        "error_count": by_type.get("error", 0),
        "total_tokens": total_tokens,
    }


def _last_assistant_index(messages: Sequence[DisplayMessage]) -> Optional[int]:
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == "assistant":
            return index
    return None
