"""Port definitions for storage, completion backends and event observers."""

from typing import Optional, Protocol, Sequence

from .models import ChatConfig, Completion, CompletionRequest, ConversationSummary, DebugEvent


class EventStore(Protocol):
    """Append-only storage of debug events, one ordered log per conversation."""

    def append(self, conversation_id: str, event: DebugEvent) -> None:
        """Durably append one event to the end of the conversation log."""

    def load(self, conversation_id: str) -> Sequence[DebugEvent]:
        """Return the ordered log; an unknown conversation yields an empty sequence."""

    def list(self) -> Sequence[ConversationSummary]:
        """Return every stored conversation, most recently updated first."""

    def clear(self, conversation_id: str) -> None:
        """Drop every event of the conversation but keep the conversation."""

    def delete(self, conversation_id: str) -> None:
        """Remove the conversation entirely."""


class ConfigStore(Protocol):
    """Holds the single current chat configuration record."""

    def get(self) -> Optional[ChatConfig]:
        """Return the stored configuration, if any."""

    def put(self, config: ChatConfig) -> None:
        """Replace the stored configuration."""

    def clear(self) -> None:
        """Forget the stored configuration."""


class CompletionClient(Protocol):
    """Chat-completion backend seen as an opaque remote procedure."""

    async def complete(self, config: ChatConfig, request: CompletionRequest) -> Completion:
        """Run one completion or raise RemoteCallError."""


class EventPublisher(Protocol):
    """Receives newly appended events; must return without waiting on observers."""

    def publish(self, conversation_id: str, events: Sequence[DebugEvent]) -> None:
        """Broadcast events to any connected observers."""
