"""Autobot - debug-event log, time travel and A2UI for LLM chat."""

from .cursor import TimeTravelCursor
from .errors import (
    AutobotError,
    ExtractionError,
    NotConfigured,
    PersistenceError,
    RemoteCallError,
    ValidationError,
)
from .extractor import RENDER_UI_COMPONENT_TOOL, extract_component
from .models import ChatConfig, DebugEvent, DisplayMessage, UIComponent
from .reducer import build_chat_history, reduce_events, summarize_events
from .service import ChatService, ConversationSession, TurnResult

__all__ = [
    "AutobotError",
    "ChatConfig",
    "ChatService",
    "ConversationSession",
    "DebugEvent",
    "DisplayMessage",
    "ExtractionError",
    "NotConfigured",
    "PersistenceError",
    "RENDER_UI_COMPONENT_TOOL",
    "RemoteCallError",
    "TimeTravelCursor",
    "TurnResult",
    "UIComponent",
    "ValidationError",
    "build_chat_history",
    "extract_component",
    "reduce_events",
    "summarize_events",
]

__version__ = "0.1.0"
