"""Core domain models: debug events, typed payloads and derived views."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

EventType = Literal["request", "response", "tool_call", "thought", "error"]
EventSource = Literal["frontend", "backend", "llm"]
Role = Literal["user", "assistant"]

EVENT_TYPES = ("request", "response", "tool_call", "thought", "error")
EVENT_SOURCES = ("frontend", "backend", "llm")

UI_COMPONENT_TYPES = frozenset(
    {"button", "card", "list", "form", "chart", "image", "table", "progress", "alert", "input"}
)

DEFAULT_MODEL = "gpt-3.5-turbo"


@dataclass(frozen=True)
class DebugEvent:
    """A single immutable step in a conversation's processing; ``data`` is a read-only view."""

    id: str
    timestamp: int
    type: EventType
    source: EventSource
    data: Mapping[str, Any] = field(hash=False)
    description: str

    def __post_init__(self):
        if not isinstance(self.data, Mapping):
            raise ValueError("Event data must be a mapping")
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))
        if self.type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {self.type!r}")
        if self.source not in EVENT_SOURCES:
            raise ValueError(f"Unknown event source: {self.source!r}")
        if not self.description:
            raise ValueError("Event description must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "source": self.source,
            "data": dict(self.data),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DebugEvent":
        return cls(
            id=str(raw["id"]),
            timestamp=int(raw["timestamp"]),
            type=raw["type"],
            source=raw["source"],
            data=dict(raw.get("data") or {}),
            description=raw["description"],
        )


@dataclass(frozen=True)
class Usage:
    """Token accounting reported by the completion API."""

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["Usage"]:
        if not isinstance(raw, Mapping):
            return None
        return cls(
            prompt_tokens=raw.get("prompt_tokens"),
            completion_tokens=raw.get("completion_tokens"),
            total_tokens=raw.get("total_tokens"),
        )

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(frozen=True)
class UIComponent:
    """A UI component descriptor requested by the model through A2UI."""

    id: str
    type: str
    props: Mapping[str, Any] = field(default_factory=dict)
    children: Sequence["UIComponent"] = ()

    @property
    def is_known_type(self) -> bool:
        return self.type in UI_COMPONENT_TYPES

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"id": self.id, "type": self.type, "props": dict(self.props)}
        if self.children:
            result["children"] = [child.to_dict() for child in self.children]
        return result

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "UIComponent":
        props = raw.get("props")
        return cls(
            id=str(raw.get("id", "")),
            type=str(raw.get("type", "")),
            props=dict(props) if isinstance(props, Mapping) else {},
            children=tuple(
                cls.from_dict(child) for child in raw.get("children") or () if isinstance(child, Mapping)
            ),
        )


@dataclass(frozen=True)
class UserRequestPayload:
    content: str


@dataclass(frozen=True)
class ResponsePayload:
    content: str
    tool_calls: Sequence[Mapping[str, Any]]
    usage: Optional[Usage]


@dataclass(frozen=True)
class ToolCallPayload:
    component: UIComponent


@dataclass(frozen=True)
class ThoughtPayload:
    reasoning: str


@dataclass(frozen=True)
class ErrorPayload:
    error: str


EventPayload = Union[UserRequestPayload, ResponsePayload, ToolCallPayload, ThoughtPayload, ErrorPayload]


def event_payload(event: DebugEvent) -> Optional[EventPayload]:
    """
    Return the typed payload for an event, keyed by its (type, source) pair.

    Returns None when the pair has no payload contract or the data does not
    carry the fields the contract requires.
    """
    data = event.data
    if event.type == "request" and event.source == "frontend":
        content = data.get("content")
        return UserRequestPayload(content=content) if isinstance(content, str) else None

    if event.type == "response" and event.source == "llm":
        message = data.get("message")
        if not isinstance(message, Mapping):
            return None
        return ResponsePayload(
            content=message.get("content") or "",
            tool_calls=tuple(message.get("tool_calls") or ()),
            usage=Usage.from_raw(data.get("usage")),
        )

    if event.type == "tool_call" and event.source == "llm":
        component = data.get("component")
        if not isinstance(component, Mapping):
            return None
        return ToolCallPayload(component=UIComponent.from_dict(component))

    if event.type == "thought" and event.source == "llm":
        reasoning = data.get("reasoning")
        return ThoughtPayload(reasoning=reasoning) if isinstance(reasoning, str) and reasoning else None

    if event.type == "error":
        return ErrorPayload(error=str(data.get("error", "")))

    return None


@dataclass(frozen=True)
class DisplayMessage:
    """One user or assistant turn derived from the event log."""

    id: str
    role: Role
    content: str
    timestamp: int
    ui_components: Sequence[UIComponent] = ()
    reasoning: Optional[str] = None
    usage: Optional[Usage] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
            "uiComponents": [component.to_dict() for component in self.ui_components],
        }
        if self.reasoning is not None:
            result["reasoning"] = self.reasoning
        if self.usage is not None:
            result["usage"] = self.usage.to_dict()
        return result


@dataclass(frozen=True)
class ChatConfig:
    """Explicit per-call configuration for the completion backend."""

    api_endpoint: str = ""
    api_key: str = ""
    model: str = DEFAULT_MODEL
    include_reasoning: bool = False
    site_url: Optional[str] = None
    site_name: Optional[str] = None
    azure_api_version: Optional[str] = None
    azure_deployment: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def looks_like_azure(self) -> bool:
        return "openai.azure.com" in (self.api_endpoint or "") or bool(
            self.azure_api_version or self.azure_deployment
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiEndpoint": self.api_endpoint,
            "apiKey": self.api_key,
            "model": self.model,
            "includeReasoning": self.include_reasoning,
            "siteUrl": self.site_url,
            "siteName": self.site_name,
            "azureApiVersion": self.azure_api_version,
            "azureDeployment": self.azure_deployment,
        }

    def public_dict(self) -> Dict[str, Any]:
        """Same as to_dict without the API key."""
        result = self.to_dict()
        result.pop("apiKey")
        result["configured"] = self.is_configured
        return result

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ChatConfig":
        return cls(
            api_endpoint=raw.get("apiEndpoint") or "",
            api_key=raw.get("apiKey") or "",
            model=raw.get("model") or DEFAULT_MODEL,
            include_reasoning=bool(raw.get("includeReasoning", False)),
            site_url=raw.get("siteUrl"),
            site_name=raw.get("siteName"),
            azure_api_version=raw.get("azureApiVersion"),
            azure_deployment=raw.get("azureDeployment"),
        )


@dataclass(frozen=True)
class ConversationSummary:
    """Listing entry for a stored conversation."""

    conversation_id: str
    last_event_timestamp: Optional[int]
    event_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "lastEventTimestamp": self.last_event_timestamp,
            "eventCount": self.event_count,
        }


@dataclass(frozen=True)
class CompletionRequest:
    """Body of one chat-completion call."""

    model: str
    messages: Sequence[Mapping[str, str]]
    tools: Sequence[Mapping[str, Any]]
    tool_choice: str = "auto"
    include_reasoning: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [dict(message) for message in self.messages],
            "tools": [dict(tool) for tool in self.tools],
            "tool_choice": self.tool_choice,
        }


@dataclass(frozen=True)
class Completion:
    """The parts of a chat-completion result the orchestrator consumes."""

    content: str
    tool_calls: Sequence[Mapping[str, Any]] = ()
    reasoning: Optional[str] = None
    usage: Optional[Mapping[str, Any]] = None
    model: Optional[str] = None
    id: Optional[str] = None

    def message_dict(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [dict(call) for call in self.tool_calls]
        return message


@dataclass(frozen=True)
class ProbeResult:
    name: str
    status: Literal["supported", "unsupported", "error"]
    details: str = ""


@dataclass(frozen=True)
class CapabilitiesResult:
    """Outcome of the external capability probe."""

    ok: bool
    azure: bool
    results: List[ProbeResult] = field(default_factory=list)
    endpoint: Optional[str] = None
    deployment: Optional[str] = None
    api_version: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "ok": self.ok,
            "azure": self.azure,
            "results": [
                {"name": item.name, "status": item.status, "details": item.details}
                for item in self.results
            ],
        }
        if self.endpoint is not None:
            result["endpoint"] = self.endpoint
        if self.deployment is not None:
            result["deployment"] = self.deployment
        if self.api_version is not None:
            result["apiVersion"] = self.api_version
        if self.error is not None:
            result["error"] = self.error
        return result
