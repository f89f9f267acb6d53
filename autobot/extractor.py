"""A2UI: turning render_ui_component tool calls into UI component descriptors."""

import json
import uuid
from typing import Any, Mapping

from .errors import ExtractionError
from .models import UIComponent

RENDER_UI_COMPONENT = "render_ui_component"
MAX_COMPONENT_DEPTH = 16

RENDER_UI_COMPONENT_TOOL = {
    "type": "function",
    "function": {
        "name": RENDER_UI_COMPONENT,
        "description": (
            "Render an interactive UI component (button, card, chart, list, form, "
            "table, progress bar, or alert) in the chat interface"
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "type": {
                    "type": "string",
                    "enum": ["button", "card", "list", "chart", "form", "table", "progress", "alert"],
                    "description": "The type of UI component to render",
                },
                "props": {
                    "type": "object",
                    "description": "Component-specific properties",
                },
            },
            "required": ["type", "props"],
        },
    },
}

A2UI_SYSTEM_PROMPT = """You are a helpful AI assistant with the ability to create interactive UI components using the A2UI (Agent-to-UI) protocol.

You can enhance your responses by rendering visual components such as:
- Buttons: Interactive actions
- Cards: Rich content with images and actions
- Lists: Organized information
- Charts: Data visualizations (bar charts only)
- Forms: User input collection
- Tables: Structured data display
- Progress bars: Task completion status
- Alerts: Important notifications

When appropriate, use the render_ui_component function to create these components. For example:
- Show data as a chart instead of plain text
- Present options as buttons
- Display information as cards
- Create interactive forms for user input

Always provide both textual context and visual components when it enhances understanding."""


def is_render_call(tool_call: Mapping[str, Any]) -> bool:
    function = tool_call.get("function")
    return isinstance(function, Mapping) and function.get("name") == RENDER_UI_COMPONENT


def extract_component(tool_call: Mapping[str, Any]) -> UIComponent:
    """
    Parse a render_ui_component tool call into a UIComponent.

    The component always gets a fresh id; any id supplied by the model is
    ignored. Unknown component types are passed through unchanged.

    Raises:
        ExtractionError: the call is not a render call, its arguments are
            not a JSON object with a string ``type``, or children nest deeper
            than MAX_COMPONENT_DEPTH.
    """
    if not is_render_call(tool_call):
        raise ExtractionError(f"Not a {RENDER_UI_COMPONENT} call")

    raw_arguments = tool_call["function"].get("arguments")
    if isinstance(raw_arguments, Mapping):
        arguments = raw_arguments
    else:
        try:
            arguments = json.loads(raw_arguments or "")
        except (TypeError, ValueError, RecursionError) as exc:
            raise ExtractionError(f"Invalid tool call arguments: {exc}") from exc

    return _build_component(arguments)


def _build_component(arguments: Any, depth: int = 0) -> UIComponent:
    if depth > MAX_COMPONENT_DEPTH:
        raise ExtractionError(f"Components nest deeper than {MAX_COMPONENT_DEPTH} levels")
    if not isinstance(arguments, Mapping):
        raise ExtractionError("Tool call arguments must be a JSON object")

    component_type = arguments.get("type")
    if not isinstance(component_type, str) or not component_type:
        raise ExtractionError("Tool call arguments are missing a component type")

    props = arguments.get("props")
    children = arguments.get("children") or ()
    if not isinstance(children, list):
        children = ()

    return UIComponent(
        id=str(uuid.uuid4()),
        type=component_type,
        props=dict(props) if isinstance(props, Mapping) else {},
        children=tuple(_build_component(child, depth + 1) for child in children),
    )
