"""Completion client backed by the openai SDK (OpenAI-compatible and Azure endpoints)."""

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx
from openai import APIError, APIStatusError, AsyncAzureOpenAI, AsyncOpenAI

from ..errors import RemoteCallError
from ..models import ChatConfig, Completion, CompletionRequest

logger = logging.getLogger(__name__)


class OpenAICompletionClient:
    """
    Runs non-streaming chat completions with tools.

    A fresh SDK client is built from the ChatConfig of each call, so no
    credentials are held between requests. SDK retries are disabled; retrying
    is left to the user.
    """

    def __init__(
        self,
        timeout: float = 60.0,
        max_retries: int = 0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.http_client = http_client

    def _build_client(self, config: ChatConfig):
        headers: Dict[str, str] = {}
        if config.site_url:
            headers["HTTP-Referer"] = config.site_url
        if config.site_name:
            headers["X-Title"] = config.site_name

        if config.azure_api_version and config.azure_deployment:
            return AsyncAzureOpenAI(
                api_key=config.api_key,
                azure_endpoint=config.api_endpoint,
                azure_deployment=config.azure_deployment,
                api_version=config.azure_api_version,
                default_headers=headers or None,
                timeout=self.timeout,
                max_retries=self.max_retries,
                http_client=self.http_client,
            )

        return AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.api_endpoint or None,
            default_headers=headers or None,
            timeout=self.timeout,
            max_retries=self.max_retries,
            http_client=self.http_client,
        )

    async def complete(self, config: ChatConfig, request: CompletionRequest) -> Completion:
        client = self._build_client(config)
        params: Dict[str, Any] = {
            "model": request.model,
            "messages": [dict(message) for message in request.messages],
            "tool_choice": request.tool_choice,
            "stream": False,
        }
        if request.tools:
            params["tools"] = [dict(tool) for tool in request.tools]
        if request.include_reasoning:
            params["extra_body"] = {"include_reasoning": True}

        logger.debug(
            "Calling %s with model %s (%d messages)",
            config.api_endpoint or "default endpoint",
            request.model,
            len(request.messages),
        )
        try:
            raw_response = await client.chat.completions.with_raw_response.create(**params)
            body = raw_response.http_response.json()
        except APIStatusError as exc:
            raise RemoteCallError(_status_error_message(exc), status_code=exc.status_code) from exc
        except APIError as exc:
            raise RemoteCallError(exc.message or str(exc)) from exc
        except ValueError as exc:
            raise RemoteCallError(f"Malformed completion response: {exc}") from exc
        finally:
            if self.http_client is None:
                await client.close()

        if not isinstance(body, Mapping):
            raise RemoteCallError("Malformed completion response: expected a JSON object")
        return parse_completion(body)


def parse_completion(raw: Mapping[str, Any]) -> Completion:
    """Map a chat-completion response body onto a Completion."""
    choices = raw.get("choices") or []
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], Mapping):
        raise RemoteCallError("Malformed completion response: no choices")

    message = choices[0].get("message")
    if not isinstance(message, Mapping):
        raise RemoteCallError("Malformed completion response: no message")

    tool_calls: List[Dict[str, Any]] = []
    raw_calls = message.get("tool_calls") or []
    if not isinstance(raw_calls, list):
        raise RemoteCallError("Malformed completion response: tool_calls is not a list")
    for call in raw_calls:
        if not isinstance(call, Mapping):
            raise RemoteCallError("Malformed completion response: tool call is not an object")
        function = call.get("function") or {}
        if not isinstance(function, Mapping):
            raise RemoteCallError("Malformed completion response: tool call function is not an object")
        tool_calls.append(
            {
                "id": call.get("id"),
                "type": call.get("type") or "function",
                "function": {
                    "name": function.get("name"),
                    "arguments": function.get("arguments"),
                },
            }
        )

    usage = raw.get("usage")
    return Completion(
        content=message.get("content") or "",
        tool_calls=tuple(tool_calls),
        reasoning=message.get("reasoning") or message.get("reasoning_content") or None,
        usage=dict(usage) if isinstance(usage, Mapping) else None,
        model=raw.get("model"),
        id=raw.get("id"),
    )


def _status_error_message(exc: APIStatusError) -> str:
    body = exc.body
    if isinstance(body, Mapping):
        error = body.get("error", body)
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
    return exc.message or f"HTTP {exc.status_code}"
