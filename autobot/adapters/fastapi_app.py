"""FastAPI surface: configuration, chat turns, conversation views and the debug websocket."""

import json
import logging
import time
from typing import List, Optional

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..broadcast import DebugEventBroadcaster
from ..errors import AutobotError, NotConfigured, PersistenceError, RemoteCallError, ValidationError
from ..models import DEFAULT_MODEL, ChatConfig
from ..ports import ConfigStore
from ..probe import CapabilitiesProbe
from ..service import ChatService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    NotConfigured: 400,
    RemoteCallError: 502,
    PersistenceError: 500,
}


class ConfigBody(BaseModel):
    apiEndpoint: str = ""
    apiKey: str = ""
    model: Optional[str] = None
    includeReasoning: bool = False
    siteUrl: Optional[str] = None
    siteName: Optional[str] = None
    azureApiVersion: Optional[str] = None
    azureDeployment: Optional[str] = None


class ChatBody(BaseModel):
    message: str = ""
    conversationId: Optional[str] = None
    cursor: Optional[int] = None


class ModelBody(BaseModel):
    model: str


def create_app(
    service: ChatService,
    config_store: ConfigStore,
    broadcaster: Optional[DebugEventBroadcaster] = None,
    probe: Optional[CapabilitiesProbe] = None,
    cors_origins: Optional[List[str]] = None,
    default_model: Optional[str] = None,
) -> FastAPI:
    """Build the HTTP application around an already wired ChatService."""
    app = FastAPI(title="Autobot", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    probe = probe or CapabilitiesProbe()

    @app.exception_handler(AutobotError)
    async def autobot_error_handler(request: Request, exc: AutobotError) -> JSONResponse:
        status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content={"error": str(exc)})

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "timestamp": int(time.time() * 1000)}

    @app.get("/api/config")
    def get_config() -> dict:
        config = config_store.get()
        if config is None:
            return {"configured": False}
        return config.public_dict()

    @app.post("/api/config")
    def save_config(body: ConfigBody) -> dict:
        if not body.apiKey or not body.apiEndpoint:
            raise ValidationError("Missing required configuration")
        config = ChatConfig(
            api_endpoint=body.apiEndpoint,
            api_key=body.apiKey,
            model=body.model or default_model or DEFAULT_MODEL,
            include_reasoning=body.includeReasoning,
            site_url=body.siteUrl,
            site_name=body.siteName,
            azure_api_version=body.azureApiVersion,
            azure_deployment=body.azureDeployment,
        )
        config_store.put(config)
        logger.info("Configuration saved for endpoint %s (model %s)", config.api_endpoint, config.model)
        return {"success": True, "message": "Configuration saved"}

    @app.post("/api/chat")
    async def chat(body: ChatBody):
        config = config_store.get()
        if config is None:
            raise NotConfigured("LLM service not configured")

        conversation_id = body.conversationId or service.new_conversation()
        try:
            result = await service.send_message(conversation_id, body.message, config, cursor=body.cursor)
        except RemoteCallError as exc:
            return JSONResponse(
                status_code=502,
                content={"error": exc.message, "conversationId": conversation_id},
            )

        return {
            "conversationId": conversation_id,
            "message": result.message.to_dict() if result.message else None,
            "debugEvents": [event.to_dict() for event in result.events],
        }

    @app.get("/api/conversations")
    def list_conversations() -> dict:
        return {"conversations": [summary.to_dict() for summary in service.list_conversations()]}

    @app.post("/api/conversations")
    def create_conversation() -> dict:
        return {"conversationId": service.new_conversation()}

    @app.get("/api/conversations/{conversation_id}")
    def get_conversation(conversation_id: str, cursor: Optional[int] = Query(None, ge=-1)) -> dict:
        return service.conversation_view(conversation_id, cursor=cursor)

    @app.post("/api/conversations/{conversation_id}/clear")
    def clear_conversation(conversation_id: str) -> dict:
        service.clear_conversation(conversation_id)
        return {"success": True}

    @app.delete("/api/conversations/{conversation_id}")
    def delete_conversation(conversation_id: str) -> dict:
        service.delete_conversation(conversation_id)
        return {"success": True}

    @app.post("/api/conversations/{conversation_id}/model")
    def change_model(conversation_id: str, body: ModelBody) -> dict:
        event = service.record_model_change(conversation_id, body.model)
        return {"event": event.to_dict()}

    @app.post("/api/capabilities")
    async def capabilities() -> dict:
        result = await probe.run(config_store.get())
        return result.to_dict()

    @app.get("/api/tools")
    def tools() -> dict:
        return {"tools": [dict(tool) for tool in service.tools]}

    @app.websocket("/ws")
    async def debug_events(ws: WebSocket):
        await ws.accept()
        if broadcaster is None:
            await ws.close()
            return

        broadcaster.subscribe(ws.send_json)
        logger.info("Debug websocket client connected")
        try:
            while True:
                try:
                    data = json.loads(await ws.receive_text())
                except ValueError:
                    continue
                if isinstance(data, dict) and data.get("type") == "ping":
                    await ws.send_json({"type": "pong"})
        except WebSocketDisconnect:
            logger.info("Debug websocket client disconnected")
        finally:
            broadcaster.unsubscribe(ws.send_json)

    return app
