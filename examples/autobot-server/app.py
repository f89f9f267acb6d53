"""Autobot demo server: FastAPI backend with SQLite or JSON-file storage."""

from pathlib import Path

import uvicorn
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from autobot.adapters import (
    JsonFileConfigStore,
    JsonFileEventStore,
    OpenAICompletionClient,
    SQLAlchemyConfigStore,
    SQLAlchemyEventStore,
    create_schema,
)
from autobot.adapters.fastapi_app import create_app
from autobot.broadcast import DebugEventBroadcaster
from autobot.logging_config import configure_logging
from autobot.probe import CapabilitiesProbe
from autobot.service import ChatService
from autobot.settings import get_settings

settings = get_settings()
logger = configure_logging(settings.log_level)


def _build_stores():
    if settings.storage_backend == "json":
        return JsonFileEventStore(settings.data_dir), JsonFileConfigStore(settings.data_dir)

    connect_args = {}
    if settings.database_url.startswith("sqlite:///"):
        Path(settings.database_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        connect_args["check_same_thread"] = False
    engine = create_engine(settings.database_url, connect_args=connect_args)
    create_schema(engine)
    session_factory = sessionmaker(bind=engine)
    return SQLAlchemyEventStore(session_factory), SQLAlchemyConfigStore(session_factory)


event_store, config_store = _build_stores()
broadcaster = DebugEventBroadcaster()
service = ChatService(
    event_store,
    OpenAICompletionClient(timeout=settings.completion_timeout_seconds),
    publisher=broadcaster,
)

app = create_app(
    service,
    config_store,
    broadcaster=broadcaster,
    probe=CapabilitiesProbe(settings.probe_command, timeout=settings.probe_timeout_seconds),
    cors_origins=settings.cors_origins,
    default_model=settings.default_model,
)


if __name__ == "__main__":
    logger.info("Autobot backend running on http://%s:%d (debug events on /ws)", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
