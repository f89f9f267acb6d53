"""Adapters for integrating Autobot with storage, completion backends and frameworks."""

from .json_store import JsonFileConfigStore, JsonFileEventStore
from .openai_client import OpenAICompletionClient
from .sqlalchemy_store import SQLAlchemyConfigStore, SQLAlchemyEventStore, create_schema

__all__ = [
    "JsonFileConfigStore",
    "JsonFileEventStore",
    "OpenAICompletionClient",
    "SQLAlchemyConfigStore",
    "SQLAlchemyEventStore",
    "create_schema",
]
