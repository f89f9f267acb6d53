"""SQLAlchemy storage adapters for the event log and the chat configuration."""

import json
import time
from typing import Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import PersistenceError
from ..models import ChatConfig, ConversationSummary, DebugEvent

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id VARCHAR(64) PRIMARY KEY,
        updated_at BIGINT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS conversation_events (
        conversation_id VARCHAR(64) NOT NULL,
        seq INTEGER NOT NULL,
        event_id VARCHAR(64) NOT NULL,
        created_ms BIGINT NOT NULL,
        event_type VARCHAR(16) NOT NULL,
        event_source VARCHAR(16) NOT NULL,
        data TEXT NOT NULL,
        description TEXT NOT NULL,
        PRIMARY KEY (conversation_id, seq)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS config_records (
        name VARCHAR(32) PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
)

CURRENT_CONFIG_KEY = "current"


def create_schema(engine: Engine) -> None:
    """Create the tables used by both repositories if they are missing."""
    with engine.begin() as connection:
        for statement in SCHEMA:
            connection.execute(text(statement))


class SQLAlchemyEventStore:
    """
    Stores each event as one row, ordered by a per-conversation sequence number.

    Every operation runs in its own short-lived session taken from
    ``session_factory``, so one store can serve the event loop and the
    request threadpool at the same time.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def append(self, conversation_id: str, event: DebugEvent) -> None:
        try:
            with self.session_factory.begin() as db:
                next_seq = db.execute(
                    text(
                        """
                        SELECT COALESCE(MAX(seq), -1) + 1
                        FROM conversation_events
                        WHERE conversation_id = :conversation_id
                        """
                    ),
                    {"conversation_id": conversation_id},
                ).scalar_one()

                db.execute(
                    text(
                        """
                        INSERT INTO conversation_events
                            (conversation_id, seq, event_id, created_ms, event_type,
                             event_source, data, description)
                        VALUES
                            (:conversation_id, :seq, :event_id, :created_ms, :event_type,
                             :event_source, :data, :description)
                        """
                    ),
                    {
                        "conversation_id": conversation_id,
                        "seq": next_seq,
                        "event_id": event.id,
                        "created_ms": event.timestamp,
                        "event_type": event.type,
                        "event_source": event.source,
                        "data": json.dumps(dict(event.data), ensure_ascii=False),
                        "description": event.description,
                    },
                )
                _touch(db, conversation_id)
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Failed to append event to {conversation_id}: {exc}") from exc

    def load(self, conversation_id: str) -> Sequence[DebugEvent]:
        try:
            with self.session_factory() as db:
                rows = db.execute(
                    text(
                        """
                        SELECT event_id, created_ms, event_type, event_source, data, description
                        FROM conversation_events
                        WHERE conversation_id = :conversation_id
                        ORDER BY seq ASC
                        """
                    ),
                    {"conversation_id": conversation_id},
                ).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load conversation {conversation_id}: {exc}") from exc

        return [
            DebugEvent(
                id=row.event_id,
                timestamp=int(row.created_ms),
                type=row.event_type,
                source=row.event_source,
                data=_parse_data(row.data),
                description=row.description,
            )
            for row in rows
        ]

    def list(self) -> Sequence[ConversationSummary]:
        try:
            with self.session_factory() as db:
                rows = db.execute(
                    text(
                        """
                        SELECT c.id, c.updated_at, MAX(e.created_ms) AS last_event_ms,
                               COUNT(e.seq) AS event_count
                        FROM conversations c
                        LEFT JOIN conversation_events e ON e.conversation_id = c.id
                        GROUP BY c.id, c.updated_at
                        ORDER BY c.updated_at DESC
                        """
                    )
                ).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to list conversations: {exc}") from exc

        return [
            ConversationSummary(
                conversation_id=row.id,
                last_event_timestamp=int(row.last_event_ms) if row.last_event_ms is not None else None,
                event_count=int(row.event_count or 0),
            )
            for row in rows
        ]

    def clear(self, conversation_id: str) -> None:
        try:
            with self.session_factory.begin() as db:
                db.execute(
                    text("DELETE FROM conversation_events WHERE conversation_id = :conversation_id"),
                    {"conversation_id": conversation_id},
                )
                _touch(db, conversation_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to clear conversation {conversation_id}: {exc}") from exc

    def delete(self, conversation_id: str) -> None:
        try:
            with self.session_factory.begin() as db:
                db.execute(
                    text("DELETE FROM conversation_events WHERE conversation_id = :conversation_id"),
                    {"conversation_id": conversation_id},
                )
                db.execute(
                    text("DELETE FROM conversations WHERE id = :conversation_id"),
                    {"conversation_id": conversation_id},
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to delete conversation {conversation_id}: {exc}") from exc


class SQLAlchemyConfigStore:
    """Keeps the current chat configuration as a JSON document in one row."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self) -> Optional[ChatConfig]:
        try:
            with self.session_factory() as db:
                row = db.execute(
                    text("SELECT value FROM config_records WHERE name = :name"),
                    {"name": CURRENT_CONFIG_KEY},
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load configuration: {exc}") from exc

        if row is None:
            return None
        return ChatConfig.from_dict(_parse_data(row.value))

    def put(self, config: ChatConfig) -> None:
        try:
            with self.session_factory.begin() as db:
                db.execute(text("DELETE FROM config_records WHERE name = :name"), {"name": CURRENT_CONFIG_KEY})
                db.execute(
                    text("INSERT INTO config_records (name, value) VALUES (:name, :value)"),
                    {"name": CURRENT_CONFIG_KEY, "value": json.dumps(config.to_dict())},
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save configuration: {exc}") from exc

    def clear(self) -> None:
        try:
            with self.session_factory.begin() as db:
                db.execute(text("DELETE FROM config_records"))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to clear configuration: {exc}") from exc


def _touch(db: Session, conversation_id: str) -> None:
    params = {"conversation_id": conversation_id, "updated_at": int(time.time() * 1000)}
    updated = db.execute(
        text("UPDATE conversations SET updated_at = :updated_at WHERE id = :conversation_id"),
        params,
    )
    if updated.rowcount == 0:
        db.execute(
            text("INSERT INTO conversations (id, updated_at) VALUES (:conversation_id, :updated_at)"),
            params,
        )


def _parse_data(raw_data) -> dict:
    if raw_data is None:
        return {}
    if isinstance(raw_data, str):
        try:
            raw_data = json.loads(raw_data)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Stored payload is not valid JSON: {exc}") from exc
    if isinstance(raw_data, dict):
        return raw_data
    return {}
