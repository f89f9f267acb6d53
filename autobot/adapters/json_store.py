"""Flat JSON-file storage adapters, one file per conversation."""

import json
import os
import re
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from ..errors import PersistenceError, ValidationError
from ..models import ChatConfig, ConversationSummary, DebugEvent

_CONVERSATION_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class JsonFileEventStore:
    """
    Keeps ``conversations/<id>.json`` documents of the form
    ``{"id": ..., "events": [...], "updatedAt": ...}`` under a data directory.

    Every write replaces the whole file through a synced temporary file, so a
    reader never observes a partially written log.
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.root = Path(data_dir) / "conversations"
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def append(self, conversation_id: str, event: DebugEvent) -> None:
        with self._lock:
            document = self._read(conversation_id) or {"id": conversation_id, "events": []}
            document["events"].append(event.to_dict())
            document["updatedAt"] = _now_ms()
            self._write(conversation_id, document)

    def load(self, conversation_id: str) -> Sequence[DebugEvent]:
        document = self._read(conversation_id)
        if document is None:
            return []
        try:
            return [DebugEvent.from_dict(raw) for raw in document.get("events", [])]
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Conversation {conversation_id} holds a malformed event: {exc}") from exc

    def list(self) -> Sequence[ConversationSummary]:
        summaries = []
        for path in self.root.glob("*.json"):
            document = self._read(path.stem)
            if document is None:
                continue
            events = document.get("events", [])
            summaries.append(
                (
                    document.get("updatedAt") or 0,
                    ConversationSummary(
                        conversation_id=path.stem,
                        last_event_timestamp=events[-1]["timestamp"] if events else None,
                        event_count=len(events),
                    ),
                )
            )
        summaries.sort(key=lambda item: item[0], reverse=True)
        return [summary for _, summary in summaries]

    def clear(self, conversation_id: str) -> None:
        with self._lock:
            self._write(conversation_id, {"id": conversation_id, "events": [], "updatedAt": _now_ms()})

    def delete(self, conversation_id: str) -> None:
        with self._lock:
            try:
                self._path(conversation_id).unlink()
            except FileNotFoundError:
                return
            except OSError as exc:
                raise PersistenceError(f"Failed to delete conversation {conversation_id}: {exc}") from exc

    def _path(self, conversation_id: str) -> Path:
        if not _CONVERSATION_ID.match(conversation_id or ""):
            raise ValidationError(f"Invalid conversation id: {conversation_id!r}")
        return self.root / f"{conversation_id}.json"

    def _read(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        return _read_json(self._path(conversation_id))

    def _write(self, conversation_id: str, document: Dict[str, Any]) -> None:
        _write_json(self._path(conversation_id), document)


class JsonFileConfigStore:
    """Keeps the current chat configuration in ``config.json``."""

    def __init__(self, data_dir: Union[str, Path]):
        self.path = Path(data_dir) / "config.json"
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def get(self) -> Optional[ChatConfig]:
        document = _read_json(self.path)
        return ChatConfig.from_dict(document) if document is not None else None

    def put(self, config: ChatConfig) -> None:
        _write_json(self.path, config.to_dict())

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise PersistenceError(f"Failed to clear configuration: {exc}") from exc


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as exc:
        raise PersistenceError(f"Failed to read {path}: {exc}") from exc
    if not isinstance(document, dict):
        raise PersistenceError(f"{path} does not hold a JSON object")
    return document


def _write_json(path: Path, document: Dict[str, Any]) -> None:
    try:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except (OSError, TypeError, ValueError) as exc:
        raise PersistenceError(f"Failed to write {path}: {exc}") from exc


def _now_ms() -> int:
    return int(time.time() * 1000)
