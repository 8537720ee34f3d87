from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Optional, Protocol

from pydantic import ValidationError

from request_hub.models.request import RequestRecord


class CollectionSerializationError(ValueError):
    """The persisted collection could not be decoded into request records."""


class RevisionConflictError(RuntimeError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Collection revision changed (expected {expected}, found {actual})")
        self.expected = expected
        self.actual = actual


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryBackend:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class JsonFileBackend:
    """One JSON file per key inside ``directory``.

    Writes go through a temp file in the same directory followed by
    ``os.replace`` so readers never observe a half-written blob.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        try:
            return self.path_for(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        target = self.path_for(key)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, target)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)


class RequestStore:
    """The whole request collection, stored as one JSON array under one key.

    Every save replaces the full blob and bumps ``revision``; callers that read
    a revision with ``snapshot()`` can pass it back to ``save()`` to detect a
    write that happened in between.
    """

    def __init__(self, backend: KeyValueBackend, key: str) -> None:
        self.lock = RLock()
        self.backend = backend
        self.key = key
        self.revision = 0

    def load(self) -> list[RequestRecord]:
        with self.lock:
            raw = self.backend.get(self.key)
        if raw is None or not raw.strip():
            return []

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CollectionSerializationError(f"Stored collection is not valid JSON: {exc.msg}") from exc

        if not isinstance(payload, list):
            raise CollectionSerializationError("Stored collection must be a JSON array")

        records: list[RequestRecord] = []
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                raise CollectionSerializationError(f"Entry {index} is not an object")
            try:
                records.append(RequestRecord.model_validate(item))
            except ValidationError as exc:
                raise CollectionSerializationError(f"Entry {index} is not a valid request: {exc}") from exc
        return records

    def snapshot(self) -> tuple[list[RequestRecord], int]:
        with self.lock:
            return self.load(), self.revision

    def save(self, records: list[RequestRecord], expected_revision: int | None = None) -> int:
        blob = json.dumps([record.to_storage() for record in records], indent=2)
        with self.lock:
            if expected_revision is not None and expected_revision != self.revision:
                raise RevisionConflictError(expected_revision, self.revision)
            self.backend.set(self.key, blob)
            self.revision += 1
            return self.revision

    def reset(self) -> None:
        with self.lock:
            self.backend.set(self.key, "[]")
            self.revision = 0


def build_backend(kind: str, data_dir: Path) -> KeyValueBackend:
    if kind == "memory":
        return InMemoryBackend()
    if kind == "file":
        return JsonFileBackend(data_dir)
    raise ValueError(f"Unknown storage backend '{kind}'")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
