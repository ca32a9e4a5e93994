"""Flat-JSON storage adapter.

One file per collection under the data directory, each holding
``{"<collection>": [record, ...]}``. Every operation re-reads the file, so
several processes may share a data directory, but only operations within
one process are serialized (by the storage lock).
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

from .errors import Conflict, Internal
from .models import Marathon, Participation, User, to_plain
from .storage import Collection, Storage, matches

logger = logging.getLogger(__name__)

R = TypeVar("R")


class JsonCollection(Collection[R], Generic[R]):
    def __init__(
        self,
        storage: "JsonStorage",
        name: str,
        record_cls: type,
        key_of: Callable[[Any], Hashable],
        auto_id: bool,
    ):
        self._storage = storage
        self._name = name
        self._record_cls = record_cls
        self._key_of = key_of
        self._auto_id = auto_id
        self._field_names = {f.name for f in fields(record_cls)}

    @property
    def path(self) -> Path:
        return self._storage.data_dir / f"{self._name}.json"

    def _read(self) -> list[R]:
        path = self.path
        if not path.exists():
            self._write([])
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            rows = data.get(self._name, [])
            return [
                self._record_cls(**{k: v for k, v in row.items() if k in self._field_names})
                for row in rows
            ]
        except (OSError, ValueError, TypeError) as e:
            raise Internal(f"Could not read {path.name}: {e}") from e

    def _write(self, records: list[R]) -> None:
        path = self.path
        payload = {self._name: [to_plain(r) for r in records]}
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self._name}.", suffix=".tmp", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise Internal(f"Could not write {path.name}: {e}") from e

    def _normalize_key(self, key: Hashable) -> Hashable:
        if isinstance(key, tuple):
            return tuple(int(k) for k in key)
        return int(key)

    def list(self, **filters: Any) -> list[R]:
        with self._storage.lock:
            return [r for r in self._read() if matches(r, filters)]

    def get(self, key: Hashable) -> Optional[R]:
        key = self._normalize_key(key)
        with self._storage.lock:
            for r in self._read():
                if self._key_of(r) == key:
                    return r
        return None

    def insert(self, record: R) -> R:
        with self._storage.lock:
            records = self._read()
            if self._auto_id and getattr(record, "id") is None:
                next_id = max((r.id or 0 for r in records), default=0) + 1
                record = replace(record, id=next_id)
            key = self._key_of(record)
            if any(self._key_of(r) == key for r in records):
                raise Conflict(f"{self._name} record {key} already exists")
            records.append(record)
            self._write(records)
            return record

    def update(self, key: Hashable, **changes: Any) -> Optional[R]:
        key = self._normalize_key(key)
        with self._storage.lock:
            records = self._read()
            for i, r in enumerate(records):
                if self._key_of(r) == key:
                    records[i] = replace(r, **changes)
                    self._write(records)
                    return records[i]
        return None

    def delete(self, key: Hashable) -> bool:
        key = self._normalize_key(key)
        with self._storage.lock:
            records = self._read()
            kept = [r for r in records if self._key_of(r) != key]
            if len(kept) == len(records):
                return False
            self._write(kept)
            return True


class JsonStorage(Storage):
    def __init__(self, data_dir: str | os.PathLike):
        super().__init__()
        self.data_dir = Path(data_dir)
        self.lock = threading.RLock()
        self.marathons = JsonCollection(self, "marathons", Marathon, lambda r: r.id, auto_id=True)
        self.users = JsonCollection(self, "users", User, lambda r: r.id, auto_id=True)
        self.participations = JsonCollection(
            self, "participations", Participation, lambda r: r.key, auto_id=False
        )

    def open(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("JSON store opened at %s", self.data_dir.resolve())

    def close(self) -> None:
        logger.info("JSON store closed")
