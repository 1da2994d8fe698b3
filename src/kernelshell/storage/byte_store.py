# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Durable byte store backends (in-memory and SQLite)."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import ByteStoreError

__all__ = ["InMemoryByteStore", "SqliteByteStore"]


def _empty_blobs() -> dict[str, bytes]:
    return {}


@dataclass(slots=True)
class InMemoryByteStore:
    """Thread-safe dict-backed store.

    Data is lost on process exit. ``writes`` and ``clears`` count calls so
    tests can assert that read-only operations never persist.
    """

    _blobs: dict[str, bytes] = field(default_factory=_empty_blobs)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    writes: int = 0
    clears: int = 0

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._blobs.get(key)

    def set(self, key: str, data: bytes) -> None:
        with self._lock:
            self._blobs[key] = bytes(data)
            self.writes += 1

    def clear(self) -> None:
        with self._lock:
            self._blobs.clear()
            self.clears += 1

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)


class SqliteByteStore:
    """Byte store persisted in a single SQLite table.

    The connection is shared between the kernel thread and the interpreter
    thread (``sudo reset`` clears from the latter), so every statement runs
    under one lock.
    """

    def __init__(self, path: Path | str) -> None:
        super().__init__()
        self._path = Path(path)
        self._lock = threading.Lock()
        try:
            if str(self._path) != ":memory:":
                self._path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
            with self._conn:
                _ = self._conn.execute(
                    "CREATE TABLE IF NOT EXISTS blobs (key TEXT PRIMARY KEY, value BLOB NOT NULL)"
                )
        except (OSError, sqlite3.Error) as error:
            raise ByteStoreError(f"cannot open byte store at {self._path}: {error}") from error

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> bytes | None:
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT value FROM blobs WHERE key = ?", (key,)
                ).fetchone()
            except sqlite3.Error as error:
                raise ByteStoreError(f"cannot read {key!r}: {error}") from error
        return None if row is None else bytes(row[0])

    def set(self, key: str, data: bytes) -> None:
        with self._lock:
            try:
                with self._conn:
                    _ = self._conn.execute(
                        "INSERT INTO blobs (key, value) VALUES (?, ?) "
                        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                        (key, sqlite3.Binary(data)),
                    )
            except sqlite3.Error as error:
                raise ByteStoreError(f"cannot write {key!r}: {error}") from error

    def clear(self) -> None:
        with self._lock:
            try:
                with self._conn:
                    _ = self._conn.execute("DELETE FROM blobs")
            except sqlite3.Error as error:
                raise ByteStoreError(f"cannot clear byte store: {error}") from error

    def close(self) -> None:
        with self._lock:
            self._conn.close()
