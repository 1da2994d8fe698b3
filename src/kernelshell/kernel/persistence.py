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

"""Write-through persistence of the whole tree after each mutation.

There is no write-ahead log: a crash between the in-memory mutation and the
store write loses that mutation. A successful return from :meth:`persist`
means the snapshot is in the byte store.
"""

from __future__ import annotations

from ..logging import StructuredLogger, get_logger
from ..storage import ByteStore, StorageCapability

__all__ = ["PersistenceCoordinator"]

logger: StructuredLogger = get_logger(__name__, context={"component": "persistence"})


class PersistenceCoordinator:
    """Serialises the tree and writes it under one fixed key."""

    def __init__(self, storage: StorageCapability, store: ByteStore, *, key: str) -> None:
        super().__init__()
        self._storage = storage
        self._store = store
        self._key = key
        self._writes = 0

    @property
    def key(self) -> str:
        return self._key

    @property
    def writes(self) -> int:
        """Number of snapshots written by this coordinator."""
        return self._writes

    def load(self) -> bytes | None:
        """Return the persisted snapshot, if any."""
        return self._store.get(self._key)

    def persist(self) -> int:
        """Write a fresh snapshot and return its size in bytes."""
        snapshot = self._storage.dump_state()
        self._store.set(self._key, snapshot)
        self._writes += 1
        logger.debug(
            "Snapshot persisted",
            event="kernel.persistence.written",
            context={"key": self._key, "bytes": len(snapshot), "writes": self._writes},
        )
        return len(snapshot)
