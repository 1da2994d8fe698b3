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

"""Protocols for the storage capability and the durable byte store.

The kernel consumes both only through these contracts:

- ``StorageCapability`` executes filesystem mutations and queries over
  absolute, normalised paths and can serialise the whole tree to bytes.
- ``ByteStore`` persists byte blobs by key across process restarts.

Implementations:

- ``kernelshell.storage.InMemoryStorage``
- ``kernelshell.storage.InMemoryByteStore``, ``SqliteByteStore``,
  ``RedisByteStore``
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ._types import Stat


@runtime_checkable
class StorageCapability(Protocol):
    """Filesystem operations hosted inside the kernel context.

    Every method takes absolute paths. Failures are raised as
    :class:`~kernelshell.storage.StorageError` subclasses whose message is
    shown to the user unchanged.
    """

    def hello(self, name: str) -> str:
        """Return a greeting; used as a liveness probe."""
        ...

    def mkdir(self, path: str) -> None:
        """Create a directory.

        Raises:
            AlreadyExists: The path exists.
            NotFound: The parent directory is missing.
            NotADirectory: The parent is a file.
        """
        ...

    def readdir(self, path: str) -> Sequence[str]:
        """Return the names of the immediate children of ``path``.

        Callers must not rely on any ordering.

        Raises:
            NotFound: The path does not exist.
            NotADirectory: The path is a file.
        """
        ...

    def read_file(self, path: str) -> bytes:
        """Return the raw bytes of a file.

        Raises:
            NotFound: The path does not exist.
            IsADirectory: The path is a directory.
        """
        ...

    def write_file(self, path: str, data: bytes) -> None:
        """Create or overwrite a file.

        Raises:
            NotFound: The parent directory is missing.
            IsADirectory: The path is a directory.
        """
        ...

    def stat(self, path: str) -> Stat:
        """Return metadata for ``path``.

        Raises:
            NotFound: The path does not exist.
        """
        ...

    def rm(self, path: str) -> None:
        """Remove a file.

        Raises:
            NotFound: The path does not exist.
            IsADirectory: The path is a directory.
        """
        ...

    def rmdir(self, path: str) -> None:
        """Remove an empty directory.

        Raises:
            NotFound: The path does not exist.
            NotADirectory: The path is a file.
            DirectoryNotEmpty: The directory has children.
        """
        ...

    def mv(self, src: str, dst: str) -> None:
        """Move a file or directory subtree.

        Raises:
            NotFound: The source or destination parent is missing.
            AlreadyExists: The destination exists.
        """
        ...

    def cp(self, src: str, dst: str) -> None:
        """Copy a file (directories are not supported).

        Raises:
            NotFound: The source is missing.
            IsADirectory: The source or destination is a directory.
        """
        ...

    def dump_state(self) -> bytes:
        """Serialise the whole tree into snapshot bytes."""
        ...

    def load_state(self, data: bytes | None) -> None:
        """Replace the tree with a snapshot, or an empty tree for ``None``.

        Raises:
            SnapshotCorruptError: The bytes are not a valid snapshot.
        """
        ...


@runtime_checkable
class ByteStore(Protocol):
    """Key to byte-blob persistence surviving process restarts."""

    def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or ``None`` when the key is absent."""
        ...

    def set(self, key: str, data: bytes) -> None:
        """Store ``data`` under ``key``, replacing any previous value."""
        ...

    def clear(self) -> None:
        """Delete every key owned by this store."""
        ...


__all__ = ["ByteStore", "StorageCapability"]
