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

"""Stat records and business errors reported by storage backends."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..errors import KernelShellError


@dataclass(slots=True, frozen=True)
class Stat:
    """Metadata for an existing path.

    Exactly one of ``is_dir`` and ``is_file`` is true. ``size`` is the byte
    length of a file and ``0`` for directories.
    """

    is_dir: bool
    is_file: bool
    size: int

    def __post_init__(self) -> None:
        if self.is_dir == self.is_file:
            raise ValueError("Stat must describe either a file or a directory.")
        if self.size < 0:
            raise ValueError(f"size must be non-negative, got {self.size}")

    @classmethod
    def directory(cls) -> Stat:
        return cls(is_dir=True, is_file=False, size=0)

    @classmethod
    def file(cls, size: int) -> Stat:
        return cls(is_dir=False, is_file=True, size=size)

    def to_dict(self) -> dict[str, Any]:
        return {"is_dir": self.is_dir, "is_file": self.is_file, "size": self.size}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Stat:
        return cls(
            is_dir=bool(data["is_dir"]),
            is_file=bool(data["is_file"]),
            size=int(data["size"]),
        )


class StorageError(KernelShellError):
    """Business error raised by a storage backend.

    ``str(error)`` is the human-readable message the shell prints verbatim.
    """


class NotFound(StorageError, FileNotFoundError):
    """The path (or its parent) does not exist."""


class AlreadyExists(StorageError, FileExistsError):
    """The destination path is already taken."""


class NotADirectory(StorageError, NotADirectoryError):
    """A directory was required but the path is a file."""


class IsADirectory(StorageError, IsADirectoryError):
    """A file was required but the path is a directory."""


class DirectoryNotEmpty(StorageError, OSError):
    """The directory still has children."""


class InvalidOperation(StorageError, ValueError):
    """The request is structurally impossible (e.g. moving a dir into itself)."""


__all__ = [
    "AlreadyExists",
    "DirectoryNotEmpty",
    "InvalidOperation",
    "IsADirectory",
    "NotADirectory",
    "NotFound",
    "Stat",
    "StorageError",
]
