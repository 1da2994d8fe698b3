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

"""In-memory storage capability with byte snapshots.

Example usage::

    from kernelshell.storage import InMemoryStorage

    storage = InMemoryStorage()
    storage.mkdir("/docs")
    storage.write_file("/docs/a.txt", b"hi")
    snapshot = storage.dump_state()

    restored = InMemoryStorage()
    restored.load_state(snapshot)
    assert restored.read_file("/docs/a.txt") == b"hi"
"""

from __future__ import annotations

import base64
import binascii
import json
import posixpath
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, cast

from ..errors import SnapshotCorruptError
from ._types import (
    AlreadyExists,
    DirectoryNotEmpty,
    InvalidOperation,
    IsADirectory,
    NotADirectory,
    NotFound,
    Stat,
)

SNAPSHOT_VERSION: Final[int] = 1
ROOT: Final[str] = "/"

__all__ = ["SNAPSHOT_VERSION", "InMemoryStorage"]


def _empty_files() -> dict[str, bytes]:
    return {}


def _root_only() -> set[str]:
    return {ROOT}


def _clean(path: str) -> str:
    """Return ``path`` as a canonical absolute path."""

    if not path.startswith("/"):
        raise InvalidOperation(f"path must be absolute: {path}")
    cleaned = posixpath.normpath(path)
    # normpath keeps a leading "//" as-is per POSIX.
    return ROOT if cleaned in {"/", "//"} else "/" + cleaned.lstrip("/")


def _parent(path: str) -> str:
    return posixpath.dirname(path) or ROOT


def _is_under(path: str, ancestor: str) -> bool:
    if ancestor == ROOT:
        return path != ROOT
    return path.startswith(ancestor + "/")


@dataclass(slots=True)
class InMemoryStorage:
    """Directory set plus a file map, serialisable to versioned JSON bytes.

    The root directory always exists. Paths are cleaned on entry, so
    ``/docs/`` and ``/docs`` address the same directory.
    """

    _files: dict[str, bytes] = field(default_factory=_empty_files)
    _directories: set[str] = field(default_factory=_root_only)

    def hello(self, name: str) -> str:
        return f"Hello, {name}!"

    # --- Queries ---

    def stat(self, path: str) -> Stat:
        normalized = _clean(path)
        if normalized in self._directories:
            return Stat.directory()
        if normalized in self._files:
            return Stat.file(len(self._files[normalized]))
        raise NotFound(f"no such file or directory: {normalized}")

    def readdir(self, path: str) -> Sequence[str]:
        normalized = self._require_dir(_clean(path))
        names = [
            posixpath.basename(child)
            for child in (*self._directories, *self._files)
            if child != ROOT and _parent(child) == normalized
        ]
        return sorted(names)

    def read_file(self, path: str) -> bytes:
        normalized = _clean(path)
        if normalized in self._directories:
            raise IsADirectory(f"is a directory: {normalized}")
        try:
            return self._files[normalized]
        except KeyError:
            raise NotFound(f"no such file or directory: {normalized}") from None

    # --- Mutations ---

    def mkdir(self, path: str) -> None:
        normalized = _clean(path)
        if normalized in self._directories or normalized in self._files:
            raise AlreadyExists(f"file exists: {normalized}")
        self._require_parent(normalized)
        self._directories.add(normalized)

    def write_file(self, path: str, data: bytes) -> None:
        normalized = _clean(path)
        if normalized in self._directories:
            raise IsADirectory(f"is a directory: {normalized}")
        self._require_parent(normalized)
        self._files[normalized] = bytes(data)

    def rm(self, path: str) -> None:
        normalized = _clean(path)
        if normalized in self._directories:
            raise IsADirectory(f"is a directory: {normalized}")
        if self._files.pop(normalized, None) is None:
            raise NotFound(f"no such file or directory: {normalized}")

    def rmdir(self, path: str) -> None:
        normalized = _clean(path)
        if normalized == ROOT:
            raise InvalidOperation("cannot remove root directory")
        self._require_dir(normalized)
        if self._has_children(normalized):
            raise DirectoryNotEmpty(f"directory not empty: {normalized}")
        self._directories.discard(normalized)

    def mv(self, src: str, dst: str) -> None:
        source = _clean(src)
        target = _clean(dst)
        if source == ROOT:
            raise InvalidOperation("cannot move root directory")
        if source not in self._directories and source not in self._files:
            raise NotFound(f"no such file or directory: {source}")
        if target in self._directories or target in self._files:
            raise AlreadyExists(f"file exists: {target}")
        if _is_under(target, source):
            raise InvalidOperation(f"cannot move {source} into itself")
        self._require_parent(target)

        if source in self._files:
            self._files[target] = self._files.pop(source)
            return

        moved_dirs = {d for d in self._directories if d == source or _is_under(d, source)}
        moved_files = [f for f in self._files if _is_under(f, source)]
        self._directories -= moved_dirs
        self._directories |= {target + d[len(source) :] for d in moved_dirs}
        for file_path in moved_files:
            self._files[target + file_path[len(source) :]] = self._files.pop(file_path)

    def cp(self, src: str, dst: str) -> None:
        source = _clean(src)
        target = _clean(dst)
        if source in self._directories:
            raise IsADirectory(f"is a directory: {source}")
        if source not in self._files:
            raise NotFound(f"no such file or directory: {source}")
        if target in self._directories:
            raise IsADirectory(f"is a directory: {target}")
        self._require_parent(target)
        self._files[target] = self._files[source]

    # --- Snapshots ---

    def dump_state(self) -> bytes:
        document = {
            "version": SNAPSHOT_VERSION,
            "dirs": sorted(self._directories),
            "files": {
                path: base64.b64encode(content).decode("ascii")
                for path, content in sorted(self._files.items())
            },
        }
        return json.dumps(document, separators=(",", ":")).encode("utf-8")

    def load_state(self, data: bytes | None) -> None:
        if data is None:
            self._files = {}
            self._directories = {ROOT}
            return
        directories, files = _decode_snapshot(data)
        self._directories = directories
        self._files = files

    # --- Internals ---

    def _require_dir(self, normalized: str) -> str:
        if normalized in self._files:
            raise NotADirectory(f"not a directory: {normalized}")
        if normalized not in self._directories:
            raise NotFound(f"no such file or directory: {normalized}")
        return normalized

    def _require_parent(self, normalized: str) -> None:
        self._require_dir(_parent(normalized))

    def _has_children(self, normalized: str) -> bool:
        return any(
            _parent(child) == normalized
            for child in (*self._directories, *self._files)
            if child != ROOT
        )


def _decode_snapshot(data: bytes) -> tuple[set[str], dict[str, bytes]]:
    try:
        document: object = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise SnapshotCorruptError(f"snapshot is not valid JSON: {error}") from error

    if not isinstance(document, Mapping):
        raise SnapshotCorruptError("snapshot root must be an object")
    mapping = cast(Mapping[str, Any], document)
    if mapping.get("version") != SNAPSHOT_VERSION:
        raise SnapshotCorruptError(
            f"unsupported snapshot version: {mapping.get('version')!r}"
        )

    raw_dirs = mapping.get("dirs")
    raw_files = mapping.get("files")
    if not isinstance(raw_dirs, list) or not isinstance(raw_files, Mapping):
        raise SnapshotCorruptError("snapshot must contain 'dirs' and 'files'")

    try:
        directories = {_clean(str(d)) for d in cast(list[object], raw_dirs)}
        directories.add(ROOT)
        files = {
            _clean(str(path)): base64.b64decode(str(encoded), validate=True)
            for path, encoded in cast(Mapping[object, object], raw_files).items()
        }
    except (InvalidOperation, binascii.Error) as error:
        raise SnapshotCorruptError(f"snapshot entry is invalid: {error}") from error

    for path in (*directories, *files):
        if path != ROOT and _parent(path) not in directories:
            raise SnapshotCorruptError(f"snapshot entry has no parent: {path}")
    if directories & files.keys():
        raise SnapshotCorruptError("snapshot path is both a file and a directory")
    return directories, files
