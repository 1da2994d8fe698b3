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

"""Storage capability and durable byte store used by the kernel."""

from __future__ import annotations

from ._protocol import ByteStore, StorageCapability
from ._redis import RedisByteStore
from ._types import (
    AlreadyExists,
    DirectoryNotEmpty,
    InvalidOperation,
    IsADirectory,
    NotADirectory,
    NotFound,
    Stat,
    StorageError,
)
from .byte_store import InMemoryByteStore, SqliteByteStore
from .memory import SNAPSHOT_VERSION, InMemoryStorage

__all__ = [
    "SNAPSHOT_VERSION",
    "AlreadyExists",
    "ByteStore",
    "DirectoryNotEmpty",
    "InMemoryByteStore",
    "InMemoryStorage",
    "InvalidOperation",
    "IsADirectory",
    "NotADirectory",
    "NotFound",
    "RedisByteStore",
    "SqliteByteStore",
    "Stat",
    "StorageCapability",
    "StorageError",
]
