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

"""Redis-backed durable byte store.

Keys are namespaced so several shells can share one Redis database::

    {kshell}:kernelshell:fs-state    # STRING - snapshot bytes (namespace "kshell")

``clear()`` only deletes keys under the namespace.
"""

from __future__ import annotations

from redis import Redis
from redis.exceptions import RedisError

from ..errors import ByteStoreError

__all__ = ["RedisByteStore"]


class RedisByteStore:
    """Byte store backed by a ``redis.Redis`` client.

    The client must be created with ``decode_responses=False`` so values come
    back as bytes.
    """

    def __init__(self, client: Redis, *, namespace: str = "kshell") -> None:
        super().__init__()
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str, *, namespace: str = "kshell") -> RedisByteStore:
        return cls(Redis.from_url(url, decode_responses=False), namespace=namespace)

    @property
    def namespace(self) -> str:
        return self._namespace

    def _key(self, key: str) -> str:
        return f"{{{self._namespace}}}:{key}"

    def get(self, key: str) -> bytes | None:
        try:
            value = self._client.get(self._key(key))
        except RedisError as error:
            raise ByteStoreError(f"cannot read {key!r}: {error}") from error
        return None if value is None else bytes(value)  # pyright: ignore[reportArgumentType]

    def set(self, key: str, data: bytes) -> None:
        try:
            _ = self._client.set(self._key(key), data)
        except RedisError as error:
            raise ByteStoreError(f"cannot write {key!r}: {error}") from error

    def clear(self) -> None:
        try:
            keys = list(self._client.scan_iter(match=f"{{{self._namespace}}}:*"))
            if keys:
                _ = self._client.delete(*keys)
        except RedisError as error:
            raise ByteStoreError(f"cannot clear byte store: {error}") from error

    def close(self) -> None:
        self._client.close()
