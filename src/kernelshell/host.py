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


"""Hosting environment: wires the byte store, kernel worker and client.

:class:`ShellHost` plays the part of the page that embeds the terminal. It
starts the kernel thread, waits for ``ready``, hands out a
:class:`~kernelshell.terminal.Terminal`, and implements the reload that
follows ``sudo reset --confirm``. A reload replaces the terminal, so callers
should read :attr:`ShellHost.terminal` again after each command.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from .client import KernelClient, KernelFatalError
from .config import ShellConfig
from .errors import ConfigError
from .kernel import KernelWorker, MessageChannel, WireMessage
from .logging import StructuredLogger, get_logger
from .storage import (
    ByteStore,
    InMemoryByteStore,
    InMemoryStorage,
    RedisByteStore,
    SqliteByteStore,
    StorageCapability,
)
from .terminal import Terminal

__all__ = ["ShellHost", "open_byte_store"]

logger: StructuredLogger = get_logger(__name__, context={"component": "host"})

type PathCallback = Callable[[str], None]


def open_byte_store(config: ShellConfig, *, memory: bool = False) -> ByteStore:
    """Select the durable store for ``config``.

    ``memory`` wins over everything, then ``redis_url``, then the SQLite file
    at ``store_path``.

    Raises:
        ConfigError: ``redis_url`` is not a valid Redis URL.
        ByteStoreError: The SQLite file cannot be opened.
    """
    if memory:
        return InMemoryByteStore()
    if config.redis_url:
        try:
            return RedisByteStore.from_url(config.redis_url)
        except ValueError as error:
            raise ConfigError(f"invalid redis_url {config.redis_url!r}: {error}") from error
    return SqliteByteStore(config.store_path.expanduser())


class ShellHost:
    """Owns one kernel and the terminal attached to it."""

    def __init__(
        self,
        config: ShellConfig,
        store: ByteStore,
        *,
        storage_factory: Callable[[], StorageCapability] = InMemoryStorage,
        on_open: PathCallback | None = None,
        on_edit: PathCallback | None = None,
    ) -> None:
        super().__init__()
        self._config = config
        self._store = store
        self._storage_factory = storage_factory
        self._on_open = on_open
        self._on_edit = on_edit
        self._worker: KernelWorker | None = None
        self._client: KernelClient | None = None
        self._terminal: Terminal | None = None
        self._reloads = 0

    @property
    def config(self) -> ShellConfig:
        return self._config

    @property
    def store(self) -> ByteStore:
        return self._store

    @property
    def reloads(self) -> int:
        return self._reloads

    @property
    def worker(self) -> KernelWorker:
        if self._worker is None:
            raise RuntimeError("ShellHost is not running")
        return self._worker

    @property
    def client(self) -> KernelClient:
        if self._client is None:
            raise RuntimeError("ShellHost is not running")
        return self._client

    @property
    def terminal(self) -> Terminal:
        if self._terminal is None:
            raise RuntimeError("ShellHost is not running")
        return self._terminal

    async def start(self) -> None:
        """Start the kernel and wait until it is ready.

        Raises:
            KernelFatalError: Bootstrap failed or did not finish within
                ``config.start_timeout`` seconds.
        """
        if self._client is not None:
            raise RuntimeError("ShellHost already running")

        requests: MessageChannel[WireMessage] = MessageChannel(name="requests")
        responses: MessageChannel[WireMessage] = MessageChannel(name="responses")
        worker = KernelWorker(
            self._storage_factory(),
            self._store,
            requests=requests,
            responses=responses,
            config=self._config,
        )
        client = KernelClient(requests, responses)
        self._worker = worker
        self._client = client
        worker.start()
        try:
            await asyncio.wait_for(client.start(), timeout=self._config.start_timeout)
        except TimeoutError as error:
            await self.stop()
            raise KernelFatalError(
                f"Kernel did not become ready within {self._config.start_timeout}s"
            ) from error
        except KernelFatalError:
            await self.stop()
            raise

        self._terminal = Terminal(client, config=self._config, hooks=self)
        logger.info("Shell host started", event="host.started")

    async def stop(self) -> None:
        """Stop the client and the kernel thread; safe to call twice."""
        client, worker = self._client, self._worker
        self._client = self._worker = self._terminal = None
        if client is not None:
            await client.stop()
        if worker is not None:
            stopped = await asyncio.to_thread(worker.stop)
            if not stopped:
                logger.warning("Kernel thread did not exit", event="host.worker_stuck")

    async def reload(self) -> None:
        """Tear the kernel down and boot it again against the same store."""
        await self.stop()
        await self.start()
        self._reloads += 1
        logger.info("Shell host reloaded", event="host.reloaded")

    def close(self) -> None:
        """Release the byte store's connection, if it holds one."""
        if isinstance(self._store, SqliteByteStore | RedisByteStore):
            self._store.close()

    # ---- TerminalHooks ----

    def open_viewer(self, path: str) -> None:
        logger.info("Open viewer", event="host.open_viewer", context={"path": path})
        if self._on_open is not None:
            self._on_open(path)

    def open_editor(self, path: str) -> None:
        logger.info("Open editor", event="host.open_editor", context={"path": path})
        if self._on_edit is not None:
            self._on_edit(path)

    async def reset_storage(self) -> None:
        await self.stop()
        try:
            self._store.clear()
        finally:
            await self.start()
        self._reloads += 1
        logger.warning("Filesystem reset", event="host.reset")
