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


from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterator
from typing import Protocol

import pytest

from kernelshell.config import ShellConfig
from kernelshell.host import ShellHost
from kernelshell.kernel import KernelWorker, MessageChannel, WireMessage
from kernelshell.storage import InMemoryByteStore, InMemoryStorage


class ShellRunner(Protocol):
    def __call__[T](
        self,
        scenario: Callable[[ShellHost], Awaitable[T]],
        *,
        store: InMemoryByteStore | None = None,
    ) -> T:
        """Boot a host, run ``scenario`` against it and shut it down."""


@pytest.fixture
def config() -> ShellConfig:
    return ShellConfig(start_timeout=10.0)


@pytest.fixture
def byte_store() -> InMemoryByteStore:
    return InMemoryByteStore()


@pytest.fixture
def channels() -> tuple[MessageChannel[WireMessage], MessageChannel[WireMessage]]:
    requests: MessageChannel[WireMessage] = MessageChannel(name="requests")
    responses: MessageChannel[WireMessage] = MessageChannel(name="responses")
    return requests, responses


@pytest.fixture
def booted_worker(config: ShellConfig, byte_store: InMemoryByteStore) -> KernelWorker:
    """Worker whose bootstrap already ran, for calling ``handle`` directly."""

    requests: MessageChannel[WireMessage] = MessageChannel(name="requests")
    responses: MessageChannel[WireMessage] = MessageChannel(name="responses")
    worker = KernelWorker(
        InMemoryStorage(),
        byte_store,
        requests=requests,
        responses=responses,
        config=config,
    )
    worker.bootstrap.run()
    return worker


@pytest.fixture
def run_shell(config: ShellConfig, byte_store: InMemoryByteStore) -> Iterator[ShellRunner]:
    hosts: list[ShellHost] = []

    def runner[T](
        scenario: Callable[[ShellHost], Awaitable[T]],
        *,
        store: InMemoryByteStore | None = None,
    ) -> T:
        host = ShellHost(config, store if store is not None else byte_store)
        hosts.append(host)

        async def _run() -> T:
            await host.start()
            try:
                return await scenario(host)
            finally:
                await host.stop()

        return asyncio.run(_run())

    yield runner

    for host in hosts:
        host.close()
