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

"""Awaitable RPC facade over the kernel's fire-and-forget channels.

Every call gets a fresh correlation id and an ``asyncio.Future`` in the
pending table. A pump thread drains the response channel and hands each
message to the event loop, where it resolves the matching future exactly
once. Messages with unknown ids (late, duplicate or foreign) are discarded.

There is no transport-level timeout. Wrap a call in ``asyncio.wait_for`` to
bound the caller's wait; the kernel still completes the operation.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, cast

from .errors import KernelShellError, ProtocolError
from .kernel.channel import ChannelClosedError, MessageChannel
from .kernel.protocol import (
    CpRequest,
    ErrorInfo,
    Fatal,
    HelloRequest,
    MkdirRequest,
    MvRequest,
    ReaddirRequest,
    ReadFileRequest,
    Ready,
    Request,
    Response,
    RmdirRequest,
    RmRequest,
    StatRequest,
    WriteFileRequest,
    from_wire,
    to_wire,
)
from .kernel.worker import WireMessage
from .logging import StructuredLogger, get_logger
from .storage import Stat

__all__ = [
    "KernelClient",
    "KernelClosedError",
    "KernelFatalError",
    "KernelNotReadyError",
    "KernelRemoteError",
    "TransportError",
]

logger: StructuredLogger = get_logger(__name__, context={"component": "kernel_client"})


class TransportError(KernelShellError):
    """Base class for failures of the RPC transport itself."""


class KernelNotReadyError(TransportError):
    """Raised when calling before the kernel announced ``ready``."""


class KernelClosedError(TransportError):
    """Raised for calls still pending when the client is stopped."""


class KernelFatalError(TransportError):
    """Raised by :meth:`KernelClient.start` when bootstrap failed."""

    def __init__(self, message: str, trace: str | None = None) -> None:
        super().__init__(message)
        self.trace = trace


class KernelRemoteError(KernelShellError):
    """Business error reported by the kernel; ``str()`` is the remote message."""

    def __init__(self, message: str, trace: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.trace = trace

    @classmethod
    def from_info(cls, info: ErrorInfo) -> KernelRemoteError:
        return cls(info.message, info.trace)


class KernelClient:
    """Correlates requests and responses over a pair of channels."""

    def __init__(
        self,
        requests: MessageChannel[WireMessage],
        responses: MessageChannel[WireMessage],
    ) -> None:
        super().__init__()
        self._requests = requests
        self._responses = responses
        self._pending: dict[str, asyncio.Future[Any]] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._lifecycle: asyncio.Future[Ready | Fatal] | None = None
        self._pump: threading.Thread | None = None
        self._ready = False
        self._closed = False

    @property
    def ready(self) -> bool:
        return self._ready and not self._closed

    @property
    def pending_count(self) -> int:
        """Number of calls awaiting a response."""
        return len(self._pending)

    async def start(self) -> None:
        """Begin receiving and wait for the kernel's lifecycle signal.

        Raises:
            KernelFatalError: The kernel reported a bootstrap failure.
        """
        if self._pump is not None:
            raise RuntimeError("KernelClient already started")
        self._loop = asyncio.get_running_loop()
        self._lifecycle = self._loop.create_future()
        self._pump = threading.Thread(
            target=self._pump_loop, daemon=True, name="kernel-client-pump"
        )
        self._pump.start()

        signal = await self._lifecycle
        if isinstance(signal, Fatal):
            raise KernelFatalError(signal.error.message, signal.error.trace)
        self._ready = True

    async def stop(self) -> None:
        """Stop receiving and fail every call still pending."""
        self._closed = True
        self._responses.close()
        if self._pump is not None:
            await asyncio.to_thread(self._pump.join, 1.0)
            self._pump = None
        for future in self._pending.values():
            if not future.done():
                future.set_exception(KernelClosedError("Client stopped with pending requests"))
        self._pending.clear()

    async def call(self, request: Request) -> Any:  # noqa: ANN401
        """Send ``request`` and return the kernel's result.

        Raises:
            KernelNotReadyError: The kernel has not announced ``ready``.
            KernelRemoteError: The kernel reported a failure.
            KernelClosedError: The client was stopped before the reply.
        """
        if not self.ready or self._loop is None:
            raise KernelNotReadyError("Kernel not ready")
        if request.id in self._pending:
            raise ProtocolError(f"correlation id already in flight: {request.id}")

        future: asyncio.Future[Any] = self._loop.create_future()
        self._pending[request.id] = future
        try:
            self._requests.send(to_wire(request))
        except ChannelClosedError as error:
            _ = self._pending.pop(request.id, None)
            raise KernelClosedError(str(error)) from error

        try:
            return await future
        finally:
            # A cancelled wait leaves no entry; a late reply is then discarded.
            _ = self._pending.pop(request.id, None)

    # ---- typed helpers ----

    async def hello(self, name: str) -> str:
        return cast(str, await self.call(HelloRequest(name=name)))

    async def fs_mkdir(self, path: str) -> None:
        _ = await self.call(MkdirRequest(path=path))

    async def fs_readdir(self, path: str) -> list[str]:
        return cast(list[str], await self.call(ReaddirRequest(path=path)))

    async def fs_write_file(self, path: str, data: bytes) -> None:
        _ = await self.call(WriteFileRequest(path=path, data=data))

    async def fs_read_file(self, path: str) -> bytes:
        return cast(bytes, await self.call(ReadFileRequest(path=path)))

    async def fs_stat(self, path: str) -> Stat:
        return cast(Stat, await self.call(StatRequest(path=path)))

    async def fs_rm(self, path: str) -> None:
        _ = await self.call(RmRequest(path=path))

    async def fs_rmdir(self, path: str) -> None:
        _ = await self.call(RmdirRequest(path=path))

    async def fs_mv(self, src: str, dst: str) -> None:
        _ = await self.call(MvRequest(src=src, dst=dst))

    async def fs_cp(self, src: str, dst: str) -> None:
        _ = await self.call(CpRequest(src=src, dst=dst))

    # ---- internal ----

    def _pump_loop(self) -> None:
        loop = self._loop
        if loop is None:  # pragma: no cover - start() sets the loop first
            return
        while True:
            payload = self._responses.receive()
            if payload is None:
                break
            try:
                _ = loop.call_soon_threadsafe(self._route, payload)
            except RuntimeError:
                break  # event loop closed

    def _route(self, payload: WireMessage) -> None:
        try:
            message = from_wire(payload)
        except ProtocolError as error:
            logger.warning(
                "Discarding undecodable message",
                event="client.invalid_message",
                context={"error": str(error)},
            )
            return

        if isinstance(message, Ready | Fatal):
            self._on_lifecycle(message)
            return
        if not isinstance(message, Response):
            logger.warning(
                "Discarding unexpected message",
                event="client.unexpected_message",
                context={"type": message.type},
            )
            return

        future = self._pending.pop(message.id, None)
        if future is None or future.done():
            logger.debug(
                "Discarding response for unknown id",
                event="client.unknown_id",
                context={"id": message.id},
            )
            return
        if message.ok:
            future.set_result(message.result)
        else:
            future.set_exception(KernelRemoteError.from_info(cast(ErrorInfo, message.error)))

    def _on_lifecycle(self, signal: Ready | Fatal) -> None:
        if self._lifecycle is None or self._lifecycle.done():
            logger.warning(
                "Ignoring repeated lifecycle signal",
                event="client.duplicate_lifecycle",
                context={"type": signal.type},
            )
            return
        self._lifecycle.set_result(signal)
