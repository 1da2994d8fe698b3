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

"""Background thread hosting the storage capability.

The worker owns the storage backend and the byte store. It bootstraps once,
announces ``ready`` or ``fatal``, then serves requests strictly one at a time
in arrival order. A mutating request is persisted before its response is
posted, so a caller that sees success can rely on durability.

Example::

    requests: MessageChannel[WireMessage] = MessageChannel(name="requests")
    responses: MessageChannel[WireMessage] = MessageChannel(name="responses")
    worker = KernelWorker(
        InMemoryStorage(),
        InMemoryByteStore(),
        requests=requests,
        responses=responses,
        config=ShellConfig(),
    )
    worker.start()
    ...
    worker.stop()
"""

from __future__ import annotations

import threading
import traceback
from collections.abc import Mapping
from typing import Any, assert_never

from ..config import ShellConfig
from ..errors import ProtocolError
from ..logging import StructuredLogger, get_logger
from ..storage import ByteStore, StorageCapability
from .bootstrap import BootstrapOrchestrator, BootState
from .channel import ChannelClosedError, MessageChannel
from .persistence import PersistenceCoordinator
from .protocol import (
    MUTATING_TYPES,
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

__all__ = ["KernelWorker", "WireMessage"]

type WireMessage = Mapping[str, Any]

logger: StructuredLogger = get_logger(__name__, context={"component": "kernel"})

_NOT_INITIALIZED = "Kernel not initialized"


class KernelWorker:
    """Serial request processor running in its own thread."""

    def __init__(
        self,
        storage: StorageCapability,
        store: ByteStore,
        *,
        requests: MessageChannel[WireMessage],
        responses: MessageChannel[WireMessage],
        config: ShellConfig,
    ) -> None:
        super().__init__()
        self._storage = storage
        self._requests = requests
        self._responses = responses
        self._persistence = PersistenceCoordinator(storage, store, key=config.fs_state_key)
        self._bootstrap = BootstrapOrchestrator(storage, self._persistence, config=config)
        self._thread: threading.Thread | None = None
        self._processed = 0

    @property
    def bootstrap(self) -> BootstrapOrchestrator:
        return self._bootstrap

    @property
    def persistence(self) -> PersistenceCoordinator:
        return self._persistence

    @property
    def ready(self) -> bool:
        return self._bootstrap.state is BootState.READY

    @property
    def processed(self) -> int:
        """Number of requests answered so far."""
        return self._processed

    def start(self) -> None:
        """Spawn the worker thread; bootstrap runs inside it."""
        if self._thread is not None:
            raise RuntimeError("KernelWorker already started")
        self._thread = threading.Thread(target=self.run, daemon=True, name="kernel-worker")
        self._thread.start()

    def stop(self, *, timeout: float = 5.0) -> bool:
        """Close the request channel and wait for the thread to exit.

        Returns:
            True if the thread stopped within ``timeout``.
        """
        self._requests.close()
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def run(self) -> None:
        """Bootstrap, announce the outcome, then serve until the channel closes."""
        self._announce(self._boot())
        while True:
            payload = self._requests.receive()
            if payload is None:
                break
            response = self.handle(payload)
            if response is not None:
                self._post(to_wire(response))
        logger.debug("Kernel worker stopped", event="kernel.worker.stopped")

    def _boot(self) -> Ready | Fatal:
        try:
            self._bootstrap.run()
        except Exception as error:  # noqa: BLE001 - reported to the caller as fatal
            cause = error.__cause__ or error
            trace = "".join(traceback.format_exception(cause))
            return Fatal(error=ErrorInfo.from_exception(cause, trace=trace))
        logger.info("Kernel ready", event="kernel.worker.ready")
        return Ready()

    def _announce(self, signal: Ready | Fatal) -> None:
        self._post(to_wire(signal))

    def _post(self, payload: WireMessage) -> None:
        try:
            self._responses.send(payload)
        except ChannelClosedError:
            logger.debug(
                "Response dropped, channel closed",
                event="kernel.worker.response_dropped",
                context={"id": payload.get("id")},
            )

    def handle(self, payload: WireMessage) -> Response | None:
        """Answer one wire request; ``None`` for messages that cannot be answered."""

        request_id = payload.get("id")
        if not isinstance(request_id, str) or not request_id or "type" not in payload:
            logger.warning(
                "Dropping malformed request",
                event="kernel.worker.malformed",
                context={"type": payload.get("type")},
            )
            return None

        try:
            if not self.ready:
                raise RuntimeError(_NOT_INITIALIZED)
            request = from_wire(payload)
            result = self._execute(request)  # pyright: ignore[reportArgumentType]
            if request.type in MUTATING_TYPES:
                _ = self._persistence.persist()
        except Exception as error:  # noqa: BLE001 - every failure becomes a response
            response = Response.failure(
                request_id,
                ErrorInfo.from_exception(error, trace=traceback.format_exc()),
            )
        else:
            response = Response.success(request_id, result)
        self._processed += 1
        return response

    def _execute(self, request: Request) -> object:
        storage = self._storage
        match request:
            case HelloRequest(name=name):
                return storage.hello(name)
            case MkdirRequest(path=path):
                storage.mkdir(path)
            case ReaddirRequest(path=path):
                return list(storage.readdir(path))
            case WriteFileRequest(path=path, data=data):
                storage.write_file(path, data)
            case ReadFileRequest(path=path):
                return storage.read_file(path)
            case StatRequest(path=path):
                return storage.stat(path)
            case RmRequest(path=path):
                storage.rm(path)
            case RmdirRequest(path=path):
                storage.rmdir(path)
            case MvRequest(src=src, dst=dst):
                storage.mv(src, dst)
            case CpRequest(src=src, dst=dst):
                storage.cp(src, dst)
            case _:
                if isinstance(request, Response | Ready | Fatal):
                    raise ProtocolError(f"{request.type} is not a request")
                assert_never(request)
        return None
