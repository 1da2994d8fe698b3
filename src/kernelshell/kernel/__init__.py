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

"""Storage-hosting kernel: wire protocol, channel, bootstrap and worker.

The kernel runs in its own thread and is reachable only through two
:class:`MessageChannel` instances carrying wire mappings. Use
:class:`kernelshell.client.KernelClient` for an awaitable facade.
"""

from __future__ import annotations

from .bootstrap import BootState, BootstrapError, BootstrapOrchestrator
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
from .worker import KernelWorker, WireMessage

__all__ = [
    "MUTATING_TYPES",
    "BootState",
    "BootstrapError",
    "BootstrapOrchestrator",
    "ChannelClosedError",
    "CpRequest",
    "ErrorInfo",
    "Fatal",
    "HelloRequest",
    "KernelWorker",
    "MessageChannel",
    "MkdirRequest",
    "MvRequest",
    "PersistenceCoordinator",
    "ReadFileRequest",
    "ReaddirRequest",
    "Ready",
    "Request",
    "Response",
    "RmRequest",
    "RmdirRequest",
    "StatRequest",
    "WireMessage",
    "WriteFileRequest",
    "from_wire",
    "to_wire",
]
