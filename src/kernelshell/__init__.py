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


"""Unix-like shell over a persistent virtual filesystem.

The filesystem runs inside a background kernel thread and is reached only
through correlated request/response messages. Every mutation is persisted to
a durable byte store before it is acknowledged.
"""

from __future__ import annotations

from .client import (
    KernelClient,
    KernelClosedError,
    KernelFatalError,
    KernelNotReadyError,
    KernelRemoteError,
    TransportError,
)
from .config import ShellConfig, load_config
from .errors import ByteStoreError, ConfigError, KernelShellError, ProtocolError, SnapshotCorruptError
from .host import ShellHost, open_byte_store
from .terminal import CommandResult, Terminal

__all__ = [
    "ByteStoreError",
    "CommandResult",
    "ConfigError",
    "KernelClient",
    "KernelClosedError",
    "KernelFatalError",
    "KernelNotReadyError",
    "KernelRemoteError",
    "KernelShellError",
    "ProtocolError",
    "ShellConfig",
    "ShellHost",
    "SnapshotCorruptError",
    "Terminal",
    "TransportError",
    "load_config",
    "open_byte_store",
]
