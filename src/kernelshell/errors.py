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

"""Base exception hierarchy for :mod:`kernelshell`."""

from __future__ import annotations


class KernelShellError(Exception):
    """Base class for all kernelshell exceptions.

    Callers can catch every library-specific failure with a single handler
    while standard Python exceptions keep propagating normally.

    Example:
        Catch any kernelshell-specific error::

            try:
                await client.fs_mkdir("/docs")
            except KernelShellError as e:
                logger.error("Shell error: %s", e)

    Note:
        Subclasses may also inherit from builtin exception types (e.g.,
        ``FileNotFoundError``) so existing ``except`` clauses keep working.
    """


class ConfigError(KernelShellError, ValueError):
    """Raised when the shell configuration is invalid."""


class SnapshotCorruptError(KernelShellError, ValueError):
    """Raised when snapshot bytes cannot be restored into a tree.

    The storage backend leaves its current tree untouched when this is
    raised, so a failed restore never produces a half-loaded filesystem.
    """


class ByteStoreError(KernelShellError, OSError):
    """Raised when the durable byte store cannot read, write or clear."""


class ProtocolError(KernelShellError, TypeError):
    """Raised for malformed or unknown wire messages.

    An unknown request tag is a local programming error rather than a
    remote fault, so this derives from ``TypeError``.
    """


__all__ = [
    "ByteStoreError",
    "ConfigError",
    "KernelShellError",
    "ProtocolError",
    "SnapshotCorruptError",
]
