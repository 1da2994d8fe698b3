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

"""Thread-safe one-way message channel between execution contexts."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field

from ..errors import KernelShellError

__all__ = ["ChannelClosedError", "MessageChannel"]


class ChannelClosedError(KernelShellError):
    """Raised when sending on a channel that has been closed."""


@dataclass(slots=True)
class MessageChannel[T]:
    """Fire-and-forget queue carrying messages in one direction.

    There is no call/reply pairing and no acknowledgement: every message is
    delivered at most once, to whichever receiver takes it first. Consumers
    must not assume any ordering across senders.

    Example::

        channel: MessageChannel[dict[str, object]] = MessageChannel(name="requests")
        channel.send({"type": "hello", "id": "1", "name": "ada"})
        message = channel.receive(timeout=1.0)
    """

    name: str = "default"
    """Channel name for identification in logs."""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _condition: threading.Condition = field(init=False, repr=False)
    _queue: deque[T] = field(init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)
    _sent: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self._condition = threading.Condition(self._lock)
        self._queue = deque()

    def send(self, message: T) -> None:
        """Enqueue ``message`` for delivery.

        Raises:
            ChannelClosedError: The channel was closed.
        """
        with self._lock:
            if self._closed:
                raise ChannelClosedError(f"Channel '{self.name}' is closed")
            self._queue.append(message)
            self._sent += 1
            self._condition.notify()

    def receive(self, *, timeout: float | None = None) -> T | None:
        """Take the next message, waiting up to ``timeout`` seconds.

        Returns ``None`` on timeout or once the channel is closed and drained.
        ``timeout=None`` waits until a message arrives or the channel closes.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            while not self._queue:
                if self._closed:
                    return None
                if deadline is None:
                    _ = self._condition.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                _ = self._condition.wait(timeout=remaining)
            return self._queue.popleft()

    def close(self) -> None:
        """Refuse further sends and wake every blocked receiver."""
        with self._lock:
            self._closed = True
            self._condition.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def sent_count(self) -> int:
        """Total number of messages ever sent on this channel."""
        with self._lock:
            return self._sent

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)
