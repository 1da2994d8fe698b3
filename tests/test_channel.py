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


"""Tests for the one-way message channel."""

from __future__ import annotations

import threading
import time

import pytest

from kernelshell.kernel import ChannelClosedError, MessageChannel


class TestMessageChannel:
    def test_send_and_receive(self) -> None:
        channel: MessageChannel[int] = MessageChannel(name="test")
        channel.send(1)
        channel.send(2)
        assert channel.pending() == 2
        assert channel.receive(timeout=0.1) == 1
        assert channel.receive(timeout=0.1) == 2
        assert channel.sent_count == 2

    def test_receive_times_out(self) -> None:
        channel: MessageChannel[int] = MessageChannel(name="test")
        started = time.monotonic()
        assert channel.receive(timeout=0.05) is None
        assert time.monotonic() - started >= 0.04

    def test_close_wakes_blocked_receiver(self) -> None:
        channel: MessageChannel[int] = MessageChannel(name="test")
        received: list[int | None] = []
        thread = threading.Thread(target=lambda: received.append(channel.receive()))
        thread.start()
        time.sleep(0.05)
        channel.close()
        thread.join(timeout=2.0)
        assert not thread.is_alive()
        assert received == [None]

    def test_closed_channel_drains_then_returns_none(self) -> None:
        channel: MessageChannel[str] = MessageChannel(name="test")
        channel.send("last")
        channel.close()
        assert channel.closed
        assert channel.receive() == "last"
        assert channel.receive() is None

    def test_send_after_close_raises(self) -> None:
        channel: MessageChannel[str] = MessageChannel(name="requests")
        channel.close()
        with pytest.raises(ChannelClosedError, match="'requests' is closed"):
            channel.send("x")

    def test_cross_thread_delivery(self) -> None:
        channel: MessageChannel[int] = MessageChannel(name="test")
        received: list[int] = []

        def consumer() -> None:
            while (item := channel.receive(timeout=2.0)) is not None:
                received.append(item)

        thread = threading.Thread(target=consumer)
        thread.start()
        for i in range(100):
            channel.send(i)
        channel.close()
        thread.join(timeout=5.0)
        assert received == list(range(100))
