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


"""End-to-end tests for the terminal against a running kernel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import pytest

from kernelshell.client import KernelClient
from kernelshell.config import ShellConfig
from kernelshell.host import ShellHost
from kernelshell.kernel import MessageChannel, WireMessage
from kernelshell.storage import InMemoryByteStore
from kernelshell.terminal import (
    HELP_TEXT,
    CommandRegistry,
    CommandResult,
    NullHooks,
    Terminal,
    TerminalHooks,
)

if TYPE_CHECKING:
    from tests.conftest import ShellRunner


class RecordingHooks:
    def __init__(self, *, reset_error: Exception | None = None) -> None:
        self.viewed: list[str] = []
        self.edited: list[str] = []
        self.resets = 0
        self.reset_error = reset_error

    def open_viewer(self, path: str) -> None:
        self.viewed.append(path)

    def open_editor(self, path: str) -> None:
        self.edited.append(path)

    async def reset_storage(self) -> None:
        if self.reset_error is not None:
            raise self.reset_error
        self.resets += 1


async def _run_lines(terminal: Terminal, lines: Sequence[str]) -> list[CommandResult]:
    return [await terminal.exec(line) for line in lines]


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult.success(stdout)


def _fail(stderr: str) -> CommandResult:
    return CommandResult.failure(stderr)


class TestSession:
    def test_write_then_read_back(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> list[CommandResult]:
            return await _run_lines(
                host.terminal,
                ["mkdir /docs", 'echo "hi" > /docs/a.txt', "cat /docs/a.txt"],
            )

        assert run_shell(scenario) == [_ok(), _ok(), _ok("hi")]

    def test_tree_of_docs(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            _ = await _run_lines(
                host.terminal, ["mkdir /docs", "mkdir /docs/x", "echo a > /docs/a.txt"]
            )
            return await host.terminal.exec("tree /docs")

        assert run_shell(scenario) == _ok("/docs\n├── x/\n└── a.txt")

    def test_cd_to_missing_directory_keeps_cwd(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> tuple[CommandResult, CommandResult, str]:
            terminal = host.terminal
            moved = await terminal.exec("cd /home")
            failed = await terminal.exec("cd /nope")
            return moved, failed, terminal.cwd

        moved, failed, cwd = run_shell(scenario)
        assert moved == _ok()
        assert failed == _fail("directory not found: /nope")
        assert cwd == "/home"

    def test_cd_into_file_fails(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            return await host.terminal.exec("cd /etc/theme.css")

        assert run_shell(scenario) == _fail("not a directory: /etc/theme.css")

    def test_relative_navigation(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> list[CommandResult]:
            return await _run_lines(
                host.terminal,
                ["cd /usr/local", "cd ..", "pwd", "cd", "pwd", "cd apps/../etc", "pwd"],
            )

        results = run_shell(scenario)
        assert [r.stdout for r in results if r.stdout] == ["/usr", "/", "/etc"]
        assert all(r.ok for r in results)

    def test_prompt_tracks_cwd(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> tuple[str, str]:
            before = host.terminal.prompt
            _ = await host.terminal.exec("cd /home")
            return before, host.terminal.prompt

        assert run_shell(scenario) == ("user@kernelshell:/$", "user@kernelshell:/home$")

    def test_history_keeps_every_non_empty_line(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> tuple[str, ...]:
            _ = await _run_lines(host.terminal, ["  pwd  ", "", "   ", "bogus", "pwd"])
            return host.terminal.history

        assert run_shell(scenario) == ("pwd", "bogus", "pwd")

    def test_empty_line_is_silent_success(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            return await host.terminal.exec("   ")

        assert run_shell(scenario) == _ok()

    def test_unknown_command(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            return await host.terminal.exec("frobnicate now")

        assert run_shell(scenario) == _fail("command not found: frobnicate")


class TestCommands:
    def test_help_and_clear(self, run_shell: ShellRunner, config: ShellConfig) -> None:
        async def scenario(host: ShellHost) -> list[CommandResult]:
            return await _run_lines(host.terminal, ["help", "clear"])

        help_result, clear_result = run_shell(scenario)
        assert help_result == _ok(HELP_TEXT)
        assert "sudo reset --confirm" in help_result.stdout
        assert clear_result == _ok(config.clear_screen_code)

    def test_hello(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> list[CommandResult]:
            return await _run_lines(host.terminal, ["hello", "hello Ada Lovelace"])

        assert run_shell(scenario) == [_ok("Hello, world!"), _ok("Hello, Ada Lovelace!")]

    def test_ls(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> list[CommandResult]:
            return await _run_lines(
                host.terminal,
                ["ls", "mkdir /empty", "ls /empty", "ls /nope", "ls /etc/theme.css"],
            )

        root, _, empty, missing, file_result = run_shell(scenario)
        assert root.stdout.splitlines() == [
            "apps",
            "bin",
            "dev",
            "etc",
            "home",
            "opt",
            "tmp",
            "usr",
            "var",
        ]
        assert empty == _ok()
        assert missing == _fail("no such file or directory: /nope")
        assert file_result == _fail("not a directory: /etc/theme.css")

    @pytest.mark.parametrize(
        ("line", "message"),
        [
            ("mkdir", "usage: mkdir <path>"),
            ("rm", "usage: rm <file>"),
            ("rmdir", "usage: rmdir <directory>"),
            ("mv /a", "usage: mv <from> <to>"),
            ("cp", "usage: cp <from> <to>"),
            ("cat", "usage: cat <file>"),
            ("echo hi", "usage: echo <text> > <file>"),
            ("echo hi >", "usage: echo <text> > <file>"),
            ("stat", "usage: stat <path>"),
            ("open", "usage: open <file>"),
            ("edit", "usage: edit <file>"),
            ("sudo", "usage: sudo <command> [args...]"),
        ],
    )
    def test_usage_errors(self, run_shell: ShellRunner, line: str, message: str) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            return await host.terminal.exec(line)

        assert run_shell(scenario) == _fail(message)

    def test_usage_errors_make_no_remote_calls(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> int:
            before = host.worker.processed
            _ = await _run_lines(host.terminal, ["mkdir", "echo x", "cp a"])
            return host.worker.processed - before

        assert run_shell(scenario) == 0

    def test_file_lifecycle(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> list[CommandResult]:
            return await _run_lines(
                host.terminal,
                [
                    "cd /tmp",
                    "echo one two   three > notes.txt",
                    "cat notes.txt",
                    "cp notes.txt copy.txt",
                    "mv copy.txt /home/moved.txt",
                    "cat /home/moved.txt",
                    "rm notes.txt",
                    "cat notes.txt",
                    "stat /home/moved.txt",
                    "stat /home",
                ],
            )

        results = run_shell(scenario)
        assert results[2] == _ok("one two three")
        assert results[5] == _ok("one two three")
        assert results[7] == _fail("no such file or directory: /tmp/notes.txt")
        assert results[8] == _ok("Path: /home/moved.txt\nType: file\nSize: 13 bytes")
        assert results[9] == _ok("Path: /home\nType: directory\nSize: 0 bytes")
        assert all(r.ok for i, r in enumerate(results) if i != 7)

    def test_storage_errors_are_surfaced_verbatim(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> list[CommandResult]:
            return await _run_lines(
                host.terminal,
                [
                    "mkdir /home",
                    "rmdir /apps",
                    "rm /etc",
                    "cat /etc",
                    "cp /etc /x",
                    "mv /nope /x",
                    "mkdir /a/b",
                ],
            )

        assert run_shell(scenario) == [
            _fail("file exists: /home"),
            _fail("directory not empty: /apps"),
            _fail("is a directory: /etc"),
            _fail("is a directory: /etc"),
            _fail("is a directory: /etc"),
            _fail("no such file or directory: /nope"),
            _fail("no such file or directory: /a"),
        ]

    def test_cat_replaces_invalid_utf8(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            await host.client.fs_write_file("/tmp/bin", b"ok\xff")
            return await host.terminal.exec("cat /tmp/bin")

        assert run_shell(scenario) == _ok("ok\ufffd")

    def test_echo_quoted_text(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> bytes:
            _ = await host.terminal.exec('echo "line1\\nline2" > /tmp/multi.txt')
            return await host.client.fs_read_file("/tmp/multi.txt")

        assert run_shell(scenario) == b"line1\nline2"


class TestHooks:
    def test_open_and_edit(self, run_shell: ShellRunner, config: ShellConfig) -> None:
        hooks = RecordingHooks()

        async def scenario(host: ShellHost) -> list[CommandResult]:
            terminal = Terminal(host.client, config=config, hooks=hooks)
            return await _run_lines(
                terminal,
                [
                    "open /etc/theme.css",
                    "open /etc",
                    "open /nope.txt",
                    "edit /etc",
                    "cd /tmp",
                    "edit new.txt",
                    "cat new.txt",
                ],
            )

        results = run_shell(scenario)
        assert results == [
            _ok("Opening /etc/theme.css..."),
            _fail("/etc is a directory, not a file"),
            _fail("cannot open '/nope.txt': no such file or directory: /nope.txt"),
            _fail("/etc is a directory, not a file"),
            _ok(),
            _ok("Editing /tmp/new.txt..."),
            _ok(),
        ]
        assert hooks.viewed == ["/etc/theme.css"]
        assert hooks.edited == ["/tmp/new.txt"]

    def test_edit_in_missing_directory_surfaces_error(
        self, run_shell: ShellRunner, config: ShellConfig
    ) -> None:
        hooks = RecordingHooks()

        async def scenario(host: ShellHost) -> CommandResult:
            terminal = Terminal(host.client, config=config, hooks=hooks)
            return await terminal.exec("edit /nope/file.txt")

        assert run_shell(scenario) == _fail("no such file or directory: /nope")
        assert hooks.edited == []

    def test_null_hooks_satisfy_protocol(self) -> None:
        assert isinstance(NullHooks(), TerminalHooks)
        assert isinstance(RecordingHooks(), TerminalHooks)


class TestReset:
    def test_reset_is_denied(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            return await host.terminal.exec("reset")

        assert run_shell(scenario) == _fail(
            'Permission denied. Use "sudo reset" to reset the filesystem.'
        )

    def test_sudo_reset_without_confirm_only_warns(
        self, run_shell: ShellRunner, byte_store: InMemoryByteStore
    ) -> None:
        async def scenario(host: ShellHost) -> tuple[CommandResult, int]:
            writes = byte_store.writes
            result = await host.terminal.exec("sudo reset")
            return result, byte_store.writes - writes

        result, writes = run_shell(scenario)
        assert result == _fail(
            "WARNING: This will permanently delete all files and directories!\n\n"
            "If you are sure, type: sudo reset --confirm"
        )
        assert writes == 0
        assert byte_store.clears == 0

    def test_sudo_unknown_command(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            return await host.terminal.exec("sudo rm -rf /")

        assert run_shell(scenario) == _fail("sudo: rm: command not found")

    def test_sudo_reset_confirm_wipes_and_reseeds(
        self, run_shell: ShellRunner, byte_store: InMemoryByteStore
    ) -> None:
        async def scenario(host: ShellHost) -> tuple[CommandResult, CommandResult, int]:
            old_terminal = host.terminal
            _ = await old_terminal.exec("echo precious > /home/data.txt")
            result = await old_terminal.exec("sudo reset --confirm")
            after = await host.terminal.exec("cat /home/data.txt")
            return result, after, host.reloads

        result, after, reloads = run_shell(scenario)
        assert result == _ok("Resetting filesystem...")
        assert after == _fail("no such file or directory: /home/data.txt")
        assert reloads == 1
        assert byte_store.clears == 1

    def test_reset_hook_failure_is_reported(
        self, run_shell: ShellRunner, config: ShellConfig
    ) -> None:
        hooks = RecordingHooks(reset_error=RuntimeError("store offline"))

        async def scenario(host: ShellHost) -> CommandResult:
            terminal = Terminal(host.client, config=config, hooks=hooks)
            return await terminal.exec("sudo reset --confirm")

        assert run_shell(scenario) == _fail("Failed to reset: store offline")


class TestRegistry:
    def test_builtins_are_registered(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> tuple[str, ...]:
            return host.terminal.registry.names()

        names = run_shell(scenario)
        for name in ("help", "cd", "tree", "sudo", "hello", "edit"):
            assert name in names

    def test_register_rejects_duplicates_and_blank_names(self) -> None:
        registry = CommandRegistry()

        async def handler(args: Sequence[str]) -> CommandResult:
            return CommandResult.success(" ".join(args))

        registry.register("say", handler)
        assert "say" in registry
        assert registry.get("say") is handler
        assert registry.get("missing") is None
        with pytest.raises(ValueError, match="already registered"):
            registry.register("say", handler)
        with pytest.raises(ValueError):
            registry.register("", handler)
        with pytest.raises(ValueError):
            registry.register("two words", handler)

    def test_custom_command_and_handler_faults(self, run_shell: ShellRunner) -> None:
        async def shout(args: Sequence[str]) -> CommandResult:
            return CommandResult.success(" ".join(args).upper())

        async def broken(args: Sequence[str]) -> CommandResult:
            raise ZeroDivisionError("division by zero")

        async def scenario(host: ShellHost) -> list[CommandResult]:
            host.terminal.registry.register("shout", shout)
            host.terminal.registry.register("broken", broken)
            return await _run_lines(host.terminal, ["shout hi there", "broken"])

        assert run_shell(scenario) == [_ok("HI THERE"), _fail("division by zero")]



class TestKernelUnavailable:
    @pytest.mark.parametrize("line", ["ls", "cd /docs", "hello", "open /home/welcome.txt", "tree"])
    def test_unready_client_fails_without_fault_log(
        self, line: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        requests: MessageChannel[WireMessage] = MessageChannel(name="requests")
        responses: MessageChannel[WireMessage] = MessageChannel(name="responses")
        terminal = Terminal(KernelClient(requests, responses))

        with caplog.at_level(logging.DEBUG):
            result = asyncio.run(terminal.exec(line))

        assert result == _fail("Kernel not ready")
        events = [getattr(record, "event", None) for record in caplog.records]
        assert "terminal.command_failed" not in events
        assert "terminal.transport_error" in events

    def test_stopped_host_client_fails_cleanly(self, run_shell: ShellRunner) -> None:
        async def scenario(host: ShellHost) -> CommandResult:
            terminal = host.terminal
            await host.client.stop()
            return await terminal.exec("ls /")

        assert run_shell(scenario) == _fail("Kernel not ready")

def test_command_result_invariants() -> None:
    assert CommandResult.success("x").ok
    assert not CommandResult.failure("e").ok
    assert CommandResult.failure("e", code=127).code == 127
    with pytest.raises(ValueError):
        _ = CommandResult.failure("e", code=0)
