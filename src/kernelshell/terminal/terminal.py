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


"""Interactive command interpreter over the kernel client.

A :class:`Terminal` owns one session: the working directory, the input
history and a :class:`CommandRegistry` of built-in commands. Every handler
returns a :class:`~kernelshell.terminal.result.CommandResult`; errors the
kernel reports are turned into failure results carrying the kernel's message
unchanged.

Example::

    terminal = Terminal(client, config=ShellConfig())
    result = await terminal.exec('echo "hi" > /tmp/a.txt')
    assert result.ok
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable, Sequence
from typing import Final, Protocol, runtime_checkable

from ..client import KernelClient, KernelRemoteError, TransportError
from ..config import ShellConfig
from ..logging import StructuredLogger, get_logger
from .paths import normalize_path, resolve_path
from .result import CommandResult
from .tokenizer import tokenize
from .tree import render_tree

__all__ = [
    "HELP_TEXT",
    "CommandHandler",
    "CommandRegistry",
    "NullHooks",
    "Terminal",
    "TerminalHooks",
]

logger: StructuredLogger = get_logger(__name__, context={"component": "terminal"})

type CommandHandler = Callable[[Sequence[str]], Awaitable[CommandResult]]

HELP_TEXT: Final[str] = "\n".join(
    [
        "Commands:",
        "  help                   - Show this help message",
        "  clear                  - Clear the terminal",
        "  hello [name]           - Greet someone",
        "  pwd                    - Print working directory",
        "  cd <path>              - Change directory",
        "  ls [path]              - List directory contents",
        "  tree [path]            - Display directory tree",
        "  mkdir <path>           - Create a directory",
        "  cat <file>             - Display file contents",
        "  open <file>            - Open file in text viewer",
        "  edit <file>            - Edit file in text editor",
        "  echo <text> > <file>   - Write text to file",
        "  rm <file>              - Remove a file",
        "  rmdir <dir>            - Remove an empty directory",
        "  mv <from> <to>         - Move/rename file or directory",
        "  cp <from> <to>         - Copy a file",
        "  stat <path>            - Show file/directory information",
        "  reset                  - Explain how to reset the filesystem",
        "  sudo reset --confirm   - Clear filesystem and reload",
        "",
        "Examples:",
        "  mkdir /docs",
        '  echo "Hello World" > /docs/hello.txt',
        "  cat /docs/hello.txt",
        "  tree /docs",
    ]
)

_RESET_DENIED: Final[str] = 'Permission denied. Use "sudo reset" to reset the filesystem.'
_RESET_WARNING: Final[str] = "\n".join(
    [
        "WARNING: This will permanently delete all files and directories!",
        "",
        "If you are sure, type: sudo reset --confirm",
    ]
)


@runtime_checkable
class TerminalHooks(Protocol):
    """Host integration points that live outside the interpreter."""

    def open_viewer(self, path: str) -> None: ...

    def open_editor(self, path: str) -> None: ...

    async def reset_storage(self) -> None:
        """Clear the durable store and reload the hosting environment."""
        ...


class NullHooks:
    """Hooks that do nothing; the default for headless use."""

    def open_viewer(self, path: str) -> None:
        del path

    def open_editor(self, path: str) -> None:
        del path

    async def reset_storage(self) -> None:
        return None


class CommandRegistry:
    """Name to handler table owned by a single terminal."""

    def __init__(self) -> None:
        super().__init__()
        self._handlers: dict[str, CommandHandler] = {}

    def register(self, name: str, handler: CommandHandler) -> None:
        """Add ``handler`` under ``name``.

        Raises:
            ValueError: ``name`` is empty or already registered.
        """
        if not name or any(char.isspace() for char in name):
            raise ValueError(f"invalid command name: {name!r}")
        if name in self._handlers:
            raise ValueError(f"command already registered: {name}")
        self._handlers[name] = handler

    def get(self, name: str) -> CommandHandler | None:
        return self._handlers.get(name)

    def names(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers


def _surface_kernel_errors(
    handler: Callable[[Terminal, Sequence[str]], Awaitable[CommandResult]],
) -> Callable[[Terminal, Sequence[str]], Awaitable[CommandResult]]:
    @functools.wraps(handler)
    async def wrapper(self: Terminal, args: Sequence[str]) -> CommandResult:
        try:
            return await handler(self, args)
        except KernelRemoteError as error:
            return CommandResult.failure(error.message)
        except TransportError as error:
            logger.warning(
                "Kernel unavailable",
                event="terminal.transport_error",
                context={"command": handler.__name__.lstrip("_"), "error": str(error)},
            )
            return CommandResult.failure(str(error) or type(error).__name__)

    return wrapper


class Terminal:
    """One interpreter session bound to a kernel client."""

    def __init__(
        self,
        client: KernelClient,
        *,
        config: ShellConfig | None = None,
        hooks: TerminalHooks | None = None,
    ) -> None:
        super().__init__()
        self._client = client
        self._config = config or ShellConfig()
        self._hooks: TerminalHooks = hooks or NullHooks()
        self._cwd = normalize_path(self._config.root_path)
        self._history: list[str] = []
        self._registry = CommandRegistry()
        self._register_builtins()

    @property
    def cwd(self) -> str:
        return self._cwd

    @property
    def history(self) -> tuple[str, ...]:
        """Every non-empty line passed to :meth:`exec`, in order."""
        return tuple(self._history)

    @property
    def prompt(self) -> str:
        return f"{self._config.prompt}:{self._cwd}$"

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    async def exec(self, line: str) -> CommandResult:
        """Run one input line and return its result.

        Never raises for command failures: unknown commands, usage errors,
        kernel errors and unexpected handler faults all become failure
        results.
        """
        trimmed = line.strip()
        if not trimmed:
            return CommandResult.success()
        self._history.append(trimmed)

        tokens = tokenize(trimmed)
        if not tokens:
            return CommandResult.success()
        name, args = tokens[0], tokens[1:]
        handler = self._registry.get(name)
        if handler is None:
            return CommandResult.failure(f"command not found: {name}")

        logger.debug(
            "Dispatching command",
            event="terminal.exec",
            context={"command": name, "args": len(args)},
        )
        try:
            return await handler(args)
        except Exception as error:  # noqa: BLE001 - surfaced as a failure result
            logger.exception(
                "Command raised",
                event="terminal.command_failed",
                context={"command": name},
            )
            return CommandResult.failure(str(error) or type(error).__name__)

    def _resolve(self, path: str) -> str:
        return resolve_path(self._cwd, path)

    def _register_builtins(self) -> None:
        builtins: dict[str, CommandHandler] = {
            "help": self._help,
            "clear": self._clear,
            "reset": self._reset,
            "sudo": self._sudo,
            "hello": self._hello,
            "pwd": self._pwd,
            "open": self._open,
            "edit": self._edit,
            "cd": self._cd,
            "ls": self._ls,
            "tree": self._tree,
            "mkdir": self._mkdir,
            "cat": self._cat,
            "echo": self._echo,
            "rm": self._rm,
            "rmdir": self._rmdir,
            "mv": self._mv,
            "cp": self._cp,
            "stat": self._stat,
        }
        for name, handler in builtins.items():
            self._registry.register(name, handler)

    # ---- session commands ----

    async def _help(self, args: Sequence[str]) -> CommandResult:
        del args
        return CommandResult.success(HELP_TEXT)

    async def _clear(self, args: Sequence[str]) -> CommandResult:
        del args
        return CommandResult.success(self._config.clear_screen_code)

    async def _reset(self, args: Sequence[str]) -> CommandResult:
        del args
        return CommandResult.failure(_RESET_DENIED)

    async def _sudo(self, args: Sequence[str]) -> CommandResult:
        if not args:
            return CommandResult.failure("usage: sudo <command> [args...]")
        command = args[0]
        if command != "reset":
            return CommandResult.failure(f"sudo: {command}: command not found")
        if "--confirm" not in args[1:]:
            return CommandResult.failure(_RESET_WARNING)

        logger.warning("Resetting filesystem", event="terminal.reset")
        try:
            await self._hooks.reset_storage()
        except Exception as error:  # noqa: BLE001 - reported to the user
            logger.exception("Reset failed", event="terminal.reset_failed")
            return CommandResult.failure(f"Failed to reset: {error}")
        return CommandResult.success("Resetting filesystem...")

    async def _pwd(self, args: Sequence[str]) -> CommandResult:
        del args
        return CommandResult.success(self._cwd)

    @_surface_kernel_errors
    async def _hello(self, args: Sequence[str]) -> CommandResult:
        name = " ".join(args) or "world"
        return CommandResult.success(await self._client.hello(name))

    @_surface_kernel_errors
    async def _cd(self, args: Sequence[str]) -> CommandResult:
        target = self._resolve(args[0] if args else "/")
        try:
            stat = await self._client.fs_stat(target)
        except KernelRemoteError:
            return CommandResult.failure(f"directory not found: {target}")
        if not stat.is_dir:
            return CommandResult.failure(f"not a directory: {target}")
        self._cwd = target
        return CommandResult.success()

    # ---- viewer hooks ----

    @_surface_kernel_errors
    async def _open(self, args: Sequence[str]) -> CommandResult:
        if not args:
            return CommandResult.failure("usage: open <file>")
        path = self._resolve(args[0])
        try:
            stat = await self._client.fs_stat(path)
        except KernelRemoteError as error:
            return CommandResult.failure(f"cannot open '{path}': {error.message}")
        if stat.is_dir:
            return CommandResult.failure(f"{path} is a directory, not a file")
        self._hooks.open_viewer(path)
        return CommandResult.success(f"Opening {path}...")

    @_surface_kernel_errors
    async def _edit(self, args: Sequence[str]) -> CommandResult:
        if not args:
            return CommandResult.failure("usage: edit <file>")
        path = self._resolve(args[0])
        try:
            stat = await self._client.fs_stat(path)
        except KernelRemoteError:
            await self._client.fs_write_file(path, b"")
        else:
            if stat.is_dir:
                return CommandResult.failure(f"{path} is a directory, not a file")
        self._hooks.open_editor(path)
        return CommandResult.success(f"Editing {path}...")

    # ---- filesystem commands ----

    @_surface_kernel_errors
    async def _ls(self, args: Sequence[str]) -> CommandResult:
        target = self._resolve(args[0]) if args else self._cwd
        entries = await self._client.fs_readdir(target)
        return CommandResult.success("\n".join(entries))

    @_surface_kernel_errors
    async def _tree(self, args: Sequence[str]) -> CommandResult:
        target = self._resolve(args[0]) if args else self._cwd
        return CommandResult.success(await render_tree(self._client, target))

    @_surface_kernel_errors
    async def _mkdir(self, args: Sequence[str]) -> CommandResult:
        if not args:
            return CommandResult.failure("usage: mkdir <path>")
        await self._client.fs_mkdir(self._resolve(args[0]))
        return CommandResult.success()

    @_surface_kernel_errors
    async def _cat(self, args: Sequence[str]) -> CommandResult:
        if not args:
            return CommandResult.failure("usage: cat <file>")
        data = await self._client.fs_read_file(self._resolve(args[0]))
        return CommandResult.success(data.decode("utf-8", errors="replace"))

    @_surface_kernel_errors
    async def _echo(self, args: Sequence[str]) -> CommandResult:
        if ">" not in args or args[-1] == ">":
            return CommandResult.failure("usage: echo <text> > <file>")
        redirect = list(args).index(">")
        text = " ".join(args[:redirect])
        await self._client.fs_write_file(self._resolve(args[redirect + 1]), text.encode("utf-8"))
        return CommandResult.success()

    @_surface_kernel_errors
    async def _rm(self, args: Sequence[str]) -> CommandResult:
        if not args:
            return CommandResult.failure("usage: rm <file>")
        await self._client.fs_rm(self._resolve(args[0]))
        return CommandResult.success()

    @_surface_kernel_errors
    async def _rmdir(self, args: Sequence[str]) -> CommandResult:
        if not args:
            return CommandResult.failure("usage: rmdir <directory>")
        await self._client.fs_rmdir(self._resolve(args[0]))
        return CommandResult.success()

    @_surface_kernel_errors
    async def _mv(self, args: Sequence[str]) -> CommandResult:
        if len(args) < 2:
            return CommandResult.failure("usage: mv <from> <to>")
        await self._client.fs_mv(self._resolve(args[0]), self._resolve(args[1]))
        return CommandResult.success()

    @_surface_kernel_errors
    async def _cp(self, args: Sequence[str]) -> CommandResult:
        if len(args) < 2:
            return CommandResult.failure("usage: cp <from> <to>")
        await self._client.fs_cp(self._resolve(args[0]), self._resolve(args[1]))
        return CommandResult.success()

    @_surface_kernel_errors
    async def _stat(self, args: Sequence[str]) -> CommandResult:
        if not args:
            return CommandResult.failure("usage: stat <path>")
        path = self._resolve(args[0])
        stat = await self._client.fs_stat(path)
        kind = "directory" if stat.is_dir else "file"
        return CommandResult.success(f"Path: {path}\nType: {kind}\nSize: {stat.size} bytes")
