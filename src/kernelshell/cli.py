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


"""Command line entry point for the ``kshell`` executable."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from .client import KernelFatalError
from .config import ShellConfig, load_config
from .errors import ByteStoreError, ConfigError
from .host import ShellHost, open_byte_store
from .logging import StructuredLogger, configure_logging, get_logger
from .terminal import CommandResult

EXIT_OK = 0
EXIT_COMMAND_FAILED = 1
EXIT_USAGE = 2
EXIT_KERNEL_FAILED = 3

_EXIT_WORDS = frozenset({"exit", "logout", "quit"})


def main(argv: Sequence[str] | None = None) -> int:
    """Run the kshell CLI."""

    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:  # argparse exits with code 2 on errors
        code = exc.code if isinstance(exc.code, int) else EXIT_USAGE
        return int(code)

    configure_logging(level=args.log_level, json_mode=args.json_logs)
    logger = get_logger(__name__)

    try:
        config = load_config(
            Path(args.config) if args.config is not None else None,
            {"store_path": Path(args.store) if args.store is not None else None},
        )
        store = open_byte_store(config, memory=args.memory)
    except ConfigError as error:
        logger.exception(
            "Invalid configuration",
            event="kshell.config_error",
            context={"error": str(error)},
        )
        print(f"kshell: {error}", file=sys.stderr)
        return EXIT_USAGE
    except ByteStoreError as error:
        logger.exception(
            "Byte store unavailable",
            event="kshell.store_error",
            context={"error": str(error)},
        )
        print(f"kshell: {error}", file=sys.stderr)
        return EXIT_KERNEL_FAILED

    host = ShellHost(config, store)
    try:
        return asyncio.run(_run(host, args.command, logger))
    finally:
        host.close()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kshell",
        description="Unix-like shell over a persistent virtual filesystem.",
    )
    _ = parser.add_argument(
        "--config",
        default=None,
        help="Path to a TOML or YAML config file (default: ~/.config/kernelshell/config.toml).",
    )
    store = parser.add_mutually_exclusive_group()
    _ = store.add_argument(
        "--store",
        default=None,
        help="SQLite file holding the persisted filesystem.",
    )
    _ = store.add_argument(
        "--memory",
        action="store_true",
        help="Keep the filesystem in memory only; nothing survives exit.",
    )
    _ = parser.add_argument(
        "--log-level",
        choices=("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"),
        default=None,
        help="Override the log level emitted by the CLI.",
    )
    _ = parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Emit structured JSON logs (disable with --no-json-logs).",
    )
    _ = parser.add_argument(
        "-c",
        "--command",
        action="append",
        default=None,
        metavar="LINE",
        help="Run LINE and exit instead of starting a prompt (repeatable).",
    )
    return parser


async def _run(host: ShellHost, commands: Sequence[str] | None, logger: StructuredLogger) -> int:
    try:
        await host.start()
    except KernelFatalError as error:
        logger.exception(
            "Kernel failed to start",
            event="kshell.kernel_failed",
            context={"error": str(error)},
        )
        print(f"kshell: kernel failed to start: {error}", file=sys.stderr)
        return EXIT_KERNEL_FAILED

    try:
        if commands is not None:
            return await _run_batch(host, commands)
        return await _run_interactive(host)
    finally:
        await host.stop()


async def _run_batch(host: ShellHost, commands: Sequence[str]) -> int:
    code = EXIT_OK
    for line in commands:
        result = await host.terminal.exec(line)
        _emit(result, host.config)
        code = EXIT_OK if result.ok else EXIT_COMMAND_FAILED
    return code


async def _run_interactive(host: ShellHost) -> int:
    code = EXIT_OK
    while True:
        try:
            line = input(f"{host.terminal.prompt} ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print()
            continue
        if line.strip() in _EXIT_WORDS:
            break
        result = await host.terminal.exec(line)
        _emit(result, host.config)
        code = EXIT_OK if result.ok else EXIT_COMMAND_FAILED
    return code


def _emit(result: CommandResult, config: ShellConfig) -> None:
    out, err = sys.stdout, sys.stderr
    if result.stdout == config.clear_screen_code:
        _ = out.write(result.stdout)
        out.flush()
    elif result.stdout:
        print(result.stdout, file=out)
    if result.stderr:
        print(result.stderr, file=err)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
