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

"""Configuration loading for the ``kshell`` executable and its kernel."""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path("~/.config/kernelshell/config.toml")
DEFAULT_STORE_PATH = Path("~/.local/share/kernelshell/state.db")
DEFAULT_FS_STATE_KEY = "kernelshell:fs-state"
DEFAULT_CLEAR_SCREEN_CODE = "\x1b[2J\x1b[H"

ENV_FS_STATE_KEY = "KSHELL_FS_STATE_KEY"
ENV_ROOT_PATH = "KSHELL_ROOT_PATH"
ENV_PROMPT = "KSHELL_PROMPT"
ENV_STORE_PATH = "KSHELL_STORE_PATH"
ENV_REDIS_URL = "KSHELL_REDIS_URL"
ENV_START_TIMEOUT = "KSHELL_START_TIMEOUT"

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_FS_STATE_KEY",
    "ShellConfig",
    "load_config",
]


@dataclass(frozen=True, slots=True)
class ShellConfig:
    """Resolved configuration shared by the interpreter and the kernel."""

    fs_state_key: str = DEFAULT_FS_STATE_KEY
    root_path: str = "/"
    prompt: str = "user@kernelshell"
    clear_screen_code: str = DEFAULT_CLEAR_SCREEN_CODE
    store_path: Path = DEFAULT_STORE_PATH
    redis_url: str | None = None
    start_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.fs_state_key:
            raise ConfigError("`fs_state_key` must be a non-empty string.")
        if not self.root_path.startswith("/"):
            raise ConfigError(f"`root_path` must be absolute (got {self.root_path!r}).")
        if self.start_timeout <= 0:
            raise ConfigError("`start_timeout` must be positive.")

    def to_document(self) -> str:
        """Render the configuration document stored at ``/etc/app-config.json``."""

        document = {
            "storage": {"fsStateKey": self.fs_state_key},
            "filesystem": {"rootPath": self.root_path},
            "terminal": {
                "promptDefault": self.prompt,
                "clearScreenCode": self.clear_screen_code,
            },
        }
        return json.dumps(document, indent=2)


def load_config(
    path: Path | Mapping[str, Any] | None,
    cli_overrides: Mapping[str, object] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> ShellConfig:
    """Load and validate the shell configuration.

    Values are layered file, then environment, then ``cli_overrides`` (``None``
    values are ignored). ``path=None`` reads ``~/.config/kernelshell/config.toml``
    when it exists; tests may pass a mapping to skip filesystem I/O.
    """

    env_map = dict(os.environ if env is None else env)

    if isinstance(path, Mapping):
        raw: dict[str, object] = dict(path)
    else:
        config_path = path if path is not None else DEFAULT_CONFIG_PATH.expanduser()
        raw = _load_config_file(config_path, required=path is not None)

    config = _normalise_config(raw)
    config = _apply_environment_overrides(config, env_map)
    for key, value in (cli_overrides or {}).items():
        if value is not None:
            config[key] = value

    return _build_config(config)


def _load_config_file(path: Path, *, required: bool) -> dict[str, object]:
    if not path.exists():
        if not required:
            return {}
        msg = f"Configuration file not found: {path}"
        raise ConfigError(msg)

    suffix = path.suffix.lower()
    data: object
    try:
        if suffix == ".toml" or not suffix:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
        elif suffix in {".yaml", ".yml"}:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        else:
            msg = f"Unsupported configuration format: {path.suffix}"
            raise ConfigError(msg)
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as error:
        msg = f"Cannot read configuration file {path}: {error}"
        raise ConfigError(msg) from error

    if not isinstance(data, MutableMapping):
        raise ConfigError("Configuration file must contain a mapping at the root.")
    return {str(key): value for key, value in cast(Mapping[object, object], data).items()}


def _normalise_config(raw: Mapping[str, object]) -> dict[str, object]:
    config: dict[str, object] = {
        key: raw[key]
        for key in (
            "fs_state_key",
            "root_path",
            "prompt",
            "clear_screen_code",
            "store_path",
            "redis_url",
            "start_timeout",
        )
        if key in raw
    }

    # Nested sections mirror the layout of /etc/app-config.json.
    storage = raw.get("storage")
    if isinstance(storage, Mapping):
        section = cast(Mapping[str, object], storage)
        for source, target in (
            ("key", "fs_state_key"),
            ("path", "store_path"),
            ("redis_url", "redis_url"),
        ):
            if source in section:
                config.setdefault(target, section[source])

    terminal = raw.get("terminal")
    if isinstance(terminal, Mapping):
        section = cast(Mapping[str, object], terminal)
        for source, target in (
            ("prompt", "prompt"),
            ("clear_screen_code", "clear_screen_code"),
            ("root_path", "root_path"),
        ):
            if source in section:
                config.setdefault(target, section[source])

    return config


def _apply_environment_overrides(
    config: dict[str, object], env: Mapping[str, str]
) -> dict[str, object]:
    for variable, key in (
        (ENV_FS_STATE_KEY, "fs_state_key"),
        (ENV_ROOT_PATH, "root_path"),
        (ENV_PROMPT, "prompt"),
        (ENV_STORE_PATH, "store_path"),
        (ENV_REDIS_URL, "redis_url"),
    ):
        if variable in env:
            config[key] = env[variable]
    if ENV_START_TIMEOUT in env:
        try:
            config["start_timeout"] = float(env[ENV_START_TIMEOUT])
        except ValueError as exc:
            msg = f"Invalid timeout in {ENV_START_TIMEOUT}: {env[ENV_START_TIMEOUT]!r}"
            raise ConfigError(msg) from exc
    return config


def _build_config(config: Mapping[str, object]) -> ShellConfig:
    kwargs: dict[str, Any] = {}
    for key in ("fs_state_key", "root_path", "prompt", "clear_screen_code"):
        value = config.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ConfigError(f"`{key}` must be a string (got {value!r}).")
        kwargs[key] = value

    store_path = config.get("store_path")
    if store_path is not None:
        if not isinstance(store_path, str | Path):
            raise ConfigError(f"`store_path` must be a path (got {store_path!r}).")
        kwargs["store_path"] = Path(store_path).expanduser()

    redis_url = config.get("redis_url")
    if redis_url is not None:
        if not isinstance(redis_url, str):
            raise ConfigError(f"`redis_url` must be a string (got {redis_url!r}).")
        kwargs["redis_url"] = redis_url or None

    timeout = config.get("start_timeout")
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, int | float):
            raise ConfigError(f"`start_timeout` must be a number (got {timeout!r}).")
        kwargs["start_timeout"] = float(timeout)

    return ShellConfig(**kwargs)
