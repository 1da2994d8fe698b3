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


"""Tests for configuration loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kernelshell.config import DEFAULT_FS_STATE_KEY, ShellConfig, load_config
from kernelshell.errors import ConfigError


def test_defaults() -> None:
    config = load_config({}, env={})
    assert config == ShellConfig()
    assert config.fs_state_key == DEFAULT_FS_STATE_KEY
    assert config.prompt == "user@kernelshell"
    assert config.clear_screen_code == "\x1b[2J\x1b[H"
    assert config.redis_url is None


def test_missing_default_file_is_ignored(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    assert load_config(None, env={}) == ShellConfig()


def test_explicit_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        _ = load_config(tmp_path / "absent.toml", env={})


@pytest.mark.parametrize(
    ("name", "text"),
    [
        ("broken.toml", "prompt = \"unterminated\n"),
        ("broken.yaml", "prompt: [unclosed\n"),
    ],
)
def test_malformed_file_raises_config_error(tmp_path: Path, name: str, text: str) -> None:
    path = tmp_path / name
    _ = path.write_text(text)

    with pytest.raises(ConfigError, match="Cannot read configuration file"):
        _ = load_config(path, env={})


def test_toml_file_with_nested_sections(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    _ = path.write_text(
        "\n".join(
            [
                'prompt = "ada@lab"',
                "start_timeout = 5",
                "[storage]",
                'key = "lab:fs"',
                f'path = "{tmp_path / "state.db"}"',
                "[terminal]",
                'root_path = "/home"',
            ]
        )
    )

    config = load_config(path, env={})

    assert config.prompt == "ada@lab"
    assert config.fs_state_key == "lab:fs"
    assert config.store_path == tmp_path / "state.db"
    assert config.root_path == "/home"
    assert config.start_timeout == 5.0


def test_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    _ = path.write_text("redis_url: redis://localhost:6379/0\nterminal:\n  prompt: me\n")

    config = load_config(path, env={})

    assert config.redis_url == "redis://localhost:6379/0"
    assert config.prompt == "me"


def test_layering_env_over_file_and_cli_over_env(tmp_path: Path) -> None:
    config = load_config(
        {"prompt": "file", "fs_state_key": "file-key"},
        {"prompt": "cli", "root_path": None},
        env={
            "KSHELL_PROMPT": "env",
            "KSHELL_FS_STATE_KEY": "env-key",
            "KSHELL_STORE_PATH": str(tmp_path / "env.db"),
            "KSHELL_START_TIMEOUT": "2.5",
        },
    )

    assert config.prompt == "cli"
    assert config.fs_state_key == "env-key"
    assert config.root_path == "/"
    assert config.store_path == tmp_path / "env.db"
    assert config.start_timeout == 2.5


@pytest.mark.parametrize(
    ("raw", "env"),
    [
        ({"root_path": "relative"}, {}),
        ({"fs_state_key": ""}, {}),
        ({"start_timeout": 0}, {}),
        ({"start_timeout": True}, {}),
        ({"prompt": 3}, {}),
        ({"redis_url": 1}, {}),
        ({"store_path": 1}, {}),
        ({}, {"KSHELL_START_TIMEOUT": "soon"}),
    ],
)
def test_invalid_values_raise_config_error(
    raw: dict[str, object], env: dict[str, str]
) -> None:
    with pytest.raises(ConfigError):
        _ = load_config(raw, env=env)


def test_unsupported_file_format(tmp_path: Path) -> None:
    path = tmp_path / "config.ini"
    _ = path.write_text("[x]")
    with pytest.raises(ConfigError, match="Unsupported"):
        _ = load_config(path, env={})


def test_non_mapping_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    _ = path.write_text("- a\n- b\n")
    with pytest.raises(ConfigError, match="mapping"):
        _ = load_config(path, env={})


def test_to_document_matches_app_config_layout() -> None:
    document = json.loads(ShellConfig(root_path="/home", prompt="p").to_document())
    assert document == {
        "storage": {"fsStateKey": DEFAULT_FS_STATE_KEY},
        "filesystem": {"rootPath": "/home"},
        "terminal": {"promptDefault": "p", "clearScreenCode": "\x1b[2J\x1b[H"},
    }
