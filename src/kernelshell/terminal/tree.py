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


"""Recursive Unix ``tree``-style rendering of a directory."""

from __future__ import annotations

from typing import Final, Protocol

from ..client import KernelRemoteError
from ..storage import Stat
from .paths import join_child

__all__ = ["TreeSource", "render_tree"]

_BRANCH: Final[str] = "├── "
_LAST_BRANCH: Final[str] = "└── "
_PIPE: Final[str] = "│   "
_SPACE: Final[str] = "    "


class TreeSource(Protocol):
    """Directory queries the renderer needs; satisfied by ``KernelClient``."""

    async def fs_readdir(self, path: str) -> list[str]: ...

    async def fs_stat(self, path: str) -> Stat: ...


async def render_tree(source: TreeSource, root: str) -> str:
    """Render ``root`` and everything below it.

    The first line is ``root`` itself. Each level lists directories before
    files, each group sorted, and directories carry a trailing ``/``. An entry
    whose stat fails is shown as a file; a directory that cannot be listed
    shows no children.
    """

    lines = [root]
    await _render_level(source, root, "", lines)
    return "\n".join(lines)


async def _render_level(source: TreeSource, path: str, prefix: str, lines: list[str]) -> None:
    try:
        names = await source.fs_readdir(path)
    except KernelRemoteError:
        return

    directories: list[str] = []
    files: list[str] = []
    for name in names:
        if await _is_directory(source, join_child(path, name)):
            directories.append(name)
        else:
            files.append(name)

    ordered = [(name, True) for name in sorted(directories)]
    ordered.extend((name, False) for name in sorted(files))
    for index, (name, is_dir) in enumerate(ordered):
        last = index == len(ordered) - 1
        connector = _LAST_BRANCH if last else _BRANCH
        if not is_dir:
            lines.append(f"{prefix}{connector}{name}")
            continue
        lines.append(f"{prefix}{connector}{name}/")
        await _render_level(
            source,
            join_child(path, name),
            prefix + (_SPACE if last else _PIPE),
            lines,
        )


async def _is_directory(source: TreeSource, path: str) -> bool:
    try:
        stat = await source.fs_stat(path)
    except KernelRemoteError:
        return False
    return stat.is_dir
