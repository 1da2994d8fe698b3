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


"""Working-directory relative path resolution."""

from __future__ import annotations

__all__ = ["join_child", "normalize_path", "resolve_path"]


def resolve_path(cwd: str, path: str) -> str:
    """Resolve ``path`` against ``cwd`` and normalise the result.

    An empty path or ``.`` yields ``cwd``; an absolute path ignores ``cwd``.
    ``..`` never climbs above the root.
    """
    if not path or path == ".":
        joined = cwd
    elif path.startswith("/"):
        joined = path
    else:
        joined = f"{cwd.rstrip('/')}/{path}"
    return normalize_path(joined)


def normalize_path(path: str) -> str:
    """Collapse empty, ``.`` and ``..`` segments into an absolute path."""
    stack: list[str] = []
    for segment in path.split("/"):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if stack:
                _ = stack.pop()
            continue
        stack.append(segment)
    return "/" + "/".join(stack)


def join_child(directory: str, name: str) -> str:
    """Return the absolute path of ``name`` inside ``directory``."""
    return f"{'' if directory == '/' else directory}/{name}"
