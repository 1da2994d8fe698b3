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


"""Command interpreter: tokenizer, path resolution, tree rendering, session."""

from __future__ import annotations

from .paths import join_child, normalize_path, resolve_path
from .result import CommandResult
from .terminal import (
    HELP_TEXT,
    CommandHandler,
    CommandRegistry,
    NullHooks,
    Terminal,
    TerminalHooks,
)
from .tokenizer import tokenize
from .tree import TreeSource, render_tree

__all__ = [
    "HELP_TEXT",
    "CommandHandler",
    "CommandRegistry",
    "CommandResult",
    "NullHooks",
    "Terminal",
    "TerminalHooks",
    "TreeSource",
    "join_child",
    "normalize_path",
    "render_tree",
    "resolve_path",
    "tokenize",
]
