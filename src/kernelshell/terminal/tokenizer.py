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


"""Quote- and escape-aware splitting of a command line into tokens."""

from __future__ import annotations

from enum import Enum
from typing import Final

__all__ = ["tokenize"]

_ESCAPES: Final[dict[str, str]] = {"n": "\n", "t": "\t"}


class _Mode(Enum):
    UNQUOTED = "unquoted"
    SINGLE = "single"
    DOUBLE = "double"


def tokenize(line: str) -> list[str]:
    """Split ``line`` into tokens.

    Whitespace separates tokens outside quotes. Single quotes keep their
    content verbatim. Inside double quotes ``\\n`` and ``\\t`` become a newline
    and a tab, and any other backslash pair emits the second character. An
    unterminated quote runs to the end of the line. Empty tokens (``""``) are
    dropped.

    Example::

        >>> tokenize('echo "a b" > x')
        ['echo', 'a b', '>', 'x']
    """

    tokens: list[str] = []
    current: list[str] = []
    mode = _Mode.UNQUOTED
    index = 0
    length = len(line)

    while index < length:
        char = line[index]
        match mode:
            case _Mode.UNQUOTED:
                if char.isspace():
                    if current:
                        tokens.append("".join(current))
                        current.clear()
                elif char == "'":
                    mode = _Mode.SINGLE
                elif char == '"':
                    mode = _Mode.DOUBLE
                else:
                    current.append(char)
            case _Mode.SINGLE:
                if char == "'":
                    mode = _Mode.UNQUOTED
                else:
                    current.append(char)
            case _Mode.DOUBLE:
                if char == '"':
                    mode = _Mode.UNQUOTED
                elif char == "\\":
                    escaped = line[index + 1 : index + 2]
                    current.append(_ESCAPES.get(escaped, escaped))
                    index += 1
                else:
                    current.append(char)
        index += 1

    if current:
        tokens.append("".join(current))
    return tokens
