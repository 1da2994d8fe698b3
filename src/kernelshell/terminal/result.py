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


"""Outcome of one interpreted command line."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["CommandResult"]


@dataclass(slots=True, frozen=True)
class CommandResult:
    """Text output and exit code of a command.

    Success carries ``code == 0`` and an empty ``stderr``; failure carries a
    non-zero code and an empty ``stdout``.
    """

    stdout: str = ""
    stderr: str = ""
    code: int = 0

    @property
    def ok(self) -> bool:
        return self.code == 0

    @classmethod
    def success(cls, stdout: str = "") -> CommandResult:
        return cls(stdout=stdout)

    @classmethod
    def failure(cls, stderr: str, code: int = 1) -> CommandResult:
        if code == 0:
            raise ValueError("failure results need a non-zero exit code")
        return cls(stderr=stderr, code=code)
