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

"""Well-known paths and default content created on first start."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from ..config import ShellConfig

__all__ = [
    "APP_DIRS",
    "BASE_DIRS",
    "DEFAULT_THEME_CSS",
    "WellKnownPath",
    "repair_paths",
    "seed_files",
]

BASE_DIRS: Final[tuple[str, ...]] = (
    "/home",
    "/bin",
    "/etc",
    "/tmp",  # noqa: S108 - virtual path
    "/var",
    "/usr",
    "/usr/local",
    "/opt",
    "/dev",
    "/apps",
)

APP_DIRS: Final[tuple[str, ...]] = (
    "/apps/terminal",
    "/apps/textviewer",
    "/apps/filebrowser",
    "/apps/notes",
    "/apps/editor",
)

APP_CONFIG_PATH: Final[str] = "/etc/app-config.json"
THEME_PATH: Final[str] = "/etc/theme.css"
EDITOR_DIR: Final[str] = "/apps/editor"

DEFAULT_THEME_CSS: Final[str] = """\
:root {
  --bg: #1e1f22;
  --fg: #d8dee9;
  --accent: #88c0d0;
  --muted: #4c566a;
  --error: #bf616a;
  --font-mono: "JetBrains Mono", "Fira Code", monospace;
  --font-size: 14px;
  --gap: 8px;
  --radius: 6px;
  --transition: 150ms ease-out;
}

.terminal {
  background: var(--bg);
  color: var(--fg);
  font-family: var(--font-mono);
  font-size: var(--font-size);
}

.terminal .stderr {
  color: var(--error);
}
"""

WELCOME_TEXT: Final[str] = "\n".join(
    [
        "=============================================================",
        "                  Welcome to kernelshell",
        "=============================================================",
        "",
        "kernelshell is a Unix-like shell over a persistent virtual",
        "filesystem. The filesystem lives in a background kernel and is",
        "saved after every change, so your files survive restarts.",
        "",
        "GETTING STARTED:",
        "",
        '1. Type "help" to see all available commands',
        '2. Use "ls" or "tree" to explore the filesystem',
        '3. Try "cat /home/welcome.txt" to read this file',
        '4. Use "open <file>" to view and "edit <file>" to edit files',
        "5. Customize the look by editing /etc/theme.css",
        "",
        "COMMAND EXAMPLES:",
        "",
        "  pwd                     # Show current directory",
        "  cd /home                # Change directory",
        "  ls                      # List directory contents",
        "  tree /home              # Show directory tree",
        "  mkdir projects          # Create a new directory",
        '  echo "Hello" > file.txt # Create a file',
        "  stat /home              # Show file information",
        "  cp file.txt backup.txt  # Copy a file",
        "  mv old.txt new.txt      # Rename a file",
        "  rm file.txt             # Delete a file",
        "",
        "PERSISTENCE:",
        "",
        "Everything you create is written to durable storage after each",
        "command. To erase all data and start over, type:",
        "",
        "  sudo reset --confirm",
        "",
        "=============================================================",
    ]
)

APP_READMES: Final[dict[str, str]] = {
    "/apps/terminal/README.txt": "\n".join(
        [
            "Terminal Application",
            "",
            "A Unix-like shell with support for:",
            "- File operations (mkdir, rm, cp, mv)",
            "- Text processing (cat, echo)",
            "- Directory navigation (cd, ls, pwd)",
            "- File inspection (stat, tree)",
            "- Filesystem reset (sudo reset --confirm)",
        ]
    ),
    "/apps/textviewer/README.txt": "\n".join(
        [
            "Text Viewer Application",
            "",
            "View and read text files from the filesystem.",
            "Usage: open <filepath>",
        ]
    ),
    "/apps/filebrowser/README.txt": "\n".join(
        [
            "File Browser Application",
            "",
            "Navigate and explore the filesystem.",
            "- Directory tree navigation",
            "- File preview",
        ]
    ),
    "/apps/notes/README.txt": "\n".join(
        [
            "Notes Application",
            "",
            "Simple note-taking application.",
            "Notes are stored in /home/notes/",
        ]
    ),
    "/apps/editor/README.txt": "\n".join(
        [
            "Text Editor Application",
            "",
            "Create and edit text files.",
            "Usage: edit <filepath>",
            "Files are saved back to the virtual filesystem.",
        ]
    ),
}


def seed_files(config: ShellConfig) -> dict[str, str]:
    """Return path to text for every default file, in write order."""

    return {
        APP_CONFIG_PATH: config.to_document(),
        THEME_PATH: DEFAULT_THEME_CSS,
        "/home/welcome.txt": WELCOME_TEXT,
        **APP_READMES,
    }


@dataclass(slots=True, frozen=True)
class WellKnownPath:
    """A path the repair pass guarantees after every successful start.

    ``directory`` entries are created with ``mkdir``; ``files`` are written
    after the directory exists. ``render`` produces the text of a file entry.
    """

    path: str
    directory: bool = False
    render: Callable[[ShellConfig], str] | None = None
    files: tuple[tuple[str, str], ...] = ()


def repair_paths() -> tuple[WellKnownPath, ...]:
    """Return the paths checked on every start, in probe order."""

    editor_readme = f"{EDITOR_DIR}/README.txt"
    return (
        WellKnownPath(APP_CONFIG_PATH, render=lambda config: config.to_document()),
        WellKnownPath(THEME_PATH, render=lambda _config: DEFAULT_THEME_CSS),
        WellKnownPath(
            EDITOR_DIR,
            directory=True,
            files=((editor_readme, APP_READMES[editor_readme]),),
        ),
    )
