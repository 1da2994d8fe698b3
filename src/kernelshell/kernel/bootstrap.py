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

"""Startup sequence that brings the persisted tree into a known-good shape.

State machine::

    UNSTARTED -> LOADING_SNAPSHOT -> (RESTORED | SEEDING) -> REPAIRING -> READY
                         \\________________ any fault ________________/-> FAILED

Seeding only happens when the store holds no snapshot at all. Seed steps are
best-effort: a failing step is logged and skipped, nothing is rolled back.
Repair runs on every start and only ever adds missing well-known paths, so
user data elsewhere in the tree is never touched.
"""

from __future__ import annotations

import posixpath
from collections.abc import Callable
from enum import Enum

from ..config import ShellConfig
from ..errors import KernelShellError
from ..logging import StructuredLogger, get_logger
from ..storage import NotFound, StorageCapability
from .persistence import PersistenceCoordinator
from .seed import APP_DIRS, BASE_DIRS, WellKnownPath, repair_paths, seed_files

__all__ = ["BootState", "BootstrapError", "BootstrapOrchestrator"]

logger: StructuredLogger = get_logger(__name__, context={"component": "bootstrap"})


class BootState(Enum):
    UNSTARTED = "unstarted"
    LOADING_SNAPSHOT = "loading_snapshot"
    RESTORED = "restored"
    SEEDING = "seeding"
    REPAIRING = "repairing"
    READY = "ready"
    FAILED = "failed"


class BootstrapError(KernelShellError, RuntimeError):
    """Raised when startup cannot reach ``READY``.

    The failing step is available as ``__cause__``.
    """


class BootstrapOrchestrator:
    """Runs the load, seed and repair steps exactly once."""

    def __init__(
        self,
        storage: StorageCapability,
        persistence: PersistenceCoordinator,
        *,
        config: ShellConfig,
    ) -> None:
        super().__init__()
        self._storage = storage
        self._persistence = persistence
        self._config = config
        self._state = BootState.UNSTARTED
        self._transitions: list[BootState] = [BootState.UNSTARTED]
        self._repaired: list[str] = []
        self._seed_failures: list[str] = []

    @property
    def state(self) -> BootState:
        return self._state

    @property
    def transitions(self) -> tuple[BootState, ...]:
        """Every state entered so far, in order."""
        return tuple(self._transitions)

    @property
    def repaired(self) -> tuple[str, ...]:
        """Well-known paths recreated by the repair pass."""
        return tuple(self._repaired)

    @property
    def seed_failures(self) -> tuple[str, ...]:
        """Seed steps that failed and were skipped."""
        return tuple(self._seed_failures)

    def run(self) -> None:
        """Drive the state machine to ``READY``.

        Raises:
            BootstrapError: Any unrecoverable step failed; state is ``FAILED``.
        """
        if self._state is not BootState.UNSTARTED:
            raise BootstrapError(f"bootstrap already ran (state={self._state.value})")
        try:
            self._transition(BootState.LOADING_SNAPSHOT)
            persisted = self._persistence.load()
            if persisted is not None:
                self._storage.load_state(persisted)
                self._transition(BootState.RESTORED)
                logger.info(
                    "Restored persisted filesystem",
                    event="kernel.bootstrap.restored",
                    context={"bytes": len(persisted)},
                )
            else:
                self._storage.load_state(None)
                self._transition(BootState.SEEDING)
                self._seed()

            self._transition(BootState.REPAIRING)
            self._repair()
        except Exception as error:
            self._transition(BootState.FAILED)
            logger.exception(
                "Bootstrap failed",
                event="kernel.bootstrap.failed",
                context={"error": str(error)},
            )
            raise BootstrapError(str(error) or type(error).__name__) from error

        self._transition(BootState.READY)

    def _transition(self, state: BootState) -> None:
        self._state = state
        self._transitions.append(state)
        logger.debug(
            "Bootstrap state changed",
            event="kernel.bootstrap.state",
            context={"state": state.value},
        )

    def _seed(self) -> None:
        logger.info("No persisted filesystem, seeding", event="kernel.bootstrap.seeding")
        for directory in (*BASE_DIRS, *APP_DIRS):
            self._seed_step(f"mkdir {directory}", lambda d=directory: self._storage.mkdir(d))
        for path, text in seed_files(self._config).items():
            self._seed_step(
                f"write {path}",
                lambda p=path, t=text: self._storage.write_file(p, t.encode("utf-8")),
            )
        self._seed_step("persist", self._persistence.persist)
        logger.info(
            "Seeded filesystem",
            event="kernel.bootstrap.seeded",
            context={"failures": len(self._seed_failures)},
        )

    def _seed_step(self, label: str, action: Callable[[], object]) -> None:
        try:
            _ = action()
        except Exception as error:  # noqa: BLE001 - partial seed is tolerated
            self._seed_failures.append(label)
            logger.warning(
                "Seed step failed",
                event="kernel.bootstrap.seed_step_failed",
                context={"step": label, "error": str(error)},
            )

    def _repair(self) -> None:
        for entry in repair_paths():
            if self._exists(entry.path):
                continue
            self._recreate(entry)
            _ = self._persistence.persist()
            self._repaired.append(entry.path)
            logger.info(
                "Recreated missing well-known path",
                event="kernel.bootstrap.repaired",
                context={"path": entry.path},
            )

    def _exists(self, path: str) -> bool:
        try:
            _ = self._storage.stat(path)
        except NotFound:
            return False
        return True

    def _recreate(self, entry: WellKnownPath) -> None:
        self._ensure_parents(entry.path)
        if entry.directory:
            self._storage.mkdir(entry.path)
        elif entry.render is not None:
            self._storage.write_file(entry.path, entry.render(self._config).encode("utf-8"))
        for path, text in entry.files:
            self._storage.write_file(path, text.encode("utf-8"))

    def _ensure_parents(self, path: str) -> None:
        missing: list[str] = []
        parent = posixpath.dirname(path)
        while parent != "/" and not self._exists(parent):
            missing.append(parent)
            parent = posixpath.dirname(parent)
        for directory in reversed(missing):
            self._storage.mkdir(directory)
