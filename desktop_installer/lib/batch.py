from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from ..models import Condition, InstallPath, InstallResult, PackageGroup, PackageState
from .oracle import PackageOracle
from .pkg import InstallAttempt, PackageBackend

logger = logging.getLogger(__name__)


class BatchInstaller:
    """Installs the missing members of a package group and verifies the outcome.

    Never raises on installer failure; the only exception that escapes is
    InstallerUnavailable from the backend.
    """

    def __init__(
        self,
        oracle: PackageOracle,
        backend: PackageBackend,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.oracle = oracle
        self.backend = backend
        self._clock = clock

    def install_group(
        self,
        description: str,
        members: Sequence[str],
        *,
        group: Optional[PackageGroup] = None,
        base_only: bool = False,
    ) -> InstallResult:
        # pacman treats a repeated name as one package; count it once too.
        members = list(dict.fromkeys(members))
        group = group or PackageGroup(name=description, members=tuple(members))

        logger.info("%s (%d packages)", description, len(members))
        if not members:
            logger.warning("%s: no packages specified", description)
            return InstallResult(group=group, exit_code=1, condition=Condition.EMPTY_GROUP)

        state = self.oracle.snapshot(members)
        already = [p for p, s in state.items() if s is PackageState.INSTALLED]
        to_install = [p for p, s in state.items() if s is PackageState.MISSING]
        for p in already:
            logger.debug("  %s (already installed)", p)

        if not to_install:
            logger.info("%s: all %d packages already installed", description, len(members))
            return InstallResult(
                group=group,
                already_installed=len(already),
                succeeded=len(already),
            )

        logger.info("%s: installing %d: %s", description, len(to_install), " ".join(to_install))

        started = self._clock()
        if base_only:
            attempt = InstallAttempt(
                exit_code=self.backend.install_base(to_install, needed=True, no_confirm=True),
                path=InstallPath.BASE,
            )
        else:
            attempt = self.backend.install(to_install, needed=True, no_confirm=True)
        duration = int(self._clock() - started)

        missing = tuple(p for p in to_install if not self.oracle.is_installed(p))
        succeeded = len(to_install) - len(missing)

        if attempt.exit_code == 0:
            logger.info(
                "%s finished in %ss: %d/%d packages installed",
                description,
                duration,
                succeeded,
                len(to_install),
            )
        else:
            logger.error(
                "%s failed (exit=%s) after %ss: %d/%d packages installed",
                description,
                attempt.exit_code,
                duration,
                succeeded,
                len(to_install),
            )
        if missing:
            logger.warning("%s: not installed after run: %s", description, " ".join(missing))

        return InstallResult(
            group=group,
            already_installed=len(already),
            attempted=tuple(to_install),
            succeeded=succeeded,
            exit_code=attempt.exit_code,
            duration_seconds=duration,
            path=attempt.path,
            condition=Condition.INSTALLER_NONZERO_EXIT if attempt.exit_code != 0 else None,
            missing=missing,
        )
