from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from ..errors import InstallerUnavailable
from ..models import InstallPath
from .command import Runner, run_cmd
from .inspector import SystemInspector
from .workdir import scoped_workdir

logger = logging.getLogger(__name__)

BASE_MANAGER = "pacman"
AUR_HELPER = "yay"
AUR_HELPER_REPO = "https://aur.archlinux.org/yay.git"
AUR_HELPER_BUILD_DEPS = ("git", "base-devel")


@dataclass(frozen=True)
class InstallAttempt:
    exit_code: int
    path: InstallPath


def _install_flags(*, needed: bool, no_confirm: bool) -> list[str]:
    flags = ["-S"]
    if needed:
        flags.append("--needed")
    if no_confirm:
        flags.append("--noconfirm")
    return flags


class PackageBackend:
    """pacman with an optional AUR helper in front of it.

    All calls block; callers must not run two installs at once since
    pacman holds a global database lock.
    """

    def __init__(
        self,
        inspector: SystemInspector,
        *,
        runner: Runner = run_cmd,
        dry_run: bool = False,
    ) -> None:
        self._inspector = inspector
        self._run = runner
        self.dry_run = dry_run

    def helper_available(self) -> bool:
        return self._inspector.command_exists(AUR_HELPER)

    def base_available(self) -> bool:
        return self._inspector.command_exists(BASE_MANAGER)

    def install_base(self, packages: Sequence[str], *, needed: bool = True, no_confirm: bool = True) -> int:
        argv = ["sudo", BASE_MANAGER, *_install_flags(needed=needed, no_confirm=no_confirm), *packages]
        return self._run(argv, check=False, dry_run=self.dry_run, stream=True).returncode

    def install_helper(self, packages: Sequence[str], *, needed: bool = True, no_confirm: bool = True) -> int:
        # yay escalates with sudo itself and refuses to run as root.
        argv = [AUR_HELPER, *_install_flags(needed=needed, no_confirm=no_confirm), *packages]
        return self._run(argv, check=False, dry_run=self.dry_run, stream=True).returncode

    def install(self, packages: Sequence[str], *, needed: bool = True, no_confirm: bool = True) -> InstallAttempt:
        """Install packages, preferring the AUR helper.

        A failing helper run gets exactly one retry through pacman. Raises
        InstallerUnavailable when neither tool exists.
        """

        if self.helper_available():
            logger.info("Installing via %s: %s", AUR_HELPER, " ".join(packages))
            rc = self.install_helper(packages, needed=needed, no_confirm=no_confirm)
            if rc == 0:
                return InstallAttempt(exit_code=0, path=InstallPath.HELPER)
            if not self.base_available():
                return InstallAttempt(exit_code=rc, path=InstallPath.HELPER)
            logger.warning("%s failed (rc=%s); retrying with %s", AUR_HELPER, rc, BASE_MANAGER)
            rc = self.install_base(packages, needed=needed, no_confirm=no_confirm)
            return InstallAttempt(exit_code=rc, path=InstallPath.HELPER_FALLBACK)

        if self.base_available():
            logger.info("Installing via %s: %s", BASE_MANAGER, " ".join(packages))
            rc = self.install_base(packages, needed=needed, no_confirm=no_confirm)
            return InstallAttempt(exit_code=rc, path=InstallPath.BASE)

        raise InstallerUnavailable(f"Neither {AUR_HELPER} nor {BASE_MANAGER} found on PATH")

    def system_upgrade(self) -> bool:
        r = self._run(
            ["sudo", BASE_MANAGER, "-Syu", "--noconfirm", "--needed"],
            check=False,
            dry_run=self.dry_run,
            stream=True,
        )
        if r.returncode != 0:
            logger.warning("System upgrade failed (rc=%s); continuing", r.returncode)
            return False
        return True

    def bootstrap_helper(self) -> bool:
        """Build and install the AUR helper from source if it is missing."""

        if self.helper_available():
            logger.info("%s already installed", AUR_HELPER)
            return True

        missing = [p for p in AUR_HELPER_BUILD_DEPS if not self._inspector.package_installed(p)]
        if missing:
            logger.info("Installing %s build dependencies: %s", AUR_HELPER, " ".join(missing))
            if self.install_base(missing) != 0:
                logger.warning("Could not install %s build dependencies", AUR_HELPER)
                return False

        with scoped_workdir(prefix=f"{AUR_HELPER}_install_") as work:
            r = self._run(["git", "clone", AUR_HELPER_REPO], check=False, cwd=str(work), dry_run=self.dry_run)
            if r.returncode != 0:
                logger.warning("Failed to clone %s", AUR_HELPER_REPO)
                return False
            r = self._run(
                ["makepkg", "-si", "--noconfirm"],
                check=False,
                cwd=str(work / AUR_HELPER),
                dry_run=self.dry_run,
                stream=True,
            )
            if r.returncode != 0:
                logger.warning("Failed to build %s (rc=%s)", AUR_HELPER, r.returncode)
                return False

        logger.info("%s installed", AUR_HELPER)
        return True

    def enable_services(self, services: Sequence[str]) -> bool:
        if not services:
            return True
        r = self._run(["sudo", "systemctl", "enable", *services], check=False, dry_run=self.dry_run)
        if r.returncode != 0:
            logger.warning("Enabling services failed (rc=%s): %s", r.returncode, " ".join(services))
            return False
        return True


def export_package_list(inspector: SystemInspector, path: str) -> int:
    """Write explicitly installed package names, one per line."""

    names = inspector.explicit_packages()
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text("".join(f"{n}\n" for n in names), encoding="utf-8")
    logger.info("Exported %d packages to %s", len(names), p)
    return len(names)
