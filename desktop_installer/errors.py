from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .lib.command import CmdResult
    from .models import InstallResult


class ProvisioningError(RuntimeError):
    """Base class for conditions that end the run with exit code 1."""


class CommandError(ProvisioningError):
    def __init__(self, result: "CmdResult") -> None:
        from .lib.command import fmt_argv

        self.result = result
        super().__init__(
            f"Command failed ({result.returncode}): {fmt_argv(result.argv)}\n{result.stderr}"
        )


class InstallerUnavailable(ProvisioningError):
    """Neither the AUR helper nor the base package manager can be found."""


class GroupFailed(ProvisioningError):
    def __init__(self, result: "InstallResult") -> None:
        self.result = result
        super().__init__(
            f"Package group {result.group.name!r} failed "
            f"(exit={result.exit_code}, succeeded={result.succeeded}/{len(result.attempted)})"
        )


class ManifestError(ProvisioningError):
    pass
