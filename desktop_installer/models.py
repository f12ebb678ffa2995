from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


class PackageState(enum.Enum):
    INSTALLED = "installed"
    MISSING = "missing"


class InstallPath(enum.Enum):
    """Which installer invocation actually ran for a batch."""

    NONE = "none"
    HELPER = "helper"
    BASE = "base"
    HELPER_FALLBACK = "helper_fallback"


class Condition(enum.Enum):
    EMPTY_GROUP = "empty_group"
    INSTALLER_NONZERO_EXIT = "installer_nonzero_exit"
    HARDWARE_NOT_DETECTED = "hardware_not_detected"
    CONFIG_WRITE_CONFLICT = "config_write_conflict"
    VERIFICATION_INCOMPLETE = "verification_incomplete"


class KernelFlavor(enum.Enum):
    STANDARD = "standard"
    LTS = "lts"
    ZEN = "zen"
    HARDENED = "hardened"
    OTHER = "other"


class SkipReason(enum.Enum):
    NO_HARDWARE = "no_hardware"
    DISABLED = "disabled"
    CONFIG_ONLY = "config_only"


@dataclass(frozen=True)
class PackageGroup:
    name: str
    members: Tuple[str, ...]
    stage: str = "core"
    on_failure: str = "warn"
    prompt: Optional[str] = None
    description: str = ""

    @property
    def title(self) -> str:
        return self.description or f"Installing {self.name} packages"


@dataclass(frozen=True)
class InstallResult:
    group: PackageGroup
    already_installed: int = 0
    attempted: Tuple[str, ...] = ()
    succeeded: int = 0
    exit_code: int = 0
    duration_seconds: int = 0
    path: InstallPath = InstallPath.NONE
    condition: Optional[Condition] = None
    missing: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.condition is not Condition.EMPTY_GROUP and self.exit_code == 0

    @property
    def partial(self) -> bool:
        """Installer reported success but verification found fewer packages."""
        return self.ok and bool(self.attempted) and self.succeeded < len(self.attempted)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group": self.group.name,
            "members": list(self.group.members),
            "already_installed": self.already_installed,
            "attempted": list(self.attempted),
            "succeeded": self.succeeded,
            "missing": list(self.missing),
            "exit_code": self.exit_code,
            "duration_seconds": self.duration_seconds,
            "path": self.path.value,
            "condition": self.condition.value if self.condition else None,
            "ok": self.ok,
        }


@dataclass(frozen=True)
class HardwareProfile:
    gpu_vendor_detected: bool
    kernel_flavor: KernelFlavor
    multilib_enabled: bool
    gpu_devices: Tuple[str, ...] = field(default=())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gpu_vendor_detected": self.gpu_vendor_detected,
            "kernel_flavor": self.kernel_flavor.value,
            "multilib_enabled": self.multilib_enabled,
            "gpu_devices": list(self.gpu_devices),
        }


@dataclass(frozen=True)
class DriverPlan:
    primary_package: str
    auxiliary_packages: Tuple[str, ...]
    fallback_packages: Tuple[str, ...] = ()

    @property
    def packages(self) -> Tuple[str, ...]:
        return (self.primary_package, *self.auxiliary_packages)


@dataclass(frozen=True)
class DriverSkip:
    reason: SkipReason
