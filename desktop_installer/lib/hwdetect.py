from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from ..models import HardwareProfile, KernelFlavor
from .inspector import InstalledPackage, PciDevice, SystemInspector

logger = logging.getLogger(__name__)

NVIDIA_VENDOR_ID = "10de"
PACMAN_CONF = "/etc/pacman.conf"

_KERNEL_FLAVOR_BY_PACKAGE = {
    "linux": KernelFlavor.STANDARD,
    "linux-lts": KernelFlavor.LTS,
    "linux-zen": KernelFlavor.ZEN,
    "linux-hardened": KernelFlavor.HARDENED,
}

# linux-<x> packages that are not kernels.
_NON_KERNEL_PREFIXES = {"firmware", "headers", "api", "docs", "tools", "atm"}

_KERNEL_PKG = re.compile(r"^linux(?:-(?P<suffix>[a-z0-9][a-z0-9-]*))?$")
_MULTILIB = re.compile(r"^\s*\[multilib\]\s*$", re.MULTILINE)


def is_nvidia_device(dev: PciDevice) -> bool:
    if dev.vendor_id and dev.vendor_id.lower() == NVIDIA_VENDOR_ID:
        return True
    return "nvidia" in dev.description.lower()


def _kernel_candidates(packages: Sequence[InstalledPackage]) -> List[tuple[str, KernelFlavor]]:
    found: List[tuple[str, KernelFlavor]] = []
    for pkg in packages:
        m = _KERNEL_PKG.match(pkg.name)
        if not m:
            continue
        suffix = m.group("suffix")
        if suffix and (
            suffix.split("-")[0] in _NON_KERNEL_PREFIXES
            or suffix.endswith("-headers")
            or suffix.endswith("-docs")
        ):
            continue
        found.append((pkg.name, _KERNEL_FLAVOR_BY_PACKAGE.get(pkg.name, KernelFlavor.OTHER)))
    return found


def detect_kernel_flavor(packages: Sequence[InstalledPackage], running_release: Optional[str] = None) -> KernelFlavor:
    """Pick the kernel flavor the driver must match.

    Several kernels may be installed side by side; the one whose flavor
    appears in the running release string (6.6.1-zen1-1-zen, 6.1.55-1-lts)
    wins, otherwise the first kernel package listed.
    """

    candidates = _kernel_candidates(packages)
    if not candidates:
        logger.info("No kernel package found; assuming %s", KernelFlavor.STANDARD.value)
        return KernelFlavor.STANDARD

    if running_release and len(candidates) > 1:
        release = running_release.lower()
        for name, flavor in candidates:
            if flavor in (KernelFlavor.STANDARD, KernelFlavor.OTHER):
                continue
            if release.endswith("-" + flavor.value):
                return flavor
        for name, flavor in candidates:
            if flavor is KernelFlavor.OTHER and release.endswith("-" + name[len("linux-"):]):
                return flavor
        # Vanilla Arch kernels carry an "-arch" tag in the release.
        if "-arch" in release and any(f is KernelFlavor.STANDARD for _, f in candidates):
            return KernelFlavor.STANDARD

    return candidates[0][1]


def multilib_enabled(pacman_conf: Optional[str]) -> bool:
    return bool(pacman_conf and _MULTILIB.search(pacman_conf))


def detect_hardware(inspector: SystemInspector) -> HardwareProfile:
    gpus = tuple(f"{d.slot} {d.description}" for d in inspector.pci_devices() if is_nvidia_device(d))
    flavor = detect_kernel_flavor(inspector.installed_packages(), inspector.kernel_release())
    multilib = multilib_enabled(inspector.read_text(PACMAN_CONF))

    profile = HardwareProfile(
        gpu_vendor_detected=bool(gpus),
        kernel_flavor=flavor,
        multilib_enabled=multilib,
        gpu_devices=gpus,
    )
    logger.info(
        "Hardware: nvidia=%s kernel=%s multilib=%s",
        profile.gpu_vendor_detected,
        profile.kernel_flavor.value,
        profile.multilib_enabled,
    )
    return profile
