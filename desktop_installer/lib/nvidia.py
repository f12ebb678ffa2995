from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..config import InstallerConfig
from ..models import (
    Condition,
    DriverPlan,
    DriverSkip,
    HardwareProfile,
    InstallResult,
    KernelFlavor,
    PackageGroup,
    SkipReason,
)
from .batch import BatchInstaller
from .command import Runner, run_cmd
from .configfile import ConfigWriter
from .hwdetect import is_nvidia_device
from .inspector import SystemInspector

logger = logging.getLogger(__name__)

DRIVER_PACKAGE = "nvidia"
DKMS_PACKAGE = "nvidia-dkms"
UTILS_PACKAGE = "nvidia-utils"
SETTINGS_PACKAGE = "nvidia-settings"
LIB32_PACKAGE = "lib32-nvidia-utils"

PRIMARY_BY_FLAVOR = {
    KernelFlavor.STANDARD: DRIVER_PACKAGE,
    KernelFlavor.LTS: "nvidia-lts",
    KernelFlavor.ZEN: DKMS_PACKAGE,
    KernelFlavor.HARDENED: DKMS_PACKAGE,
    KernelFlavor.OTHER: DRIVER_PACKAGE,
}

KERNEL_MODULES = ("nvidia", "nvidia_modeset", "nvidia_uvm", "nvidia_drm")
CONFLICTING_MODULE = "nouveau"

MODPROBE_CONF = "/etc/modprobe.d/nvidia.conf"
MODPROBE_LINES = (
    "blacklist nouveau",
    "options nouveau modeset=0",
    "options nvidia_drm modeset=1",
)

MKINITCPIO_CONF = "/etc/mkinitcpio.conf"

XORG_CONF = "/etc/X11/xorg.conf.d/10-nvidia.conf"
XORG_OUTPUT_CLASS = """\
Section "OutputClass"
    Identifier "nvidia"
    MatchDriver "nvidia-drm"
    Driver "nvidia"
    Option "AllowEmptyInitialConfiguration"
    Option "PrimaryGPU" "yes"
    ModulePath "/usr/lib/nvidia/xorg"
    ModulePath "/usr/lib/xorg/modules"
EndSection
"""

ENVIRONMENT_FILE = "/etc/environment"
ENVIRONMENT_LINES = (
    "LIBVA_DRIVER_NAME=nvidia",
    "GBM_BACKEND=nvidia-drm",
    "__GLX_VENDOR_LIBRARY_NAME=nvidia",
)
DISPLAY_MANAGER_CONFS = ("/etc/gdm/custom.conf", "/etc/lightdm/lightdm.conf")

SMI = "nvidia-smi"


def plan_driver_install(
    profile: Optional[HardwareProfile],
    config: InstallerConfig,
) -> Union[DriverPlan, DriverSkip]:
    """Choose driver packages for the detected kernel, or say why not to."""

    if config.only_config:
        return DriverSkip(SkipReason.CONFIG_ONLY)
    if config.skip_nvidia:
        return DriverSkip(SkipReason.DISABLED)
    if profile is None or not profile.gpu_vendor_detected:
        return DriverSkip(SkipReason.NO_HARDWARE)

    primary = PRIMARY_BY_FLAVOR.get(profile.kernel_flavor, DRIVER_PACKAGE)
    aux = [UTILS_PACKAGE, SETTINGS_PACKAGE]
    fallback = [DKMS_PACKAGE, UTILS_PACKAGE, SETTINGS_PACKAGE]
    if profile.multilib_enabled:
        aux.append(LIB32_PACKAGE)
        fallback.append(LIB32_PACKAGE)

    logger.info("NVIDIA plan: kernel=%s driver=%s", profile.kernel_flavor.value, primary)
    return DriverPlan(
        primary_package=primary,
        auxiliary_packages=tuple(aux),
        fallback_packages=tuple(fallback),
    )


@dataclass
class DriverOutcome:
    skip: Optional[DriverSkip] = None
    plan: Optional[DriverPlan] = None
    results: List[InstallResult] = field(default_factory=list)
    installed: bool = False
    verified: bool = False
    warnings: List[str] = field(default_factory=list)
    conditions: List[Condition] = field(default_factory=list)
    diagnostics: Dict[str, Any] = field(default_factory=dict)


class NvidiaConfigurator:
    def __init__(
        self,
        inspector: SystemInspector,
        writer: ConfigWriter,
        *,
        runner: Runner = run_cmd,
        dry_run: bool = False,
    ) -> None:
        self.inspector = inspector
        self.writer = writer
        self._run = runner
        self.dry_run = dry_run

    def install(self, plan: DriverPlan, installer: BatchInstaller, outcome: DriverOutcome) -> bool:
        group = PackageGroup(name="nvidia", members=plan.packages, stage="drivers")
        result = installer.install_group("Installing NVIDIA drivers", plan.packages, group=group)
        outcome.results.append(result)
        if result.ok:
            return True

        if not plan.fallback_packages or tuple(plan.fallback_packages) == plan.packages:
            outcome.warnings.append("NVIDIA driver installation failed")
            return False

        logger.warning("Retrying NVIDIA install with %s", DKMS_PACKAGE)
        fb_group = PackageGroup(name="nvidia-fallback", members=plan.fallback_packages, stage="drivers")
        fb = installer.install_group(
            "Installing NVIDIA drivers (DKMS fallback)",
            plan.fallback_packages,
            group=fb_group,
            base_only=True,
        )
        outcome.results.append(fb)
        if not fb.ok:
            outcome.warnings.append("NVIDIA driver installation failed; install it manually later")
            return False
        return True

    def configure(self) -> List[str]:
        """Apply system configuration. Returns warnings; never raises on tool failure."""

        warnings: List[str] = []
        failed_before = len(self.writer.failed)
        self.writer.ensure_lines(MODPROBE_CONF, MODPROBE_LINES)

        if self.inspector.command_exists("mkinitcpio") and self.writer.exists(MKINITCPIO_CONF):
            doc = self.writer.load(MKINITCPIO_CONF)
            doc.ensure_tokens("MODULES", add=KERNEL_MODULES, remove=(CONFLICTING_MODULE,))
            if self.writer.commit(MKINITCPIO_CONF, doc):
                r = self._run(["sudo", "mkinitcpio", "-P"], check=False, dry_run=self.dry_run, stream=True)
                if r.returncode != 0:
                    warnings.append(f"mkinitcpio -P exited {r.returncode}; initramfs may be stale")

        self.writer.write_if_absent(XORG_CONF, XORG_OUTPUT_CLASS)

        if any(self.writer.exists(p) for p in DISPLAY_MANAGER_CONFS):
            self.writer.ensure_lines(ENVIRONMENT_FILE, ENVIRONMENT_LINES)
        else:
            logger.info("No gdm/lightdm config found; leaving %s alone", ENVIRONMENT_FILE)

        for rel in self.writer.failed[failed_before:]:
            warnings.append(f"Could not write {rel}; apply the NVIDIA settings there by hand")

        for w in warnings:
            logger.warning(w)
        return warnings

    def load_modules(self) -> bool:
        if "nvidia" in self.inspector.loaded_modules():
            logger.info("NVIDIA kernel modules loaded")
            return True
        r = self._run(["sudo", "modprobe", "-a", *KERNEL_MODULES], check=False, dry_run=self.dry_run)
        if r.returncode != 0:
            logger.warning("Could not load NVIDIA modules now; they load after reboot")
            return False
        return True

    def verify(self) -> bool:
        if not self.inspector.command_exists(SMI):
            logger.warning("%s not available", SMI)
            return False
        ok = self.inspector.probe([SMI, "--query-gpu=name,driver_version,memory.total", "--format=csv,noheader"])
        if ok:
            logger.info("NVIDIA driver is active")
        else:
            logger.warning("NVIDIA driver installed but not active; restart required")
        return ok

    def diagnose(self) -> Dict[str, Any]:
        pci = [f"{d.slot} {d.description}" for d in self.inspector.pci_devices() if is_nvidia_device(d)]
        modules = sorted(m for m in self.inspector.loaded_modules() if "nvidia" in m)
        packages = [p.name for p in self.inspector.installed_packages() if "nvidia" in p.name]
        configs = [p for p in (MODPROBE_CONF, XORG_CONF) if self.writer.exists(p)]
        report = {"pci": pci, "modules": modules, "packages": packages, "config_files": configs}
        logger.debug("NVIDIA diagnostics: %s", report)
        return report

    def run(
        self,
        profile: Optional[HardwareProfile],
        config: InstallerConfig,
        installer: BatchInstaller,
    ) -> DriverOutcome:
        planned = plan_driver_install(profile, config)
        if isinstance(planned, DriverSkip):
            logger.info("Skipping NVIDIA drivers (%s)", planned.reason.value)
            outcome = DriverOutcome(skip=planned)
            if planned.reason is SkipReason.NO_HARDWARE:
                outcome.conditions.append(Condition.HARDWARE_NOT_DETECTED)
            return outcome

        outcome = DriverOutcome(plan=planned)
        outcome.installed = self.install(planned, installer, outcome)
        if not outcome.installed:
            return outcome

        outcome.warnings.extend(self.configure())
        self.load_modules()
        outcome.verified = self.verify()
        if not outcome.verified:
            outcome.conditions.append(Condition.VERIFICATION_INCOMPLETE)
            outcome.warnings.append("NVIDIA driver not verified active; restart the system")
            outcome.diagnostics = self.diagnose()
        return outcome
