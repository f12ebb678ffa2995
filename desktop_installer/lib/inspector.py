from __future__ import annotations

import logging
import platform
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Set

from .command import Runner, command_exists, run_cmd

logger = logging.getLogger(__name__)

_PCI_LINE = re.compile(r"^(?P<slot>\S+)\s+(?P<desc>.*?)(?:\s+\[(?P<vendor>[0-9a-f]{4}):(?P<device>[0-9a-f]{4})\])?(?:\s+\(rev [0-9a-f]+\))?$")


@dataclass(frozen=True)
class PciDevice:
    slot: str
    description: str
    vendor_id: Optional[str] = None
    device_id: Optional[str] = None


@dataclass(frozen=True)
class InstalledPackage:
    name: str
    version: str


def parse_lspci(text: str) -> List[PciDevice]:
    """Parse `lspci` / `lspci -nn` output into devices.

    With -nn the trailing "[vvvv:dddd]" pair carries vendor/device ids.
    """

    devices: List[PciDevice] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        m = _PCI_LINE.match(line)
        if not m:
            continue
        devices.append(
            PciDevice(
                slot=m.group("slot"),
                description=m.group("desc"),
                vendor_id=m.group("vendor"),
                device_id=m.group("device"),
            )
        )
    return devices


def parse_lsmod(text: str) -> Set[str]:
    modules: Set[str] = set()
    for line in text.splitlines()[1:]:
        parts = line.split()
        if parts:
            modules.add(parts[0])
    return modules


def parse_pacman_q(text: str) -> List[InstalledPackage]:
    pkgs: List[InstalledPackage] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            pkgs.append(InstalledPackage(name=parts[0], version=parts[1]))
        elif len(parts) == 1:
            pkgs.append(InstalledPackage(name=parts[0], version=""))
    return pkgs


class SystemInspector(Protocol):
    """Read-only view of the host used by the engine.

    Everything that scrapes command output lives behind this interface so
    the engine can be driven by a fake in tests.
    """

    def package_installed(self, package: str) -> bool:
        ...

    def installed_packages(self) -> List[InstalledPackage]:
        ...

    def explicit_packages(self) -> List[str]:
        ...

    def pci_devices(self) -> List[PciDevice]:
        ...

    def loaded_modules(self) -> Set[str]:
        ...

    def kernel_release(self) -> str:
        ...

    def command_exists(self, name: str) -> bool:
        ...

    def read_text(self, path: str) -> Optional[str]:
        ...

    def probe(self, argv: Sequence[str]) -> bool:
        ...


class HostInspector:
    """SystemInspector backed by pacman, lspci, lsmod and /proc."""

    def __init__(self, *, root: str = "/", runner: Runner = run_cmd) -> None:
        self.root = root
        self._run = runner

    def package_installed(self, package: str) -> bool:
        r = self._run(["pacman", "-Qi", package], check=False)
        return r.returncode == 0

    def installed_packages(self) -> List[InstalledPackage]:
        r = self._run(["pacman", "-Q"], check=False)
        if r.returncode != 0:
            return []
        return parse_pacman_q(r.stdout)

    def explicit_packages(self) -> List[str]:
        r = self._run(["pacman", "-Qqe"], check=False)
        if r.returncode != 0:
            return []
        return [ln.strip() for ln in r.stdout.splitlines() if ln.strip()]

    def pci_devices(self) -> List[PciDevice]:
        r = self._run(["lspci", "-nn"], check=False)
        if r.returncode != 0:
            logger.info("lspci unavailable (rc=%s); assuming no PCI devices", r.returncode)
            return []
        return parse_lspci(r.stdout)

    def loaded_modules(self) -> Set[str]:
        r = self._run(["lsmod"], check=False)
        if r.returncode != 0:
            return set()
        return parse_lsmod(r.stdout)

    def kernel_release(self) -> str:
        return platform.release()

    def command_exists(self, name: str) -> bool:
        return command_exists(name)

    def read_text(self, path: str) -> Optional[str]:
        p = Path(self.root) / path.lstrip("/")
        try:
            return p.read_text(encoding="utf-8", errors="ignore")
        except OSError:
            return None

    def probe(self, argv: Sequence[str]) -> bool:
        if not self.command_exists(argv[0]):
            return False
        return self._run(list(argv), check=False).returncode == 0
