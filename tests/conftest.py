"""Pytest fixtures: a fake host, a recording command runner and a fake clock."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set

import pytest

from desktop_installer.config import InstallerConfig
from desktop_installer.lib.command import CmdResult
from desktop_installer.lib.inspector import InstalledPackage, PciDevice
from desktop_installer.lib.manifests import Manifest
from desktop_installer.models import PackageGroup
from desktop_installer.pipeline import RunContext

NVIDIA_GPU = PciDevice(
    slot="01:00.0",
    description="VGA compatible controller [0300]: NVIDIA Corporation GA104 [GeForce RTX 3070]",
    vendor_id="10de",
    device_id="2484",
)


@dataclass
class FakeInspector:
    installed: Set[str] = field(default_factory=set)
    commands: Set[str] = field(default_factory=lambda: {"pacman"})
    pci: List[PciDevice] = field(default_factory=list)
    modules: Set[str] = field(default_factory=set)
    release: str = "6.9.7-arch1-1"
    files: Dict[str, str] = field(default_factory=dict)
    probes: Dict[str, bool] = field(default_factory=dict)
    versions: Dict[str, str] = field(default_factory=dict)
    queries: List[str] = field(default_factory=list)

    def package_installed(self, package: str) -> bool:
        self.queries.append(package)
        return package in self.installed

    def installed_packages(self) -> List[InstalledPackage]:
        return [InstalledPackage(name=n, version=self.versions.get(n, "1.0-1")) for n in sorted(self.installed)]

    def explicit_packages(self) -> List[str]:
        return sorted(self.installed)

    def pci_devices(self) -> List[PciDevice]:
        return list(self.pci)

    def loaded_modules(self) -> Set[str]:
        return set(self.modules)

    def kernel_release(self) -> str:
        return self.release

    def command_exists(self, name: str) -> bool:
        return name in self.commands

    def read_text(self, path: str) -> Optional[str]:
        return self.files.get(path)

    def probe(self, argv: Sequence[str]) -> bool:
        return self.probes.get(argv[0], False)


class FakeRunner:
    """Records every command. Install commands mark packages installed on
    the FakeInspector unless they are listed as broken.
    """

    def __init__(self, inspector: FakeInspector) -> None:
        self.inspector = inspector
        self.calls: List[List[str]] = []
        self.broken: Set[str] = set()
        self.failing_tools: Set[str] = set()
        self.exit_codes: Dict[str, int] = {}
        self.on_call: Optional[Callable[[List[str]], None]] = None

    def __call__(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        cwd: Optional[str] = None,
        input_text: Optional[str] = None,
        dry_run: bool = False,
        stream: bool = False,
    ) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        if self.on_call:
            self.on_call(argv)
        if dry_run:
            return CmdResult(argv=argv, returncode=0, stdout="", stderr="")

        tool = argv[1] if argv[0] == "sudo" else argv[0]
        if tool in self.failing_tools:
            return CmdResult(argv=argv, returncode=1, stdout="", stderr="failed")

        if tool in {"pacman", "yay"} and "-S" in argv:
            pkgs = [a for a in argv[argv.index("-S") + 1:] if not a.startswith("--")]
            rc = 0
            for p in pkgs:
                if p in self.broken:
                    rc = 1
                else:
                    self.inspector.installed.add(p)
            return CmdResult(argv=argv, returncode=rc, stdout="", stderr="")

        rc = self.exit_codes.get(tool, 0)
        return CmdResult(argv=argv, returncode=rc, stdout="", stderr="")

    def installs(self) -> List[List[str]]:
        return [c for c in self.calls if "-S" in c]


class FakeClock:
    def __init__(self, step: float = 3.0) -> None:
        self.now = 100.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def inspector() -> FakeInspector:
    return FakeInspector()


@pytest.fixture
def runner(inspector: FakeInspector) -> FakeRunner:
    return FakeRunner(inspector)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def root(tmp_path: Path) -> Path:
    r = tmp_path / "root"
    (r / "etc").mkdir(parents=True)
    return r


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def small_manifest() -> Manifest:
    return Manifest(
        groups=(
            PackageGroup(name="core", members=("i3-wm", "xorg-xinit"), stage="core"),
            PackageGroup(name="ui", members=("rofi", "dunst"), stage="desktop"),
        ),
        services=("lightdm",),
        dotfiles=(),
    )


@pytest.fixture
def make_ctx(inspector, runner, clock, root, home, small_manifest):
    def _make(manifest: Optional[Manifest] = None, **cfg) -> RunContext:
        cfg.setdefault("root", str(root))
        cfg.setdefault("home", str(home))
        cfg.setdefault("assume_yes", True)
        config = InstallerConfig(**cfg)
        return RunContext.build(
            config,
            manifest or small_manifest,
            inspector,
            runner=runner,
            confirm=lambda q: False,
            clock=clock,
        )

    return _make
