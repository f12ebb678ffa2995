from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_LOG_NAME = "i3-install.log"
DEFAULT_EXPORT_NAME = "package_list_arch.txt"


def _home() -> str:
    return os.path.expanduser("~")


@dataclass(frozen=True)
class InstallerConfig:
    """Run options, built once from the command line and passed down explicitly."""

    only_config: bool = False
    skip_nvidia: bool = False
    dry_run: bool = False
    assume_yes: bool = False
    manifest_path: Optional[str] = None
    source_dir: Optional[str] = None
    home: str = field(default_factory=_home)
    root: str = "/"
    log_path: Optional[str] = None
    report_path: Optional[str] = None
    export_path: Optional[str] = None

    @property
    def install_packages(self) -> bool:
        return not self.only_config

    @property
    def resolved_log_path(self) -> str:
        return self.log_path or str(Path(self.home) / DEFAULT_LOG_NAME)

    @property
    def resolved_export_path(self) -> str:
        return self.export_path or str(Path(self.home) / DEFAULT_EXPORT_NAME)

    def expand_home(self, path: str) -> Path:
        """Expand a leading ~ against the configured home, not the process one."""
        if path == "~" or path.startswith("~/"):
            return Path(self.home) / path[2:]
        return Path(path)
