from __future__ import annotations

import logging
from typing import Dict, Sequence

from ..models import PackageState
from .inspector import SystemInspector

logger = logging.getLogger(__name__)


class PackageOracle:
    """Answers "is package X installed" from the local package database."""

    def __init__(self, inspector: SystemInspector) -> None:
        self._inspector = inspector

    def is_installed(self, package: str) -> bool:
        try:
            return bool(self._inspector.package_installed(package))
        except OSError as e:
            logger.debug("Package query for %s failed: %s", package, e)
            return False

    def snapshot(self, packages: Sequence[str]) -> Dict[str, PackageState]:
        """State of each package at this instant, in input order."""
        return {
            p: PackageState.INSTALLED if self.is_installed(p) else PackageState.MISSING
            for p in packages
        }
