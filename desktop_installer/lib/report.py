from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models import HardwareProfile, InstallResult

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Everything a run did, in the order it happened."""

    results: List[InstallResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    ran_steps: List[str] = field(default_factory=list)
    hardware: Optional[HardwareProfile] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def add(self, result: InstallResult) -> None:
        self.results.append(result)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed

    @property
    def total_duration(self) -> int:
        return sum(r.duration_seconds for r in self.results)

    def render(self) -> List[str]:
        lines = []
        for r in self.results:
            status = "OK" if r.ok else "FAIL"
            if r.partial:
                status = "PARTIAL"
            if r.condition is not None and not r.ok:
                status = f"{status} ({r.condition.value})"
            lines.append(
                f"{status:<8} {r.group.name}: members={len(r.group.members)} "
                f"already={r.already_installed} "
                f"installed={r.succeeded}/{len(r.attempted)} "
                f"exit={r.exit_code} time={r.duration_seconds}s path={r.path.value}"
            )
        lines.append(f"Groups: {self.passed} passed, {self.failed} failed ({self.total_duration}s installing)")
        for w in self.warnings:
            lines.append(f"WARNING {w}")
        return lines

    def log_summary(self) -> None:
        for line in self.render():
            logger.info(line)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "passed": self.passed,
                "failed": self.failed,
                "duration_seconds": self.total_duration,
            },
            "warnings": list(self.warnings),
            "steps": {"ran": list(self.ran_steps), "skipped": list(self.skipped_steps)},
            "hardware": self.hardware.to_dict() if self.hardware else None,
            **self.extra,
        }
