from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence

from .config import InstallerConfig
from .lib.batch import BatchInstaller
from .lib.command import Runner, run_cmd
from .lib.configfile import ConfigWriter
from .lib.inspector import SystemInspector
from .lib.manifests import Manifest
from .lib.oracle import PackageOracle
from .lib.pkg import PackageBackend
from .lib.report import RunReport
from .models import HardwareProfile

logger = logging.getLogger(__name__)


def ask_yes_no(question: str) -> bool:
    reply = input(f"{question} (y/n) ").strip().lower()
    return reply.startswith("y")


@dataclass
class RunContext:
    """Collaborators and accumulated results shared by all steps of one run."""

    config: InstallerConfig
    manifest: Manifest
    inspector: SystemInspector
    backend: PackageBackend
    installer: BatchInstaller
    writer: ConfigWriter
    runner: Runner = run_cmd
    confirm: Callable[[str], bool] = ask_yes_no
    report: RunReport = field(default_factory=RunReport)
    hardware: Optional[HardwareProfile] = None

    @classmethod
    def build(
        cls,
        config: InstallerConfig,
        manifest: Manifest,
        inspector: SystemInspector,
        *,
        runner: Runner = run_cmd,
        confirm: Callable[[str], bool] = ask_yes_no,
        clock: Optional[Callable[[], float]] = None,
    ) -> "RunContext":
        backend = PackageBackend(inspector, runner=runner, dry_run=config.dry_run)
        oracle = PackageOracle(inspector)
        installer = BatchInstaller(oracle, backend, clock=clock) if clock else BatchInstaller(oracle, backend)
        writer = ConfigWriter(config.root, runner=runner, dry_run=config.dry_run)
        return cls(
            config=config,
            manifest=manifest,
            inspector=inspector,
            backend=backend,
            installer=installer,
            writer=writer,
            runner=runner,
            confirm=confirm,
        )

    def ask(self, question: str) -> bool:
        if self.config.assume_yes:
            return True
        return self.confirm(question)


class Step(Protocol):
    """A single step of the provisioning run."""

    step_id: str

    def run(self, ctx: RunContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    report: RunReport
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(
    *,
    ctx: RunContext,
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps strictly in order. Each step blocks until done."""

    ran: List[str] = []
    skipped: List[str] = []

    ids = [s.step_id for s in steps]
    for wanted in (start_at, stop_after):
        if wanted is not None and wanted not in ids:
            raise ValueError(f"Unknown step {wanted!r}; expected one of {', '.join(ids)}")

    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                skipped.append(step.step_id)
                continue

        logger.info("Running step %s", step.step_id)
        step.run(ctx)
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    ctx.report.ran_steps.extend(ran)
    ctx.report.skipped_steps.extend(skipped)
    return PipelineResult(report=ctx.report, ran_steps=ran, skipped_steps=skipped)
