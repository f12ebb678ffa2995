from __future__ import annotations

import logging

from ..lib.nvidia import NvidiaConfigurator
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class InstallNvidiaStep:
    step_id = "40_install_nvidia"

    def run(self, ctx: RunContext) -> None:
        configurator = NvidiaConfigurator(
            ctx.inspector,
            ctx.writer,
            runner=ctx.runner,
            dry_run=ctx.config.dry_run,
        )
        outcome = configurator.run(ctx.hardware, ctx.config, ctx.installer)

        for result in outcome.results:
            ctx.report.add(result)
        for w in outcome.warnings:
            ctx.report.warn(w)

        nvidia = {
            "skipped": outcome.skip.reason.value if outcome.skip else None,
            "driver": outcome.plan.primary_package if outcome.plan else None,
            "verified": outcome.verified,
            "conditions": [c.value for c in outcome.conditions],
            "files_changed": list(ctx.writer.changed),
            "files_unchanged": list(ctx.writer.unchanged),
            "files_failed": list(ctx.writer.failed),
            "backups": list(ctx.writer.backups),
        }
        if outcome.diagnostics:
            nvidia["diagnostics"] = outcome.diagnostics
        ctx.report.extra["nvidia"] = nvidia
