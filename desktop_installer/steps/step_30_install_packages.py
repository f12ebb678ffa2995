from __future__ import annotations

import logging

from ..errors import GroupFailed
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class InstallPackagesStep:
    """Install every manifest group of one stage, one batch at a time."""

    def __init__(self, stage: str, step_id: str) -> None:
        self.stage = stage
        self.step_id = step_id

    def run(self, ctx: RunContext) -> None:
        if not ctx.config.install_packages:
            logger.info("Skipping %s packages (--only-config mode)", self.stage)
            return

        for group in ctx.manifest.stage(self.stage):
            if group.prompt and not ctx.ask(group.prompt):
                logger.info("Skipping group %s (declined)", group.name)
                continue

            result = ctx.installer.install_group(group.title, group.members, group=group)
            ctx.report.add(result)

            if result.ok:
                continue
            if group.on_failure == "abort":
                raise GroupFailed(result)
            ctx.report.warn(f"Some {group.name} packages failed, continuing")
