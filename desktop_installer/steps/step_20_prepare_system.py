from __future__ import annotations

import logging

from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class PrepareSystemStep:
    """Full system upgrade, then make sure the AUR helper is available."""

    step_id = "20_prepare_system"

    def run(self, ctx: RunContext) -> None:
        if not ctx.config.install_packages:
            logger.info("Skipping system update (--only-config mode)")
            return

        logger.info("Updating system...")
        if not ctx.backend.system_upgrade():
            ctx.report.warn("System upgrade failed, continuing")

        if not ctx.backend.bootstrap_helper():
            ctx.report.warn("Continuing without yay; AUR packages will go through pacman")
