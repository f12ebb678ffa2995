from __future__ import annotations

import logging

from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class SummaryStep:
    step_id = "90_summary"

    def run(self, ctx: RunContext) -> None:
        ctx.report.log_summary()
        if (ctx.report.extra.get("nvidia") or {}).get("driver"):
            logger.info("Restart the system for the NVIDIA driver changes to take full effect")
