from __future__ import annotations

import logging

from ..lib.hwdetect import detect_hardware
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class DetectHardwareStep:
    step_id = "10_detect_hardware"

    def run(self, ctx: RunContext) -> None:
        # Computed once; later steps only read it.
        ctx.hardware = detect_hardware(ctx.inspector)
        ctx.report.hardware = ctx.hardware
