from __future__ import annotations

import logging

from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class EnableServicesStep:
    step_id = "55_enable_services"

    def run(self, ctx: RunContext) -> None:
        if not ctx.config.install_packages:
            logger.info("Skipping service enablement (--only-config mode)")
            return

        services = list(ctx.manifest.services)
        # systemctl enable only writes symlinks; a failure here is not fatal.
        if not ctx.backend.enable_services(services):
            ctx.report.warn(f"Could not enable services: {' '.join(services)}")
