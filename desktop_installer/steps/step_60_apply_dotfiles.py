from __future__ import annotations

import logging
from pathlib import Path

from ..lib.assets import backup_aside, copy_tree, make_executable
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class ApplyDotfilesStep:
    step_id = "60_apply_dotfiles"

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.config
        source_root = Path(cfg.source_dir or Path.cwd())

        copied = []
        for entry in ctx.manifest.dotfiles:
            src = source_root / entry.source
            dst = cfg.expand_home(entry.target)
            if not src.exists():
                ctx.report.warn(f"Dotfile source {src} not found, skipping")
                continue

            backup_aside(dst, dry_run=cfg.dry_run)
            copy_tree(str(src), str(dst), dry_run=cfg.dry_run)
            if entry.executable:
                make_executable(dst, entry.executable, dry_run=cfg.dry_run)
            copied.append(str(dst))

        ctx.report.extra["dotfiles"] = copied
        logger.info("Dotfiles applied: %d", len(copied))
