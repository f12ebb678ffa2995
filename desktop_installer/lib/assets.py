from __future__ import annotations

import logging
import shutil
import stat
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)


def backup_aside(target: Path, *, now: Callable[[], float] = time.time, dry_run: bool = False) -> Optional[Path]:
    """Move an existing file or directory to <target>.bak.<epoch>."""

    if not target.exists():
        return None
    backup = target.with_name(f"{target.name}.bak.{int(now())}")
    if dry_run:
        logger.info("Would move %s -> %s", target, backup)
        return backup
    target.rename(backup)
    logger.info("Backed up existing %s -> %s", target, backup)
    return backup


def copy_tree(src: str, dst: str, *, dry_run: bool = False) -> None:
    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(src)

    if dry_run:
        logger.info("Would copy %s -> %s", str(s), str(d))
        return

    if s.is_file():
        d.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(s, d)
        return

    d.mkdir(parents=True, exist_ok=True)
    for item in s.rglob("*"):
        rel = item.relative_to(s)
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, out)


def make_executable(root: Path, subdirs: Iterable[str], *, dry_run: bool = False) -> int:
    count = 0
    for sub in subdirs:
        base = root / sub
        if not base.is_dir():
            continue
        for f in base.rglob("*"):
            if not f.is_file():
                continue
            count += 1
            if not dry_run:
                f.chmod(f.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return count
