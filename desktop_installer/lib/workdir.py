from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


@contextmanager
def scoped_workdir(prefix: str = "desktop_installer_", base: Optional[str] = None) -> Iterator[Path]:
    """Temporary directory removed on every exit path, including exceptions
    and SystemExit raised from a signal handler."""

    path = Path(tempfile.mkdtemp(prefix=prefix, dir=base))
    logger.debug("Created work dir %s", path)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("Removed work dir %s", path)
