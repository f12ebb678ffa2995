from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Set

from ..models import Condition
from .command import Runner, run_cmd

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"


def _array_assignment(key: str) -> "re.Pattern[str]":
    return re.compile(r"^(?P<indent>\s*)" + re.escape(key) + r"=\((?P<body>[^)]*)\)(?P<tail>.*)$")


class LineSetFile:
    """A config file seen as an ordered set of lines.

    Edits are expressed as ensure-present / ensure-absent so applying the
    same edit again is a no-op.
    """

    def __init__(self, lines: Optional[Iterable[str]] = None) -> None:
        self.lines: List[str] = list(lines or [])

    @classmethod
    def from_text(cls, text: str) -> "LineSetFile":
        return cls(text.splitlines())

    def text(self) -> str:
        if not self.lines:
            return ""
        return "\n".join(self.lines) + "\n"

    def contains(self, line: str) -> bool:
        want = line.strip()
        return any(ln.strip() == want for ln in self.lines)

    def ensure_present(self, line: str) -> bool:
        if self.contains(line):
            return False
        self.lines.append(line)
        return True

    def ensure_absent(self, line: str) -> bool:
        want = line.strip()
        kept = [ln for ln in self.lines if ln.strip() != want]
        changed = len(kept) != len(self.lines)
        self.lines = kept
        return changed

    def tokens(self, key: str) -> Optional[List[str]]:
        pattern = _array_assignment(key)
        for ln in self.lines:
            m = pattern.match(ln)
            if m:
                return m.group("body").split()
        return None

    def ensure_tokens(
        self,
        key: str,
        *,
        add: Iterable[str] = (),
        remove: Iterable[str] = (),
    ) -> bool:
        """Normalize a shell array assignment such as MODULES=(a b).

        Drops every token in `remove`, then appends each token of `add` that
        is not already there. Works regardless of the previous spacing; the
        line is only rewritten when the token list actually changes.
        """

        add = list(add)
        drop: Set[str] = set(remove)
        pattern = _array_assignment(key)

        for i, ln in enumerate(self.lines):
            m = pattern.match(ln)
            if not m:
                continue
            current = m.group("body").split()
            wanted = [t for t in current if t not in drop]
            for t in add:
                if t not in wanted:
                    wanted.append(t)
            if wanted == current:
                return False
            self.lines[i] = f"{m.group('indent')}{key}=({' '.join(wanted)}){m.group('tail')}"
            return True

        self.lines.append(f"{key}=({' '.join(add)})")
        return True


class ConfigWriter:
    """Reads and writes system config files below `root`.

    Every file is backed up to <path>.backup before its first modification;
    an existing backup is left untouched. Writes fall back to sudo when the
    current user cannot write the target. A write that fails is recorded in
    `failed` and reported as False; it never raises.
    """

    def __init__(self, root: str = "/", *, runner: Runner = run_cmd, dry_run: bool = False) -> None:
        self.root = root
        self._run = runner
        self.dry_run = dry_run
        self.changed: List[str] = []
        self.unchanged: List[str] = []
        self.failed: List[str] = []
        self.backups: List[str] = []

    def path(self, rel: str) -> Path:
        return Path(self.root) / rel.lstrip("/")

    def exists(self, rel: str) -> bool:
        return self.path(rel).exists()

    def load(self, rel: str) -> LineSetFile:
        p = self.path(rel)
        try:
            return LineSetFile.from_text(p.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return LineSetFile()

    def _writable(self, p: Path) -> bool:
        target = p if p.exists() else p.parent
        while not target.exists():
            target = target.parent
        return os.access(target, os.W_OK)

    def _sudo(self, argv: List[str], input_text: Optional[str] = None) -> None:
        r = self._run(["sudo", *argv], check=False, input_text=input_text)
        if r.returncode != 0:
            raise OSError(f"sudo {argv[0]} exited {r.returncode}: {r.stderr.strip()}")

    def backup_once(self, rel: str) -> Optional[Path]:
        """Copy the file to <path>.backup unless a backup exists.

        Raises OSError when the copy fails.
        """

        p = self.path(rel)
        if not p.exists():
            return None
        backup = p.with_name(p.name + BACKUP_SUFFIX)
        if backup.exists():
            logger.debug("Backup already present: %s", backup)
            return None
        if self.dry_run:
            logger.info("Would back up %s -> %s", p, backup)
            return backup
        if self._writable(backup):
            shutil.copy2(p, backup)
        else:
            self._sudo(["cp", "-p", str(p), str(backup)])
        self.backups.append(str(backup))
        logger.info("Backed up %s -> %s", p, backup)
        return backup

    def _write(self, p: Path, contents: str) -> None:
        if self.dry_run:
            logger.info("Would write %s", p)
            return
        if self._writable(p):
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(contents, encoding="utf-8")
        else:
            self._sudo(["mkdir", "-p", str(p.parent)])
            # tee echoes its input; run_cmd captures it.
            self._sudo(["tee", str(p)], input_text=contents)
        logger.info("Wrote %s", p)

    def _record_failure(self, rel: str, err: OSError) -> bool:
        logger.warning("Could not update %s: %s", self.path(rel), err)
        self.failed.append(rel)
        return False

    def commit(self, rel: str, doc: LineSetFile) -> bool:
        """Persist `doc` if it differs from what is on disk.

        Returns True when the file changed; False when it was already
        correct or the write failed (see `failed`).
        """

        p = self.path(rel)
        current = p.read_text(encoding="utf-8") if p.exists() else None
        contents = doc.text()
        if current is not None and LineSetFile.from_text(current).lines == doc.lines:
            logger.info("%s already configured (%s)", p, Condition.CONFIG_WRITE_CONFLICT.value)
            self.unchanged.append(rel)
            return False
        if current is None and not doc.lines:
            self.unchanged.append(rel)
            return False

        try:
            self.backup_once(rel)
            self._write(p, contents)
        except OSError as e:
            return self._record_failure(rel, e)
        self.changed.append(rel)
        return True

    def ensure_lines(self, rel: str, lines: Iterable[str]) -> bool:
        doc = self.load(rel)
        for ln in lines:
            doc.ensure_present(ln)
        return self.commit(rel, doc)

    def write_if_absent(self, rel: str, contents: str) -> bool:
        p = self.path(rel)
        if p.exists():
            logger.info("%s exists; leaving it alone", p)
            self.unchanged.append(rel)
            return False
        try:
            self._write(p, contents)
        except OSError as e:
            return self._record_failure(rel, e)
        self.changed.append(rel)
        return True
