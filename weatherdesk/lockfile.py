"""PID lock file that serializes whole pipeline runs."""

from __future__ import annotations

import errno
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .errors import LockError

logger = logging.getLogger("weatherdesk")

DEFAULT_LOCK_NAME = "weatherdesk.lock"


def _pid_running(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except OSError as exc:
        return exc.errno == errno.EPERM
    return True


def _read_pid(path: Path) -> Optional[int]:
    try:
        return int(path.read_text().strip())
    except (OSError, ValueError):
        return None


class RunLock:
    """Exclusive run lock; usable as a context manager."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else Path(tempfile.gettempdir()) / DEFAULT_LOCK_NAME
        self.pid = os.getpid()
        self._held = False

    def _create(self) -> None:
        fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "w") as handle:
            handle.write(f"{self.pid}\n")

    def acquire(self) -> None:
        try:
            self._create()
        except FileExistsError:
            holder = _read_pid(self.path)
            if holder is not None and holder != self.pid and _pid_running(holder):
                raise LockError(f"another instance is already running (PID: {holder})")
            logger.debug("Removing stale lock file %s", self.path)
            self.path.unlink(missing_ok=True)
            try:
                self._create()
            except FileExistsError as exc:
                raise LockError(f"lock file {self.path} was created concurrently") from exc
        self._held = True

    def release(self) -> None:
        if not self._held:
            return
        if _read_pid(self.path) == self.pid:
            self.path.unlink(missing_ok=True)
        self._held = False

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
