from __future__ import annotations

from pathlib import Path
import os
import time

LOCK_PATH = Path("data/run.lock")


class RunLock:
    """Refuses to start a second pipeline run while one holds the lock file."""

    def __init__(self, timeout_seconds: int = 60 * 60, path: Path = LOCK_PATH):
        self.timeout_seconds = timeout_seconds
        self.path = path

    def __enter__(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)

        if self.path.exists():
            age = time.time() - self.path.stat().st_mtime
            if age < self.timeout_seconds:
                raise RuntimeError(f"Another run is already in progress (lock exists: {self.path}).")
            # stale lock
            self.path.unlink(missing_ok=True)

        self.path.write_text(str(os.getpid()), encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.path.unlink(missing_ok=True)
