#!/usr/bin/env python3
"""
Platform-independent file locking for Stage Gate.

Guards the JSON-backed audit log so that several console commands running
in the same terminal session never interleave their read-modify-write
cycles.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

# Platform-specific locking imports
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

try:
    import msvcrt
    HAS_MSVCRT = True
except ImportError:
    HAS_MSVCRT = False

logger = logging.getLogger(__name__)


class FileLock:
    """Exclusive lock held on a sidecar lock file."""

    def __init__(self, lock_file: Path, timeout: float = 10.0):
        """
        Initialize a file lock.

        Args:
            lock_file: Path to the lock file
            timeout: Maximum time to wait for lock (seconds)
        """
        self.lock_file = Path(lock_file)
        self.timeout = timeout
        self.lock_fd = None

    @property
    def locked(self) -> bool:
        return self.lock_fd is not None

    def _try_lock(self) -> None:
        self.lock_fd = open(self.lock_file, "w")
        if HAS_FCNTL:
            fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        elif HAS_MSVCRT:
            msvcrt.locking(self.lock_fd.fileno(), msvcrt.LK_NBLCK, 1)
        else:
            self.lock_fd.write(str(os.getpid()))
            self.lock_fd.flush()

    def acquire(self) -> bool:
        """
        Acquire the file lock.

        Returns:
            True if lock acquired, False if timeout
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.timeout
        attempt = 0

        while True:
            try:
                self._try_lock()
                return True
            except OSError:
                if self.lock_fd:
                    self.lock_fd.close()
                self.lock_fd = None
                if time.monotonic() >= deadline:
                    return False
                # Exponential backoff, capped
                time.sleep(min(0.05 * (2 ** attempt), 1.0))
                attempt += 1

    def release(self) -> None:
        """Release the file lock."""
        if self.lock_fd is None:
            return
        try:
            if HAS_FCNTL:
                fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_UN)
            elif HAS_MSVCRT:
                msvcrt.locking(self.lock_fd.fileno(), msvcrt.LK_UNLCK, 1)
        except OSError as e:
            logger.debug("Failed to unlock %s: %s", self.lock_file, e)
        finally:
            self.lock_fd.close()
            self.lock_fd = None

    def __enter__(self) -> "FileLock":
        if not self.acquire():
            raise TimeoutError(f"Could not acquire lock on {self.lock_file} within {self.timeout}s")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
