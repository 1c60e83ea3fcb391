"""Exclusive lock serializing builds that share cache directories."""

import fcntl
import os
import time
from pathlib import Path
from typing import IO

from slugbuilder.core.exceptions.errors import CacheLockTimeoutError
from slugbuilder.core.logger.logger import get_logger

logger = get_logger(__name__)

_RETRY_INTERVAL = 0.5


class CacheLock:
    """File lock at ``<base_dir>/.cache.lock``.

    The source cache clones and buildpack slots are shared and mutable, so a
    build holds this lock from setup until it finishes. Works across processes
    and across sessions within one process.
    """

    def __init__(self, base_dir: Path, timeout: float = 600) -> None:
        """Initialize cache lock.

        Args:
            base_dir: Directory holding the shared caches.
            timeout: Lock acquisition timeout in seconds.
        """
        self.base_dir = Path(base_dir)
        self.timeout = timeout
        self.lock_file_path = self.base_dir / ".cache.lock"
        self._lock_file: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._lock_file is not None

    def acquire(self) -> None:
        """Acquire the lock, waiting up to ``timeout`` seconds.

        Raises:
            CacheLockTimeoutError: If the lock cannot be acquired in time.
        """
        if self._lock_file is not None:
            return

        self.base_dir.mkdir(parents=True, exist_ok=True)
        lock_file = open(self.lock_file_path, "a+")
        start_time = time.monotonic()

        while True:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                elapsed = time.monotonic() - start_time
                if elapsed >= self.timeout:
                    lock_file.close()
                    raise CacheLockTimeoutError(
                        f"Could not acquire cache lock within {self.timeout}s. "
                        "Another build may be using the same cache.",
                        details={"lock_file": str(self.lock_file_path)},
                    )
                logger.debug(f"Cache lock busy, retrying... ({elapsed:.1f}s / {self.timeout}s)")
                time.sleep(_RETRY_INTERVAL)

        lock_file.seek(0)
        lock_file.truncate()
        lock_file.write(f"{os.getpid()}\n")
        lock_file.flush()
        self._lock_file = lock_file
        logger.debug(f"Acquired cache lock {self.lock_file_path}")

    def release(self) -> None:
        """Release the lock if held."""
        if self._lock_file is None:
            return
        try:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_file.close()
            self._lock_file = None
        logger.debug(f"Released cache lock {self.lock_file_path}")

    def __enter__(self) -> "CacheLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        self.release()
