"""Advisory file locking for the configuration document.

A lock file next to the document serializes load -> mutate -> save cycles
across processes. Acquisition polls a non-blocking `flock` and is retried
with tenacity until the timeout expires.
"""
import fcntl
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, TextIO

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_delay,
    wait_fixed,
)

from .errors import LockTimeout

logger = logging.getLogger(__name__)


class FileLock:
    """Reentrant advisory lock on a lock file.

    Usage:
        lock = FileLock(Path("/etc/confdb/config.yaml.lock"), timeout=10)
        with lock.hold():
            ...  # exclusive
        with lock.hold(exclusive=False):
            ...  # shared
    """

    def __init__(self, path: Path, timeout: float = 10.0, poll_interval: float = 0.05):
        """
        Args:
            path: Lock file path (created on demand, never removed)
            timeout: Seconds to wait for the lock before giving up
            poll_interval: Seconds between acquisition attempts
        """
        self.path = Path(path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._fh: Optional[TextIO] = None
        self._depth = 0
        self._exclusive = False

    @property
    def is_held(self) -> bool:
        return self._fh is not None

    @property
    def is_exclusive(self) -> bool:
        return self.is_held and self._exclusive

    def acquire(self, exclusive: bool = True) -> None:
        """Acquire the lock, waiting up to `timeout` seconds.

        Raises:
            LockTimeout: If another process holds the lock for too long
        """
        if self._fh is not None:
            if exclusive and not self._exclusive:
                raise RuntimeError(f"Cannot upgrade shared lock on {self.path}")
            self._depth += 1
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fh = open(self.path, "a")
        mode = (fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH) | fcntl.LOCK_NB

        try:
            for attempt in Retrying(
                stop=stop_after_delay(self.timeout),
                wait=wait_fixed(self.poll_interval),
                retry=retry_if_exception_type(BlockingIOError),
                before_sleep=before_sleep_log(logger, logging.DEBUG),
                reraise=True,
            ):
                with attempt:
                    fcntl.flock(fh.fileno(), mode)
        except BlockingIOError:
            fh.close()
            raise LockTimeout(
                f"Timed out after {self.timeout}s waiting for lock {self.path}"
            ) from None
        except OSError:
            fh.close()
            raise

        self._fh = fh
        self._depth = 1
        self._exclusive = exclusive
        logger.debug(f"Acquired {'exclusive' if exclusive else 'shared'} lock: {self.path}")

    def release(self) -> None:
        """Release one level of the lock."""
        if self._fh is None:
            return

        self._depth -= 1
        if self._depth > 0:
            return

        try:
            fcntl.flock(self._fh.fileno(), fcntl.LOCK_UN)
        finally:
            self._fh.close()
            self._fh = None
            self._exclusive = False
        logger.debug(f"Released lock: {self.path}")

    @contextmanager
    def hold(self, exclusive: bool = True) -> Iterator["FileLock"]:
        """Context manager holding the lock."""
        self.acquire(exclusive)
        try:
            yield self
        finally:
            self.release()

    def __enter__(self) -> "FileLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
