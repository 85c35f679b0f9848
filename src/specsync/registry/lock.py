"""Cross-process exclusion for catalogue rewrites.

A scan and a manual ``registry set-version`` must never interleave their
read-modify-write cycles on the same catalogue. :class:`CatalogueLock` uses
:mod:`diskcache` as a small shared lock table: ``Cache.add`` only succeeds
for the first holder, and every held entry carries an expiry so that a
crashed process cannot wedge the catalogue forever.

Locks are keyed by the resolved catalogue path, so two catalogues never
block each other.
"""

from __future__ import annotations

import os
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

import diskcache

from specsync.exceptions import RegistryLockedError
from specsync.output import get_output


class CatalogueLock:
    """Expiring lock on one catalogue file.

    Args:
        catalogue_path: The catalogue being protected.
        lock_dir: Directory of the shared lock table. A ``locks/``
            subdirectory is created inside it.
        timeout: Seconds to wait for a competing holder before giving up.
        ttl: Seconds after which a held lock expires on its own.
        poll_interval: Delay between acquisition attempts.

    Example::

        with CatalogueLock(Path("registry.json"), get_cache_dir()):
            entries = store.load()
            ...
            store.save(entries)
    """

    def __init__(
        self,
        catalogue_path: Path,
        lock_dir: Path,
        timeout: float = 60.0,
        ttl: int = 900,
        poll_interval: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._key = f"catalogue:{Path(catalogue_path).resolve()}"
        self._lock_dir = Path(lock_dir) / "locks"
        self._timeout = timeout
        self._ttl = ttl
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._token = f"{os.getpid()}:{uuid.uuid4().hex}"
        self._cache: Optional[diskcache.Cache] = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def held(self) -> bool:
        return self._cache is not None

    def acquire(self) -> None:
        """Take the lock, waiting up to ``timeout`` seconds.

        Raises:
            RegistryLockedError: If another holder keeps the lock past the timeout.
        """
        cache = diskcache.Cache(str(self._lock_dir))
        deadline = self._clock() + self._timeout
        while not cache.add(self._key, self._token, expire=self._ttl):
            if self._clock() >= deadline:
                holder = cache.get(self._key)
                cache.close()
                raise RegistryLockedError(
                    f"Catalogue is locked by another process ({holder}); "
                    f"gave up after {self._timeout:g}s"
                )
            self._sleep(self._poll_interval)
        self._cache = cache
        get_output().debug(f"Acquired lock {self._key}")

    def release(self) -> None:
        """Drop the lock if this instance still holds it."""
        if self._cache is None:
            return
        with self._cache.transact():
            if self._cache.get(self._key) == self._token:
                self._cache.delete(self._key)
        self._cache.close()
        self._cache = None
        get_output().debug(f"Released lock {self._key}")

    def __enter__(self) -> CatalogueLock:
        self.acquire()
        return self

    def __exit__(self, *args: object) -> None:
        self.release()
