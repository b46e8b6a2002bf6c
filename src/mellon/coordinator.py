"""Cross-process access discipline for the token store.

Mutations run as load-modify-save transactions under an exclusive
``fcntl.flock`` on a sibling ``<store>.lock`` file, so concurrent add and
rescind invocations from separate processes never lose each other's
updates. Readers skip the lock entirely and rely on the store's
rename-on-save to always see a whole file.
"""

from __future__ import annotations

import contextlib
import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Iterator, Mapping

from .token_store import IoFailure, LockTimeout, TokenStore


logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0
POLL_INTERVAL = 0.05


class StoreCoordinator:
    """Serializes writers to a :class:`TokenStore` across processes."""

    def __init__(
        self,
        store: TokenStore,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.store = store
        self.lock_timeout = lock_timeout
        self.poll_interval = poll_interval

    @property
    def lock_path(self) -> Path:
        return self.store.path.with_name(self.store.path.name + ".lock")

    @contextlib.contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the store's exclusive lock, waiting at most ``lock_timeout``."""

        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.lock_path, "a")
        except OSError as exc:
            raise IoFailure(f"Unable to open lock file {self.lock_path}: {exc.strerror or exc}") from exc

        with handle:
            deadline = time.monotonic() + self.lock_timeout
            while True:
                try:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() >= deadline:
                        logger.warning("Timed out after %.2fs waiting for %s", self.lock_timeout, self.lock_path)
                        raise LockTimeout(
                            f"Could not lock the token store within {self.lock_timeout:g}s; "
                            "another mellon process is holding it. Try again."
                        ) from None
                    time.sleep(self.poll_interval)
                except OSError as exc:
                    raise IoFailure(f"Unable to lock {self.lock_path}: {exc.strerror or exc}") from exc

            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[dict[str, str]]:
        """Load the records under the lock, yield them, then save changes.

        If the body raises, nothing is written. If the body leaves the
        records untouched, nothing is written either.
        """

        with self.exclusive():
            records = self.store.load()
            original = dict(records)
            yield records
            if records != original:
                self.store.save(records)

    def exists(self, secret: str) -> bool:
        return self.store.contains(secret)

    def labels(self) -> list[str]:
        return list(self.store.load())


def coordinator_from_config(config: Mapping[str, object]) -> StoreCoordinator:
    """Build a coordinator for the store named in a Flask-style config."""

    path = os.fspath(config["TOKEN_STORE_PATH"])
    timeout = float(config.get("LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT))
    return StoreCoordinator(TokenStore(path), lock_timeout=timeout)
