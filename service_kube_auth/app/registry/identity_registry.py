"""
In-memory registry of issued tokens and the service accounts they stand for.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional

from shared.logging import get_logger


@dataclass(frozen=True)
class ServiceAccount:
    """Identity a mock token asserts."""
    uid: str
    name: str
    namespace: str

    @property
    def username(self) -> str:
        """Canonical name the trust system matches roles against."""
        return f"system:serviceaccount:{self.namespace}:{self.name}"


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writers are preferred: once a writer is waiting, new readers queue behind
    it so a steady stream of token reviews cannot starve registrations.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class IdentityRegistry:
    """Thread-safe mapping of token -> ServiceAccount.

    The backing dict never leaves this object; every read and mutation goes
    through the lock. Entries are only inserted or removed, never modified,
    and never expire.
    """

    def __init__(self):
        self._entries: Dict[str, ServiceAccount] = {}
        self._lock = ReadWriteLock()
        self.logger = get_logger("kube_auth.registry")

    def insert(self, token: str, identity: ServiceAccount) -> None:
        """Bind ``token`` to ``identity``, replacing any existing binding."""
        with self._lock.write_locked():
            self._entries[token] = identity

    def lookup(self, token: str) -> Optional[ServiceAccount]:
        """Return the identity bound to ``token``, or None."""
        with self._lock.read_locked():
            return self._entries.get(token)

    def delete_all(self) -> int:
        """Remove every entry. Returns how many were removed."""
        with self._lock.write_locked():
            removed = len(self._entries)
            self._entries = {}
        self.logger.debug("Registry cleared", removed=removed)
        return removed

    def delete_keys(self, keys: Iterable[str]) -> int:
        """Remove the entries whose token is in ``keys``; unknown keys are ignored."""
        removed = 0
        with self._lock.write_locked():
            for key in set(keys):
                if self._entries.pop(key, None) is not None:
                    removed += 1
        self.logger.debug("Registry entries removed", removed=removed)
        return removed

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._entries)

    def __contains__(self, token: object) -> bool:
        with self._lock.read_locked():
            return token in self._entries
