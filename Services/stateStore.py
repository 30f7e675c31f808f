"""
Process-wide auxiliary state for the verification workflow.

OTP records, the verified-email set and the submission counters all live
behind a ``StateStore``. Callers only get namespaced, atomic primitives so
that two concurrent requests for the same email can never both pass a check
that should admit one of them.
"""
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager


class StateStore(ABC):
    """Namespaced key/value, set and counter primitives with per-key atomicity."""

    @abstractmethod
    def locked(self, namespace: str, key: str):
        """Context manager holding the critical section for ``(namespace, key)``."""

    @abstractmethod
    def get(self, namespace: str, key: str):
        pass

    @abstractmethod
    def put(self, namespace: str, key: str, value) -> None:
        pass

    @abstractmethod
    def pop(self, namespace: str, key: str):
        """Remove and return the value, or None when absent."""

    @abstractmethod
    def snapshot(self, namespace: str) -> dict:
        pass

    @abstractmethod
    def add_member(self, namespace: str, member: str) -> None:
        pass

    @abstractmethod
    def has_member(self, namespace: str, member: str) -> bool:
        pass

    @abstractmethod
    def discard_member(self, namespace: str, member: str) -> bool:
        """Atomically remove ``member``; True only for the caller that removed it."""

    @abstractmethod
    def increment_below(self, namespace: str, key: str, limit: int):
        """
        Increment the counter only while it is below ``limit``.

        Returns:
            (accepted, count) where count is the value after the call.
        """

    @abstractmethod
    def counter(self, namespace: str, key: str) -> int:
        pass


class InMemoryStateStore(StateStore):
    """Single-process store guarded by one lock per key."""

    def __init__(self):
        self._values = defaultdict(dict)
        self._members = defaultdict(set)
        self._counters = defaultdict(dict)
        self._locks = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, namespace, key):
        # One lock per (namespace, key) ever touched, kept for the process lifetime.
        # Locks are never dropped: a caller may still hold a reference to one.
        with self._registry_lock:
            lock = self._locks.get((namespace, key))
            if lock is None:
                # Re-entrant so a caller holding locked() can still use the primitives
                lock = self._locks[(namespace, key)] = threading.RLock()
            return lock

    @contextmanager
    def locked(self, namespace, key):
        lock = self._lock_for(namespace, key)
        with lock:
            yield

    def get(self, namespace, key):
        with self.locked(namespace, key):
            return self._values[namespace].get(key)

    def put(self, namespace, key, value):
        with self.locked(namespace, key):
            self._values[namespace][key] = value

    def pop(self, namespace, key):
        with self.locked(namespace, key):
            return self._values[namespace].pop(key, None)

    def snapshot(self, namespace):
        with self._registry_lock:
            return dict(self._values[namespace])

    def add_member(self, namespace, member):
        with self.locked(namespace, member):
            self._members[namespace].add(member)

    def has_member(self, namespace, member):
        with self.locked(namespace, member):
            return member in self._members[namespace]

    def discard_member(self, namespace, member):
        with self.locked(namespace, member):
            if member not in self._members[namespace]:
                return False
            self._members[namespace].remove(member)
            return True

    def increment_below(self, namespace, key, limit):
        with self.locked(namespace, key):
            count = self._counters[namespace].get(key, 0)
            if count >= limit:
                return False, count
            count += 1
            self._counters[namespace][key] = count
            return True, count

    def counter(self, namespace, key):
        with self.locked(namespace, key):
            return self._counters[namespace].get(key, 0)
