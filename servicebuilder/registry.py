"""
InstanceRegistry

Holds at most one memoized instance per service name.

Construction for a name is serialized by a per-name lock: when several
threads ask for the same unbuilt name, exactly one runs the constructor and
every caller receives that instance. Different names never wait on each
other, and a failed construction leaves no entry behind.
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Set


class InstanceRegistry:
    """Per-name memoizer for service instances.

    Attributes:
        _instances: Service name -> memoized instance
        _name_locks: Service name -> [lock, users] for names some thread
            currently holds or waits on; an entry is dropped when its last
            user leaves
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._instances: Dict[str, Any] = {}
        self._name_locks: Dict[str, List[Any]] = {}

    @contextmanager
    def _locked(self, name: str) -> Iterator[None]:
        with self._lock:
            entry = self._name_locks.setdefault(name, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._name_locks[name]

    def get_or_create(self, name: str, create: Callable[[], Any]) -> Any:
        """Return the instance for ``name``, creating it once if needed.

        ``create`` runs while the name's lock is held and only when no
        instance exists. Exceptions from ``create`` propagate and nothing
        is stored.
        """
        with self._lock:
            if name in self._instances:
                return self._instances[name]

        with self._locked(name):
            # Another thread may have finished while we waited
            with self._lock:
                if name in self._instances:
                    return self._instances[name]

            instance = create()

            with self._lock:
                self._instances[name] = instance
            return instance

    def put(self, name: str, instance: Any) -> None:
        """Store ``instance`` as the entry for ``name``, replacing any other."""
        with self._locked(name):
            with self._lock:
                self._instances[name] = instance

    def discard(self, name: str) -> None:
        """Drop the entry for ``name``, waiting for an in-flight construction."""
        with self._locked(name):
            with self._lock:
                self._instances.pop(name, None)

    def contains(self, name: str) -> bool:
        with self._lock:
            return name in self._instances

    def names(self) -> Set[str]:
        with self._lock:
            return set(self._instances)

    def pending(self) -> Set[str]:
        """Names some thread is currently constructing, replacing or waiting on."""
        with self._lock:
            return set(self._name_locks)
