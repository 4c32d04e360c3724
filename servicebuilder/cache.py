"""
Definition Cache

Pluggable cache integration for resolved definition tables.

The factory treats a cache adapter as opaque byte storage. A resolved
``DefinitionTable`` is serialized to bytes, stored under a key derived from
the source identity and TTL, and loaded back on later builds without
reading or resolving the source again.

Cache failures never break a build: a failing ``fetch`` (or an unreadable
blob) counts as a miss and a failing ``store`` is ignored.

Example::

    cache = MemoryCacheAdapter()
    builder1 = ServiceBuilder.factory("services.xml", cache=cache, ttl=86400)  # miss
    builder2 = ServiceBuilder.factory("services.xml", cache=cache, ttl=86400)  # hit
"""

import hashlib
import json
import logging
import pickle
import time
from threading import RLock
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Tuple

from .definition import DefinitionTable, ResolvedDefinition

logger = logging.getLogger(__name__)

DEFAULT_TTL = 86400
CACHE_KEY_PREFIX = "servicebuilder_"


class CacheAdapter(Protocol):
    """Byte storage used to memoize resolved definition tables.

    Implementations own expiry. Both methods may raise; the factory
    treats any failure as a cache miss.
    """

    def fetch(self, key: str) -> Optional[bytes]: ...

    def store(self, key: str, data: bytes, ttl: int) -> None: ...


class Serializer(Protocol):
    """Serialize/deserialize plain table data for a cache adapter.

    Implementations should be symmetric: `dump` -> bytes, `load` <- bytes.
    """

    def dump(self, value: Any) -> bytes: ...

    def load(self, data: bytes) -> Any: ...


class JSONSerializer:
    """Default serializer using JSON (text)."""

    def dump(self, value: Any) -> bytes:
        return json.dumps(value, sort_keys=False).encode("utf-8")

    def load(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class PickleSerializer:
    """Serializer using pickle (binary).

    Keeps param values JSON cannot represent. Only use it with a cache
    you trust.
    """

    def dump(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    def load(self, data: bytes) -> Any:
        return pickle.loads(data)


class MemoryCacheAdapter:
    """In-process cache adapter with per-entry expiry.

    A ``ttl`` of zero or less stores the entry without expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._lock = RLock()
        self._store: Dict[str, Tuple[bytes, Optional[float]]] = {}
        self._clock = clock

    def fetch(self, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            data, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._store[key]
                return None
            return data

    def store(self, key: str, data: bytes, ttl: int) -> None:
        expires_at = self._clock() + ttl if ttl > 0 else None
        with self._lock:
            self._store[key] = (data, expires_at)

    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._store.keys())

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


def cache_key(source_key: str, ttl: int) -> str:
    """Derive the cache key for a source identity and TTL."""
    digest = hashlib.sha256(f"{source_key}:{ttl}".encode("utf-8")).hexdigest()
    return CACHE_KEY_PREFIX + digest


def dump_table(table: DefinitionTable, serializer: Optional[Serializer] = None) -> bytes:
    """Serialize a definition table, keeping declaration order."""
    serializer = serializer or JSONSerializer()
    # A list of pairs keeps the order for serializers that do not
    return serializer.dump([[name, definition.to_dict()] for name, definition in table.items()])


def load_table(data: bytes, serializer: Optional[Serializer] = None) -> DefinitionTable:
    """Deserialize a table written by ``dump_table``."""
    serializer = serializer or JSONSerializer()
    return {
        name: ResolvedDefinition.from_dict(name, entry)
        for name, entry in serializer.load(data)
    }


def load_or_build(
    source_key: str,
    ttl: int,
    adapter: Optional[CacheAdapter],
    build: Callable[[], DefinitionTable],
    serializer: Optional[Serializer] = None,
) -> DefinitionTable:
    """Return the cached table for ``source_key`` or build and cache it.

    Args:
        source_key: Stable identity of the definition source
        ttl: Time-to-live handed to the adapter, also part of the key
        adapter: Cache adapter, or None to always build
        build: Callable producing the resolved table on a miss
        serializer: Serializer for the stored blob (JSON by default)

    Returns:
        The resolved definition table

    Raises:
        SourceReadError: Propagated from ``build``
        DefinitionResolutionError: Propagated from ``build``
    """
    if adapter is None:
        return build()

    key = cache_key(source_key, ttl)

    try:
        data = adapter.fetch(key)
    except Exception as e:
        logger.warning("Cache fetch failed for %s, building definitions: %s", source_key, e)
        data = None

    if data is not None:
        try:
            table = load_table(data, serializer)
        except Exception as e:
            logger.warning("Discarding unreadable cache entry for %s: %s", source_key, e)
        else:
            logger.debug("Loaded %d definitions for %s from cache", len(table), source_key)
            return table

    table = build()

    try:
        adapter.store(key, dump_table(table, serializer), ttl)
    except Exception as e:
        logger.warning("Cache store failed for %s: %s", source_key, e)
    else:
        logger.debug("Cached %d definitions for %s", len(table), source_key)

    return table
