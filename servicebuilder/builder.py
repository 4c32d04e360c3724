"""
ServiceBuilder

This module provides the service factory façade. A ServiceBuilder owns a
resolved ``DefinitionTable`` and an ``InstanceRegistry`` and lazily
constructs named services from their definitions:

- ``get(name)`` returns the shared instance for a name, constructing it on
  first use
- ``get(name, throwaway=True)`` always constructs a fresh instance and
  leaves the shared one alone
- ``register()``/``unregister()`` replace or remove definitions and
  instances at runtime

Builders are usually created from a configuration file with
``ServiceBuilder.factory()``, optionally memoizing the resolved definitions
in a cache adapter.

Example::

    builder = ServiceBuilder.factory("config/services.xml")

    client = builder.get("billy.mock")
    assert client is builder.get("billy.mock")

    scratch = builder.get("billy.mock", throwaway=True)
    assert scratch is not client
"""

import json
import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Set, Union

from .cache import DEFAULT_TTL, CacheAdapter, Serializer, load_or_build
from .constructors import TypeRegistry
from .definition import DefinitionTable, RawDefinition, ResolvedDefinition
from .exceptions import ServiceConstructionError, UnknownServiceError, UnknownTypeError
from .registry import InstanceRegistry
from .resolver import DefinitionResolver
from .source import DefinitionSource, definitions_from_mapping, read_definitions

logger = logging.getLogger(__name__)

Definitions = Union[DefinitionTable, Iterable[RawDefinition], Mapping[str, Any]]


class ServiceBuilder:
    """Declarative service factory with per-name instance memoization.

    The definition table is never mutated in place: ``register()`` and
    ``unregister()`` publish a fresh copy, so readers always see a
    consistent table.

    Attributes:
        _definitions: Current resolved definition table
        _registry: Memoized instances by service name
        _types: Constructors by type identifier

    Example::

        builder = ServiceBuilder({
            "michael.mock": {
                "class": "myapp.clients.MockClient",
                "params": {"username": "michael", "subdomain": "michael"},
            },
        })
        client = builder.get("michael.mock")
    """

    def __init__(self, definitions: Optional[Definitions] = None, types: Optional[TypeRegistry] = None):
        """Initialize a builder from definitions.

        Args:
            definitions: A resolved DefinitionTable, an iterable of
                RawDefinition in declaration order, or a mapping in the
                same shape a YAML source uses (optional)
            types: Constructor registry; a default registry resolving
                dotted import paths is used when omitted

        Raises:
            DefinitionResolutionError: When raw definitions cannot be resolved
            ServiceConstructionError: When a definition names an unknown type
        """
        self._lock = threading.Lock()
        self._types = types if types is not None else TypeRegistry()
        self._resolver = DefinitionResolver()
        self._registry = InstanceRegistry()
        self._definitions: DefinitionTable = self._coerce(definitions)

        for definition in self._definitions.values():
            self._check_type(definition)

    @classmethod
    def factory(
        cls,
        source: DefinitionSource,
        cache: Optional[CacheAdapter] = None,
        ttl: int = DEFAULT_TTL,
        types: Optional[TypeRegistry] = None,
        serializer: Optional[Serializer] = None,
    ) -> 'ServiceBuilder':
        """Create a builder from a configuration file or mapping.

        With a cache adapter the resolved definitions are stored under a key
        derived from the source and ``ttl``; later calls with the same source
        load them back without reading the file. Cache failures fall back to
        reading the source.

        Args:
            source: Path to an XML/YAML/JSON file, or a mapping of definitions
            cache: Cache adapter for resolved definitions (optional)
            ttl: Time-to-live in seconds handed to the cache adapter
            types: Constructor registry (optional)
            serializer: Serializer for cached definitions (JSON by default)

        Returns:
            A new ServiceBuilder

        Raises:
            SourceReadError: When the source cannot be opened or parsed
            DefinitionResolutionError: When inheritance cannot be resolved
            ServiceConstructionError: When a definition names an unknown type
        """
        resolver = DefinitionResolver()

        def build() -> DefinitionTable:
            return resolver.resolve(read_definitions(source))

        table = load_or_build(_source_key(source), ttl, cache, build, serializer)
        return cls(table, types=types)

    def _coerce(self, definitions: Optional[Definitions]) -> DefinitionTable:
        if definitions is None:
            return {}
        if isinstance(definitions, Mapping):
            if all(isinstance(d, ResolvedDefinition) for d in definitions.values()):
                return dict(definitions)
            return self._resolver.resolve(definitions_from_mapping(definitions))
        return self._resolver.resolve(definitions)

    def _check_type(self, definition: ResolvedDefinition) -> None:
        try:
            self._types.resolve(definition.type)
        except UnknownTypeError as e:
            raise ServiceConstructionError(definition.name, e) from e

    def _construct(self, definition: ResolvedDefinition) -> Any:
        try:
            instance = self._types.construct(definition.type, definition.params)
        except Exception as e:
            raise ServiceConstructionError(definition.name, e) from e
        logger.debug("Constructed service %s (%s)", definition.name, definition.type)
        return instance

    def get(self, name: str, throwaway: bool = False) -> Any:
        """Get a service instance by name.

        Args:
            name: Service name
            throwaway: When True, construct a fresh instance that is not
                memoized; the shared instance (if any) is left untouched

        Returns:
            The shared instance, or a fresh one for throwaway access

        Raises:
            UnknownServiceError: When no definition exists for ``name``
            ServiceConstructionError: When the instance cannot be constructed
        """
        definition = self.get_definition(name)
        if throwaway:
            return self._construct(definition)

        # Re-read the definition under the name lock; it may have been
        # replaced or removed while waiting
        return self._registry.get_or_create(
            name, lambda: self._construct(self.get_definition(name))
        )

    def get_definition(self, name: str) -> ResolvedDefinition:
        """Return the resolved definition for ``name``.

        Raises:
            UnknownServiceError: When no definition exists for ``name``
        """
        definition = self._definitions.get(name)
        if definition is None:
            raise UnknownServiceError(name)
        return definition

    @property
    def definitions(self) -> Mapping[str, ResolvedDefinition]:
        """Read-only view of the current definition table."""
        return MappingProxyType(self._definitions)

    def register(self, name: str, definition_or_instance: Any) -> None:
        """Register a definition or an already constructed instance.

        A ``RawDefinition`` (resolved against the current definitions) or
        ``ResolvedDefinition`` replaces the definition for ``name`` and drops
        its shared instance. Any other object becomes the shared instance
        for ``name`` directly, without construction.

        A directly registered instance gets a definition naming its class
        with empty params, so ``get(name, throwaway=True)`` calls that class
        with an empty dict. Register a definition instead when throwaway
        access needs real params.

        Constructors must not call ``register()`` or ``unregister()``: both
        hold the builder lock while waiting on the name's construction.

        Raises:
            DefinitionResolutionError: When a RawDefinition extends an
                unknown service
            ServiceConstructionError: When a definition names an unknown type
        """
        if isinstance(definition_or_instance, (RawDefinition, ResolvedDefinition)):
            self._register_definition(name, definition_or_instance)
            return

        instance = definition_or_instance
        cls = type(instance)
        definition = ResolvedDefinition(name=name, type=f"{cls.__module__}.{cls.__qualname__}")
        # Builder lock then name lock; get() never takes the builder lock
        with self._lock:
            self._definitions = {**self._definitions, name: definition}
            self._registry.put(name, instance)
        logger.debug("Registered instance for service %s", name)

    def _register_definition(self, name: str, definition: Union[RawDefinition, ResolvedDefinition]) -> None:
        with self._lock:
            if isinstance(definition, RawDefinition):
                raw = RawDefinition(name, definition.type, definition.extends, definition.params)
                resolved = self._resolver.resolve_one(raw, self._definitions)
            else:
                resolved = ResolvedDefinition(name, definition.type, dict(definition.params))
            self._check_type(resolved)
            self._definitions = {**self._definitions, name: resolved}
            self._registry.discard(name)
        logger.debug("Registered definition for service %s (%s)", name, resolved.type)

    def unregister(self, name: str) -> None:
        """Remove the definition and shared instance for ``name``.

        Unknown names are ignored.
        """
        with self._lock:
            if name in self._definitions:
                definitions = dict(self._definitions)
                del definitions[name]
                self._definitions = definitions
            self._registry.discard(name)
        logger.debug("Unregistered service %s", name)

    def contains(self, name: str) -> bool:
        """Whether a definition exists for ``name``."""
        return name in self._definitions

    def list_names(self) -> Set[str]:
        return set(self._definitions)

    # Map-style access

    def exists(self, name: str) -> bool:
        return self.contains(name)

    def set(self, name: str, instance: Any) -> None:
        self.register(name, instance)

    def remove(self, name: str) -> None:
        self.unregister(name)


def _source_key(source: DefinitionSource) -> str:
    if isinstance(source, Mapping):
        # Declaration order decides resolution, so it is part of the key
        return "mapping:" + json.dumps(list(source.items()), default=str)
    return str(Path(source).resolve())
