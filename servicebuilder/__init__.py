# Public API
from .builder import ServiceBuilder
from .cache import (
    DEFAULT_TTL,
    CacheAdapter,
    JSONSerializer,
    MemoryCacheAdapter,
    PickleSerializer,
    Serializer,
    cache_key,
    load_or_build,
)
from .constructors import TypeRegistry
from .definition import DefinitionTable, RawDefinition, ResolvedDefinition
from .exceptions import (
    DefinitionResolutionError,
    ServiceBuilderError,
    ServiceConstructionError,
    SourceReadError,
    UnknownServiceError,
    UnknownTypeError,
)
from .registry import InstanceRegistry
from .resolver import DefinitionResolver, resolve_definitions
from .source import read_definitions

__all__ = [
    "ServiceBuilder",
    "TypeRegistry",
    "InstanceRegistry",
    # Definitions
    "RawDefinition",
    "ResolvedDefinition",
    "DefinitionTable",
    "DefinitionResolver",
    "resolve_definitions",
    "read_definitions",
    # Cache
    "CacheAdapter",
    "MemoryCacheAdapter",
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "DEFAULT_TTL",
    "cache_key",
    "load_or_build",
    # Exceptions
    "ServiceBuilderError",
    "SourceReadError",
    "DefinitionResolutionError",
    "UnknownServiceError",
    "UnknownTypeError",
    "ServiceConstructionError",
]

__version__ = '0.1.0'
