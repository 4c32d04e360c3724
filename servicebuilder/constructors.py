"""
TypeRegistry

Maps type identifiers from service definitions to constructor callables.

A constructor is any callable taking the resolved params as a single
``dict`` argument and returning the service instance. Identifiers that are
not registered explicitly are treated as dotted import paths
(``package.module.Attribute``).

Example::

    types = TypeRegistry()
    types.register("mock", lambda params: MockClient(params))

    types.construct("mock", {"username": "michael"})
    types.construct("myapp.clients.HttpClient", {"base_url": "http://localhost/"})
"""

import importlib
import logging
from threading import RLock
from typing import Any, Callable, Dict, Mapping, Optional

from .exceptions import UnknownTypeError

logger = logging.getLogger(__name__)

Constructor = Callable[[Dict[str, Any]], Any]


class TypeRegistry:
    """Registry of constructors keyed by type identifier.

    Resolved import paths are cached, so each dotted path is imported
    at most once per registry.
    """

    def __init__(self, constructors: Optional[Mapping[str, Constructor]] = None):
        self._lock = RLock()
        self._constructors: Dict[str, Constructor] = dict(constructors or {})

    def register(self, type_id: str, constructor: Constructor) -> None:
        """Register (or replace) the constructor for ``type_id``."""
        if not callable(constructor):
            raise TypeError(f"Constructor for {type_id} is not callable")
        with self._lock:
            self._constructors[type_id] = constructor

    def __contains__(self, type_id: str) -> bool:
        with self._lock:
            return type_id in self._constructors

    def resolve(self, type_id: str) -> Constructor:
        """Return the constructor for ``type_id``.

        Raises:
            UnknownTypeError: When the identifier is neither registered
                nor an importable dotted path to a callable
        """
        if not isinstance(type_id, str):
            raise UnknownTypeError(repr(type_id), "type identifiers must be strings")
        with self._lock:
            constructor = self._constructors.get(type_id)
        if constructor is not None:
            return constructor

        constructor = self._import(type_id)
        with self._lock:
            self._constructors.setdefault(type_id, constructor)
        logger.debug("Imported constructor %s", type_id)
        return constructor

    def construct(self, type_id: str, params: Mapping[str, Any]) -> Any:
        """Construct an instance of ``type_id`` with a copy of ``params``.

        Raises:
            UnknownTypeError: When ``type_id`` cannot be resolved
            Exception: Whatever the constructor raises, unchanged
        """
        return self.resolve(type_id)(dict(params))

    @staticmethod
    def _import(type_id: str) -> Constructor:
        module_name, _, attribute = type_id.rpartition(".")
        if not module_name:
            raise UnknownTypeError(type_id, "not registered and not a dotted import path")
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise UnknownTypeError(type_id, f"cannot import {module_name}: {e}") from e

        try:
            target = getattr(module, attribute)
        except AttributeError as e:
            raise UnknownTypeError(type_id, f"{module_name} has no attribute {attribute}") from e

        if not callable(target):
            raise UnknownTypeError(type_id, "not callable")
        return target
