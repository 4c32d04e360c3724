"""
ServiceBuilder Exceptions

Custom exception hierarchy for the servicebuilder factory
"""

from typing import Optional


class ServiceBuilderError(Exception):
    """
    Base exception for all servicebuilder errors.

    All servicebuilder-specific exceptions inherit from this class.
    You can catch this to handle any factory error generically.

    Example:
        >>> try:
        ...     client = builder.get("billy.mock")
        ... except ServiceBuilderError as e:
        ...     print(f"Service error: {e}")
    """

    pass


class SourceReadError(ServiceBuilderError):
    """
    Raised when a definition source cannot be opened or parsed.

    This error aborts ``ServiceBuilder.factory()`` entirely; no builder
    is returned.

    Common causes:
        - The configuration file does not exist or is not readable
        - The file is not valid XML, YAML or JSON
        - The file suffix is not a supported format
        - A definition is missing its ``name`` or has malformed ``params``

    Solution:
        Check the path and the file contents::

            builder = ServiceBuilder.factory("config/services.yml")
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class DefinitionResolutionError(ServiceBuilderError):
    """
    Raised when an inheritance chain cannot be resolved.

    Definitions are resolved in declaration order, so a definition may only
    extend a parent declared *before* it. A parent that does not exist at all
    and a parent that is declared later fail the same way.

    Example of an invalid source::

        services:
          testing:
            extends: mock      # mock is declared below - fails
          mock:
            type: myapp.clients.MockClient

    Solution:
        Declare parents before their children.

    Attributes:
        child: Name of the definition that failed to resolve
        missing_parent: Name of the parent that was not available, or None
            when the definition failed for another reason (no type)
    """

    def __init__(self, message: str, child: str, missing_parent: Optional[str] = None):
        super().__init__(message)
        self.child = child
        self.missing_parent = missing_parent


class UnknownServiceError(ServiceBuilderError, KeyError):
    """
    Raised when a requested service name has no definition.

    Also a ``KeyError`` so map-style callers can catch it naturally.
    The builder is left untouched.

    Solution:
        Check ``builder.list_names()`` or register the service first::

            builder.register("foobar", FoobarClient())
    """

    def __init__(self, name: str):
        super().__init__(f"No service is registered as {name}")
        self.name = name

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class UnknownTypeError(ServiceBuilderError):
    """
    Raised by ``TypeRegistry`` when a type identifier cannot be resolved.

    The identifier is neither registered with ``TypeRegistry.register()``
    nor an importable dotted path. ``ServiceBuilder`` wraps this error in
    ``ServiceConstructionError``.
    """

    def __init__(self, type_id: str, reason: str = ""):
        message = f"Unknown service type: {type_id}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.type_id = type_id


class ServiceConstructionError(ServiceBuilderError):
    """
    Raised when a service instance could not be constructed.

    The original exception is available as ``cause`` and is chained as
    ``__cause__``. No instance is memoized for the name, so a later
    ``get()`` retries construction.

    Common causes:
        - The definition's type is not registered and not importable
        - The constructor raised with the resolved params
    """

    def __init__(self, name: str, cause: BaseException):
        super().__init__(f"Unable to construct service {name}: {cause}")
        self.name = name
        self.cause = cause
