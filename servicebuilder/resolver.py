"""
DefinitionResolver

This module flattens ``extends`` chains into self-contained definitions.

Resolution is strictly order sensitive: definitions are processed in
declaration order and a child may only extend a parent that has already
been resolved. A parent declared later, a parent that does not exist and
an inheritance cycle all fail the same way, with
``DefinitionResolutionError``.

Example::

    raw = [
        RawDefinition("mock", type="myapp.MockClient", params={"user": "michael"}),
        RawDefinition("testing", extends="mock", params={"subdomain": "test"}),
    ]
    table = resolve_definitions(raw)
    table["testing"].params  # {"user": "michael", "subdomain": "test"}
"""

import logging
from typing import Iterable, Mapping

from .definition import DefinitionTable, RawDefinition, ResolvedDefinition
from .exceptions import DefinitionResolutionError

logger = logging.getLogger(__name__)


class DefinitionResolver:
    """Resolves raw definitions into a ``DefinitionTable``.

    The resolver is stateless; ``resolve()`` builds a fresh table on every
    call and never returns a partially resolved one.
    """

    def resolve(self, raw: Iterable[RawDefinition]) -> DefinitionTable:
        """Resolve a sequence of raw definitions in declaration order.

        Args:
            raw: Raw definitions in the order they were declared

        Returns:
            A new DefinitionTable keyed by service name

        Raises:
            DefinitionResolutionError: When a parent is missing or declared
                after its child, or a root definition has no type
        """
        table: DefinitionTable = {}
        for definition in raw:
            table[definition.name] = self.resolve_one(definition, table)
        logger.debug("Resolved %d service definitions", len(table))
        return table

    def resolve_one(
        self,
        definition: RawDefinition,
        resolved: Mapping[str, ResolvedDefinition]
    ) -> ResolvedDefinition:
        """Resolve a single definition against already resolved ones.

        Args:
            definition: The raw definition to resolve
            resolved: Definitions available as parents

        Returns:
            The flattened definition

        Raises:
            DefinitionResolutionError: When the parent is not in ``resolved``
                or no type can be determined
        """
        if definition.extends is None:
            if not definition.type:
                raise DefinitionResolutionError(
                    f"{definition.name} does not specify a type and does not extend another service",
                    child=definition.name,
                )
            return ResolvedDefinition(
                name=definition.name,
                type=definition.type,
                params=dict(definition.params),
            )

        parent = resolved.get(definition.extends)
        if parent is None:
            raise DefinitionResolutionError(
                f"{definition.name} is trying to extend a non-existent or "
                f"not yet defined service: {definition.extends}",
                child=definition.name,
                missing_parent=definition.extends,
            )

        params = dict(parent.params)
        params.update(definition.params)

        return ResolvedDefinition(
            name=definition.name,
            type=definition.type or parent.type,
            params=params,
        )


def resolve_definitions(raw: Iterable[RawDefinition]) -> DefinitionTable:
    """Shortcut for ``DefinitionResolver().resolve(raw)``."""
    return DefinitionResolver().resolve(raw)
