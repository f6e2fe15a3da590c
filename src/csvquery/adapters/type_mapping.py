"""
Type name resolution for PostgreSQL result columns.

Column type codes reported by psycopg are OIDs. A name is looked up first in
the connection's own adapters registry (which includes types registered on
that connection, e.g. via `TypeInfo.fetch`), then in psycopg's builtin
registry. Codes that are found in neither have no name.
"""
import logging
from typing import Any

from psycopg.postgres import types as builtin_types

logger = logging.getLogger(__name__)

__all__ = ['TypeNameResolver', 'resolve_type_name']


class TypeNameResolver:
    """Resolve PostgreSQL OIDs to type names.

    Args:
        registry: psycopg `TypesRegistry` to consult before the builtin one,
            usually `connection.adapters.types`
    """

    def __init__(self, registry: Any | None = None) -> None:
        self.registry = registry

    def resolve(self, type_code: Any) -> str | None:
        """Return the type name for `type_code`, or None if unknown.
        """
        if type_code is None:
            return None

        for registry in (self.registry, builtin_types):
            if registry is None:
                continue
            info = registry.get(type_code)
            if info is None:
                continue
            # registries index array OIDs under the element type
            if type_code == info.array_oid and type_code != info.oid:
                return f'_{info.name}'
            return info.name

        logger.debug(f'No type name registered for type code {type_code!r}')
        return None


def resolve_type_name(type_code: Any) -> str | None:
    """Resolve a type code against psycopg's builtin registry only.
    """
    return TypeNameResolver().resolve(type_code)
