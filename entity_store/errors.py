"""
Entity Store — Exceptions

Raised synchronously while resolving schemas or building operations.
Reducers never raise: once an operation exists, it is well-formed.
"""

from __future__ import annotations


class EntityStoreError(Exception):
    """Base class for every error raised by the entity store."""
    pass


class InvalidSchemaError(EntityStoreError):
    """A schema declaration is malformed or its relations are inconsistent."""
    pass


class InvalidSchemasError(InvalidSchemaError):
    """The schema set handed to the resolver or reducer factory is empty or not a collection."""
    pass


class InvalidInputError(EntityStoreError):
    """An operation was built from an unusable schema, id, or payload."""
    pass
