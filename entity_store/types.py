"""
Entity Store — Shared Types

Data classes used across schema, normalize, operations, and reducer.
These are the contracts that bind the store together.

Attribute specs are a tagged variant:
- Plain      — stored as given
- Computed   — derived from the record on read, never stored
- RefOne     — holds the id of one record of another type
- RefMany    — holds a list of ids of records of another type
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union

# ---------------------------------------------------------------------------
# Operation kinds
# ---------------------------------------------------------------------------

CREATE_ENTITY = "CREATE_ENTITY"
CREATE_ENTITIES = "CREATE_ENTITIES"
UPDATE_ENTITY = "UPDATE_ENTITY"
UPDATE_ENTITIES = "UPDATE_ENTITIES"
UPDATE_ENTITY_ID = "UPDATE_ENTITY_ID"
DELETE_ENTITY = "DELETE_ENTITY"
BATCH_OPERATIONS = "BATCH_OPERATIONS"

OPERATION_KINDS: set[str] = {
    CREATE_ENTITY,
    CREATE_ENTITIES,
    UPDATE_ENTITY,
    UPDATE_ENTITIES,
    UPDATE_ENTITY_ID,
    DELETE_ENTITY,
    BATCH_OPERATIONS,
}


# ---------------------------------------------------------------------------
# Attribute specs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Plain:
    """An attribute stored as given."""


@dataclass(frozen=True)
class Computed:
    """An attribute derived from the record; never stored."""

    fn: Callable[[dict[str, Any]], Any]


@dataclass(frozen=True)
class RefOne:
    """Single reference: the attribute holds one id of `target`."""

    target: str
    foreign: str | None = None


@dataclass(frozen=True)
class RefMany:
    """Many reference: the attribute holds a list of ids of `target`."""

    target: str
    foreign: str | None = None


AttributeSpec = Union[Plain, Computed, RefOne, RefMany]
REFERENCE_SPECS = (RefOne, RefMany)


def is_reference(spec: AttributeSpec) -> bool:
    return isinstance(spec, REFERENCE_SPECS)


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Relation:
    """
    One outgoing reference of a resolved schema.

    to       — target type name
    through  — attribute on the source holding the id(s)
    foreign  — reciprocal attribute on the target, None when one-directional
    is_many  — True when `through` holds a list of ids
    """

    to: str
    through: str
    foreign: str | None
    is_many: bool


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Operation:
    """
    An immutable description of one intended state change.
    The reducer reads `kind` and `payload`; `type` is the target schema name.
    """

    kind: str
    type: str | None
    payload: Mapping[str, Any]
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Shallow read-only copies
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))
        object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))

    @property
    def is_entity_operation(self) -> bool:
        return bool(self.meta.get("is_entity_operation"))

    @property
    def is_atomic(self) -> bool:
        return bool(self.meta.get("atomic"))
