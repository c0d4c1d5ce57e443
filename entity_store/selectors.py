"""
Entity Store — Selectors

The "read" side of CRUD: plain lookups over a store state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from entity_store.schema import ResolvedSchema


def select_one(state: Mapping[str, Any], schema: ResolvedSchema, entity_id: Any) -> dict[str, Any] | None:
    return state.get(schema.name, {}).get(entity_id)


def select_many(
    state: Mapping[str, Any],
    schema: ResolvedSchema,
    ids: Iterable[Any] | None = None,
) -> list[dict[str, Any]]:
    """All records of `schema`, or the ones in `ids` (in that order, missing ids skipped)."""
    table = state.get(schema.name, {})
    if ids is None:
        return list(table.values())
    return [table[entity_id] for entity_id in ids if entity_id in table]


def select_related(
    state: Mapping[str, Any],
    schema: ResolvedSchema,
    entity_id: Any,
    attribute: str,
) -> dict[str, Any] | list[dict[str, Any]] | None:
    """
    Follow reference `attribute` of one record.
    Returns a record for single references, a list for many references.
    Dangling ids resolve to None (single) or are skipped (many).
    """
    relation = next((r for r in schema.relations() if r.through == attribute), None)
    if relation is None:
        raise KeyError(f"'{schema.name}' has no reference attribute '{attribute}'")

    target = schema.schema_set[relation.to]
    record = select_one(state, schema, entity_id)
    value = record.get(attribute) if record is not None else None

    if relation.is_many:
        if value is None:
            return []
        ids = value if isinstance(value, (list, tuple)) else [value]
        return select_many(state, target, ids)
    if value is None:
        return None
    return select_one(state, target, value)


def with_computed(schema: ResolvedSchema, record: Mapping[str, Any]) -> dict[str, Any]:
    """The record plus the values of the schema's computed attributes."""
    result = dict(record)
    for attr, fn in schema.computed.items():
        result[attr] = fn(result)
    return result
