"""
Entity Store — Reducer

Pure functions: (state, operation) → state

State is {type_name: {id: record}}. Nothing is mutated in place: a transition
builds new dicts for the slices it touches, keeps the others as they are, and
returns the very same object when nothing changed. Holders of the state can
detect changes by identity.

Operations the store does not know (including foreign actions of a host
dispatcher) pass through untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from entity_store.errors import InvalidSchemasError
from entity_store.schema import ResolvedSchema
from entity_store.types import (
    BATCH_OPERATIONS,
    CREATE_ENTITIES,
    CREATE_ENTITY,
    DELETE_ENTITY,
    UPDATE_ENTITIES,
    UPDATE_ENTITY,
    UPDATE_ENTITY_ID,
)

logger = logging.getLogger(__name__)

Slice = dict[Any, dict[str, Any]]
State = dict[str, Slice]
Reducer = Callable[..., Any]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def reduce_slice(schema: ResolvedSchema, slice_state: Slice, operation: Any) -> Slice:
    """Apply one operation to the slice of `schema`. Returns `slice_state` itself when unaffected."""
    if not getattr(operation, "is_entity_operation", False):
        return slice_state
    handler = _HANDLERS.get(getattr(operation, "kind", None))
    if handler is None:
        return slice_state
    return handler(schema, slice_state, operation)


def apply_operation(state: State, operation: Any) -> State:
    """
    Apply one operation to the whole store state.

    The target slice and every slice present in the operation's normalized
    tables are reduced; other slices keep their identity.
    """
    kind = getattr(operation, "kind", None)
    if kind == BATCH_OPERATIONS:
        return apply_batch(state, operation.payload["operations"])
    if not _is_handled(operation):
        return state

    schema: ResolvedSchema = operation.payload["schema"]
    changed: State = {}
    for name in _affected_types(operation):
        target = schema.schema_set.get(name)
        if target is None:
            continue
        current = state.get(name)
        base = current if current is not None else {}
        reduced = reduce_slice(target, base, operation)
        if reduced is not base:
            changed[name] = reduced

    if not changed:
        return state
    return {**state, **changed}


def apply_batch(state: State, operations: Iterable[Any]) -> State:
    """Fold operations in order into a single resulting state."""
    for operation in operations:
        state = apply_operation(state, operation)
    return state


def create_type_reducer(schema: ResolvedSchema, initial_slice: Mapping[Any, dict[str, Any]] | None = None) -> Reducer:
    """Reducer for one schema's slice: (slice | None, operation) → slice."""
    initial: Slice = dict(initial_slice) if initial_slice else {}

    def type_reducer(slice_state: Slice | None = None, operation: Any = None) -> Slice:
        if slice_state is None:
            slice_state = initial
        if operation is None:
            return slice_state
        return reduce_slice(schema, slice_state, operation)

    return type_reducer


def create_store_reducer(schemas: Mapping[str, ResolvedSchema], initial_state: Mapping[str, Any] | None = None) -> Reducer:
    """
    Compose one type reducer per schema into a store reducer that also
    understands batches: (state | None, operation) → state.
    """
    if not isinstance(schemas, Mapping) or not schemas:
        raise InvalidSchemasError(f"[INVALID SCHEMAS] expected a non-empty mapping of schemas, got {schemas!r}")

    initial_state = initial_state or {}
    reducers = {name: create_type_reducer(schema, initial_state.get(name)) for name, schema in schemas.items()}

    def store_reducer(state: State | None = None, operation: Any = None) -> State:
        if state is None:
            state = {}
        elif not _is_handled(operation):
            return state
        next_state = dict(state)
        has_changed = False
        for name, type_reducer in reducers.items():
            previous = state.get(name)
            reduced = type_reducer(previous, operation)
            next_state[name] = reduced
            has_changed = has_changed or reduced is not previous
        return next_state if has_changed else state

    return enable_batching(store_reducer)


def enable_batching(reducer: Reducer) -> Reducer:
    """Wrap `reducer` so a batch operation is folded into one transition."""

    def batching_reducer(state: Any = None, operation: Any = None) -> Any:
        if getattr(operation, "kind", None) == BATCH_OPERATIONS:
            operations = operation.payload["operations"]
            logger.debug("applying batch of %d operations", len(operations))
            for inner in operations:
                state = batching_reducer(state, inner)
            return state
        return reducer(state, operation)

    return batching_reducer


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _affected_types(operation: Any) -> list[str]:
    names = [operation.payload["key"]]
    data = operation.payload.get("data")
    if not operation.payload.get("skip_normalization") and isinstance(data, Mapping):
        names.extend(name for name in data.get("entities", {}) if name not in names)
    return names


def _normalized_records(schema: ResolvedSchema, operation: Any) -> Mapping[Any, dict[str, Any]]:
    data = operation.payload.get("data") or {}
    return data.get("entities", {}).get(schema.name) or {}


def _targets(schema: ResolvedSchema, operation: Any) -> bool:
    return operation.payload.get("key") == schema.name


def _is_handled(operation: Any) -> bool:
    return getattr(operation, "kind", None) in _HANDLERS and getattr(operation, "is_entity_operation", False)


def _result_ids(operation: Any) -> set[Any]:
    data = operation.payload.get("data") or {}
    result = data.get("result")
    if result is None:
        return set()
    return set(result) if isinstance(result, (list, tuple)) else {result}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_create(schema: ResolvedSchema, slice_state: Slice, operation: Any) -> Slice:
    payload = operation.payload

    if payload.get("skip_normalization"):
        if not _targets(schema, operation):
            return slice_state
        raw = payload["data"]
        records = raw if isinstance(raw, list) else [raw]
        next_slice = dict(slice_state)
        for record in records:
            # Computed values are derived on read, never stored
            next_slice[schema.get_id(record)] = {k: v for k, v in record.items() if k not in schema.computed}
        return next_slice

    incoming = _normalized_records(schema, operation)
    if not incoming:
        return slice_state

    # Top-level records replace the stored ones. Records reached through a
    # reference merge, even when they are of the target type.
    replace_ids = _result_ids(operation) if _targets(schema, operation) else set()
    next_slice = dict(slice_state)
    for entity_id, record in incoming.items():
        if entity_id in replace_ids:
            next_slice[entity_id] = dict(record)
        else:
            next_slice[entity_id] = {**slice_state.get(entity_id, {}), **record}
    return next_slice


def _handle_update(schema: ResolvedSchema, slice_state: Slice, operation: Any) -> Slice:
    incoming = _normalized_records(schema, operation)
    if not incoming:
        return slice_state

    replace_ids: set[Any] = set()
    if _targets(schema, operation) and operation.payload.get("use_defaults"):
        if operation.kind == UPDATE_ENTITY:
            replace_ids = {operation.payload["id"]}
        else:
            replace_ids = set(operation.payload["ids"])

    next_slice = dict(slice_state)
    for entity_id, record in incoming.items():
        if entity_id in replace_ids:
            next_slice[entity_id] = {**schema.defaults(), **record}
        else:
            # Upsert: a missing record is created from `record`
            next_slice[entity_id] = {**slice_state.get(entity_id, {}), **record}
    return next_slice


def _handle_rename(schema: ResolvedSchema, slice_state: Slice, operation: Any) -> Slice:
    old_id = operation.payload["old_id"]
    new_id = operation.payload["new_id"]
    if not _targets(schema, operation) or old_id not in slice_state or old_id == new_id:
        return slice_state

    record = slice_state[old_id]
    next_slice = {entity_id: r for entity_id, r in slice_state.items() if entity_id != old_id}
    next_slice[new_id] = {**record, schema.id_attribute: new_id}
    return next_slice


def _handle_delete(schema: ResolvedSchema, slice_state: Slice, operation: Any) -> Slice:
    entity_id = operation.payload["id"]
    if not _targets(schema, operation) or entity_id not in slice_state:
        return slice_state
    return {k: v for k, v in slice_state.items() if k != entity_id}


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

_HANDLERS: dict[str, Any] = {
    CREATE_ENTITY: _handle_create,
    CREATE_ENTITIES: _handle_create,
    UPDATE_ENTITY: _handle_update,
    UPDATE_ENTITIES: _handle_update,
    UPDATE_ENTITY_ID: _handle_rename,
    DELETE_ENTITY: _handle_delete,
}
