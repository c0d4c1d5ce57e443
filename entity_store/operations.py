"""
Entity Store — Operation Construction

Factory functions for well-formed operations, one per CRUD shape.
All validation happens here so the reducer never has to reject anything.

"Create" would be better named "add": nothing is created anywhere but in the
store. The CRUD name is kept for resemblance. The "read" side lives in
selectors.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Callable, Hashable, Mapping, Sequence
from typing import Any

from entity_store.errors import InvalidInputError
from entity_store.normalize import Normalizer, array_of, normalize
from entity_store.schema import ResolvedSchema
from entity_store.types import (
    BATCH_OPERATIONS,
    CREATE_ENTITIES,
    CREATE_ENTITY,
    DELETE_ENTITY,
    OPERATION_KINDS,
    UPDATE_ENTITIES,
    UPDATE_ENTITY,
    UPDATE_ENTITY_ID,
    Operation,
)

logger = logging.getLogger(__name__)

IdGenerator = Callable[[], str]


def generate_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def create_one(
    schema: ResolvedSchema,
    data: Mapping[str, Any],
    *,
    skip_normalization: bool = False,
    id_generator: IdGenerator | None = None,
    normalizer: Normalizer | None = None,
) -> Operation:
    """
    Add one record. An id is generated when `data` has none.
    The payload carries the normalized tables and the raw record.
    """
    key = _schema_key(schema)
    record = _with_id(schema, _require_record(data, "create_one"), id_generator, "create_one")
    return _operation(
        CREATE_ENTITY,
        schema,
        key,
        data=record if skip_normalization else (normalizer or normalize)(record, schema),
        raw_data=record,
        skip_normalization=skip_normalization,
    )


def create_many(
    schema: ResolvedSchema,
    data: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    *,
    skip_normalization: bool = False,
    id_generator: IdGenerator | None = None,
    normalizer: Normalizer | None = None,
) -> Operation:
    """Add a list of records (or a single one). Missing ids are generated per record."""
    key = _schema_key(schema)
    normalizer = normalizer or normalize

    if isinstance(data, Mapping):
        raw: Any = _with_id(schema, data, id_generator, "create_many")
        target: Any = schema
    elif isinstance(data, (list, tuple)):
        raw = [_with_id(schema, _require_record(item, "create_many"), id_generator, "create_many") for item in data]
        target = array_of(schema)
    else:
        raise InvalidInputError(f"create_many expects a record or a list of records, got {type(data).__name__}")

    return _operation(
        CREATE_ENTITIES,
        schema,
        key,
        data=raw if skip_normalization else normalizer(raw, target),
        raw_data=raw,
        skip_normalization=skip_normalization,
    )


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


def update_one(
    schema: ResolvedSchema,
    id: Any,
    data: Mapping[str, Any] | None,
    use_defaults: bool = False,
    *,
    normalizer: Normalizer | None = None,
) -> Operation:
    """
    Update (or upsert) one record.

    use_defaults=False merges `data` into the stored record.
    use_defaults=True resets the record to the schema defaults, then applies `data`.
    """
    key = _schema_key(schema)
    _require_id(id, "update_one")
    record = {**_require_record(data or {}, "update_one"), schema.id_attribute: id}
    return _operation(
        UPDATE_ENTITY,
        schema,
        key,
        id=id,
        data=(normalizer or normalize)(record, schema),
        use_defaults=bool(use_defaults),
    )


def update_many(
    schema: ResolvedSchema,
    ids: Sequence[Any],
    data: Mapping[str, Any] | None,
    use_defaults: bool = False,
    *,
    normalizer: Normalizer | None = None,
) -> Operation:
    """Apply the same partial `data` to every id in `ids`."""
    key = _schema_key(schema)
    if not isinstance(ids, (list, tuple)):
        raise InvalidInputError(f"update_many expects a list of ids, got {type(ids).__name__}")
    for entity_id in ids:
        _require_id(entity_id, "update_many")
    partial = _require_record(data or {}, "update_many")
    records = [{**partial, schema.id_attribute: entity_id} for entity_id in ids]
    return _operation(
        UPDATE_ENTITIES,
        schema,
        key,
        ids=list(ids),
        data=(normalizer or normalize)(records, array_of(schema)),
        use_defaults=bool(use_defaults),
    )


def rename_id(schema: ResolvedSchema, old_id: Any, new_id: Any) -> Operation:
    """
    Move a record from `old_id` to `new_id`, typically once the server assigns
    the real id to a record created with a client-side one.
    References to `old_id` held by other records are left as they are.
    """
    key = _schema_key(schema)
    _require_id(old_id, "rename_id")
    _require_id(new_id, "rename_id")
    return _operation(UPDATE_ENTITY_ID, schema, key, old_id=old_id, new_id=new_id)


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


def delete_one(schema: ResolvedSchema, id_or_record: Any) -> Operation:
    """Remove one record, given its id or the record itself."""
    key = _schema_key(schema)
    entity_id = id_or_record
    if isinstance(id_or_record, Mapping):
        entity_id = schema.get_id(id_or_record)
    _require_id(entity_id, "delete_one")
    return _operation(DELETE_ENTITY, schema, key, id=entity_id)


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


def batch(operations: Sequence[Operation]) -> Operation:
    """
    Group operations into one atomic transition.
    Each inner operation is re-issued with meta["atomic"] = True.
    """
    if not isinstance(operations, (list, tuple)):
        raise InvalidInputError(f"batch expects a list of operations, got {type(operations).__name__}")
    inner: list[Operation] = []
    for op in operations:
        if not isinstance(op, Operation):
            raise InvalidInputError(f"batch accepts only operations, got {op!r}")
        if op.kind not in OPERATION_KINDS:
            logger.warning("batch: operation kind %s is not handled by the entity reducer", op.kind)
        inner.append(dataclasses.replace(op, meta={**op.meta, "atomic": True}))
    return Operation(
        kind=BATCH_OPERATIONS,
        type=None,
        payload={"operations": tuple(inner)},
        meta={"is_entity_operation": True, "batch": True},
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _schema_key(schema: Any) -> str:
    key = getattr(schema, "key", None)
    if not isinstance(schema, ResolvedSchema) or not isinstance(key, str) or not key:
        raise InvalidInputError(f"operation needs a resolved schema with a key, got {schema!r}")
    return key


def _require_record(data: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise InvalidInputError(f"{where} expects a record (mapping), got {type(data).__name__}")
    return data


def _require_id(entity_id: Any, where: str) -> None:
    if entity_id is None or entity_id == "" or isinstance(entity_id, (Mapping, list, tuple)):
        raise InvalidInputError(f"{where} requires an id, got {entity_id!r}")
    if not isinstance(entity_id, Hashable):
        raise InvalidInputError(f"{where} requires a hashable id, got {entity_id!r}")


def _with_id(
    schema: ResolvedSchema,
    data: Mapping[str, Any],
    id_generator: IdGenerator | None,
    where: str,
) -> dict[str, Any]:
    record = dict(data)
    if record.get(schema.id_attribute) in (None, ""):
        record[schema.id_attribute] = (id_generator or generate_id)()
    _require_id(record[schema.id_attribute], where)
    return record


def _operation(kind: str, schema: ResolvedSchema, key: str, **payload: Any) -> Operation:
    return Operation(
        kind=kind,
        type=key,
        payload={"key": key, "schema": schema, **payload},
        meta={"is_entity_operation": True},
    )
