"""
Entity Store — Normalization Adapter

Turns a nested document (or a list of them) into flat tables:

    {
        "result":   id | [id, ...],
        "entities": {type_name: {id: record}},
    }

Nested objects under reference attributes are replaced by their id and
normalized into their own table. Any callable with the same signature as
`normalize` can be handed to the operation builders instead.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from entity_store.errors import InvalidInputError
from entity_store.schema import ResolvedSchema


@dataclass(frozen=True)
class ArrayOf:
    """Marks a document as a list of records of `schema`."""

    schema: ResolvedSchema


def array_of(schema: ResolvedSchema) -> ArrayOf:
    return ArrayOf(schema)


NormalizeTarget = Union[ResolvedSchema, ArrayOf]
NormalizedData = dict[str, Any]
Normalizer = Callable[[Any, NormalizeTarget], NormalizedData]


def normalize(document: Any, schema: NormalizeTarget) -> NormalizedData:
    """Normalize `document` against a resolved schema or array_of(schema)."""
    entities: dict[str, dict[Any, dict[str, Any]]] = {}

    if isinstance(schema, ArrayOf):
        if not isinstance(document, (list, tuple)):
            raise InvalidInputError(f"expected a list of '{schema.schema.name}' records, got {type(document).__name__}")
        result: Any = [_visit(item, schema.schema, entities) for item in document]
    elif isinstance(schema, ResolvedSchema):
        if not isinstance(document, Mapping):
            raise InvalidInputError(f"expected a '{schema.name}' record, got {type(document).__name__}")
        result = _visit(document, schema, entities)
    else:
        raise InvalidInputError(f"cannot normalize against {schema!r}")

    return {"result": result, "entities": entities}


def _visit(value: Any, schema: ResolvedSchema, entities: dict[str, dict[Any, dict[str, Any]]]) -> Any:
    """Store one record (and its nested records); return its id."""
    if not isinstance(value, Mapping):
        # Already a reference
        return value

    entity_id = schema.get_id(value)
    if entity_id is None or entity_id == "":
        raise InvalidInputError(f"nested '{schema.name}' record has no '{schema.id_attribute}'")
    if not isinstance(entity_id, Hashable):
        raise InvalidInputError(f"'{schema.name}' record has an unhashable id {entity_id!r}")

    record: dict[str, Any] = {}
    for attr, attr_value in value.items():
        if attr in schema.computed:
            continue
        target = schema.references.get(attr)
        if target is None or attr_value is None:
            record[attr] = attr_value
        elif schema.is_many(attr) and isinstance(attr_value, (list, tuple)):
            record[attr] = [_visit(item, target, entities) for item in attr_value]
        else:
            record[attr] = _visit(attr_value, target, entities)

    table = entities.setdefault(schema.name, {})
    existing = table.get(entity_id)
    table[entity_id] = {**existing, **record} if existing is not None else record
    return entity_id
