"""
Entity Store — Schemas and Relation Resolver

Schema declarations are plain values (SchemaDescriptor). The resolver turns a
set of them into a ResolvedSchemaSet: one ResolvedSchema per type, each knowing
its references and the reciprocal attribute on the other side of each one.

Resolution is two-phase so that self and mutual references work:
  1. allocate an empty ResolvedSchema for every name
  2. bind references to those placeholders, then compute relations
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from entity_store.config import RECIPROCAL_POLICIES, settings
from entity_store.errors import InvalidSchemaError, InvalidSchemasError
from entity_store.types import (
    AttributeSpec,
    Computed,
    Plain,
    RefMany,
    RefOne,
    Relation,
    is_reference,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


class SchemaOptions(BaseModel):
    """Per-type options accepted by define_schema."""

    model_config = {"extra": "forbid", "frozen": True}

    id_attribute: str = Field(default_factory=lambda: settings.ENTITY_STORE_ID_ATTRIBUTE, min_length=1)
    defaults: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class SchemaDescriptor:
    """An entity type declaration, before resolution."""

    name: str
    attributes: dict[str, AttributeSpec] = field(default_factory=dict)
    options: SchemaOptions = field(default_factory=SchemaOptions)


def define_schema(
    name: str,
    attributes: Mapping[str, Any] | None = None,
    options: Mapping[str, Any] | SchemaOptions | None = None,
) -> SchemaDescriptor:
    """
    Declare an entity type.

    Attribute values may be given as specs or as shorthands:
      "user"               → RefOne("user")
      has_many("comment")  → RefMany("comment")
      lambda record: ...   → Computed(fn)
      None                 → Plain()
    """
    if not isinstance(name, str) or not name:
        raise InvalidSchemaError(f"[INVALID NAME] schema name must be a non-empty string, got {name!r}")

    if attributes is None:
        attributes = {}
    if not isinstance(attributes, Mapping):
        raise InvalidSchemaError(f"[INVALID CONFIG] attributes of '{name}' must be a mapping")

    specs: dict[str, AttributeSpec] = {}
    for attr, value in attributes.items():
        if not isinstance(attr, str) or not attr:
            raise InvalidSchemaError(f"[INVALID CONFIG] '{name}' has an attribute with invalid name {attr!r}")
        specs[attr] = _coerce_attribute(name, attr, value)

    return SchemaDescriptor(name=name, attributes=specs, options=_coerce_options(name, options))


def has_many(target: str | SchemaDescriptor, foreign: str | None = None) -> RefMany:
    """Declare a many reference to `target` (a type name or descriptor)."""
    return RefMany(target=_target_name(target), foreign=foreign)


def belongs_to(target: str | SchemaDescriptor, foreign: str | None = None) -> RefOne:
    """Declare a single reference; use it to name the reciprocal explicitly."""
    return RefOne(target=_target_name(target), foreign=foreign)


def _target_name(target: Any) -> str:
    if isinstance(target, SchemaDescriptor):
        return target.name
    if isinstance(target, str) and target:
        return target
    raise InvalidSchemaError(f"[INVALID SCHEMA] cannot reference {target!r}")


def _coerce_attribute(schema_name: str, attr: str, value: Any) -> AttributeSpec:
    if isinstance(value, (Plain, Computed, RefOne, RefMany)):
        return value
    if value is None:
        return Plain()
    if isinstance(value, (str, SchemaDescriptor)):
        return RefOne(target=_target_name(value))
    if callable(value):
        return Computed(fn=value)
    raise InvalidSchemaError(
        f"[INVALID CONFIG] '{schema_name}.{attr}' must be a type name, has_many(...), "
        f"a callable, or None; got {type(value).__name__}"
    )


def _coerce_options(schema_name: str, options: Any) -> SchemaOptions:
    if options is None:
        return SchemaOptions()
    if isinstance(options, SchemaOptions):
        return options
    if not isinstance(options, Mapping):
        raise InvalidSchemaError(f"[INVALID CONFIG] options of '{schema_name}' must be a mapping")
    try:
        return SchemaOptions.model_validate(dict(options))
    except ValidationError as e:
        raise InvalidSchemaError(f"[INVALID CONFIG] options of '{schema_name}': {e}") from e


# ---------------------------------------------------------------------------
# Resolved schemas
# ---------------------------------------------------------------------------


class ResolvedSchema:
    """
    A schema after resolution. Allocated empty, then defined once.

    `references` maps each reference attribute to the target ResolvedSchema.
    `relations()` returns the cached Relation list in declaration order.
    """

    def __init__(self, name: str, schema_set: ResolvedSchemaSet) -> None:
        self._name = name
        self._schema_set = schema_set
        self._attributes: Mapping[str, AttributeSpec] = MappingProxyType({})
        self._options = SchemaOptions()
        self._references: Mapping[str, ResolvedSchema] = MappingProxyType({})
        self._many: frozenset[str] = frozenset()
        self._computed: Mapping[str, Callable[[dict[str, Any]], Any]] = MappingProxyType({})
        self._relations: tuple[Relation, ...] = ()

    # -- identity ----------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def key(self) -> str:
        return self._name

    @property
    def schema_set(self) -> ResolvedSchemaSet:
        return self._schema_set

    # -- definition --------------------------------------------------------

    @property
    def attributes(self) -> Mapping[str, AttributeSpec]:
        return self._attributes

    @property
    def options(self) -> SchemaOptions:
        return self._options

    @property
    def id_attribute(self) -> str:
        return self._options.id_attribute

    @property
    def references(self) -> Mapping[str, ResolvedSchema]:
        return self._references

    @property
    def computed(self) -> Mapping[str, Callable[[dict[str, Any]], Any]]:
        return self._computed

    def is_many(self, attr: str) -> bool:
        return attr in self._many

    def relations(self) -> list[Relation]:
        return list(self._relations)

    def defaults(self) -> dict[str, Any]:
        """Fresh default values; callables are invoked, other values copied."""
        return {
            attr: value() if callable(value) else copy.deepcopy(value)
            for attr, value in self._options.defaults.items()
        }

    def get_id(self, record: Mapping[str, Any]) -> Any:
        return record.get(self.id_attribute)

    def _define(
        self,
        descriptor: SchemaDescriptor,
        references: dict[str, ResolvedSchema],
        many: set[str],
        computed: dict[str, Callable[[dict[str, Any]], Any]],
    ) -> None:
        self._attributes = MappingProxyType(dict(descriptor.attributes))
        self._options = descriptor.options
        self._references = MappingProxyType(references)
        self._many = frozenset(many)
        self._computed = MappingProxyType(computed)

    def __repr__(self) -> str:
        return f"ResolvedSchema({self._name!r})"


class ResolvedSchemaSet(Mapping):
    """Immutable name → ResolvedSchema mapping produced by resolve()."""

    def __init__(self) -> None:
        self._schemas: dict[str, ResolvedSchema] = {}

    def __getitem__(self, name: str) -> ResolvedSchema:
        return self._schemas[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._schemas)

    def __len__(self) -> int:
        return len(self._schemas)

    def __repr__(self) -> str:
        return f"ResolvedSchemaSet({list(self._schemas)!r})"


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


def resolve(
    descriptors: list[SchemaDescriptor] | tuple[SchemaDescriptor, ...],
    *,
    reciprocal_policy: str | None = None,
) -> ResolvedSchemaSet:
    """
    Resolve a set of schema declarations into a ResolvedSchemaSet.

    Raises InvalidSchemasError if `descriptors` is None, empty, or not a list;
    InvalidSchemaError if a descriptor is unnamed, duplicated, references an
    unknown type, or names a reciprocal that does not point back.
    """
    if not isinstance(descriptors, (list, tuple)) or not descriptors:
        raise InvalidSchemasError(f"[INVALID SCHEMAS] expected a non-empty list of schemas, got {descriptors!r}")

    policy = reciprocal_policy or settings.ENTITY_STORE_RECIPROCAL_POLICY
    if policy not in RECIPROCAL_POLICIES:
        raise InvalidSchemaError(f"[INVALID CONFIG] unknown reciprocal policy {policy!r}")

    # 1. Placeholders for every name
    schema_set = ResolvedSchemaSet()
    bag = schema_set._schemas
    for descriptor in descriptors:
        name = getattr(descriptor, "name", None)
        if not isinstance(descriptor, SchemaDescriptor) or not isinstance(name, str) or not name:
            raise InvalidSchemaError(f"[INVALID NAME] schema without a name: {descriptor!r}")
        if name in bag:
            raise InvalidSchemaError(f"[INVALID SCHEMAS] duplicate schema name '{name}'")
        bag[name] = ResolvedSchema(name, schema_set)

    # 2–3. Bind references to placeholders and define each schema
    for descriptor in descriptors:
        references: dict[str, ResolvedSchema] = {}
        many: set[str] = set()
        computed: dict[str, Callable[[dict[str, Any]], Any]] = {}
        for attr, spec in descriptor.attributes.items():
            if isinstance(spec, Computed):
                computed[attr] = spec.fn
            elif is_reference(spec):
                target = bag.get(spec.target)
                if target is None:
                    raise InvalidSchemaError(
                        f"[INVALID SCHEMA] '{descriptor.name}.{attr}' references unknown schema '{spec.target}'"
                    )
                references[attr] = target
                if isinstance(spec, RefMany):
                    many.add(attr)
        bag[descriptor.name]._define(descriptor, references, many, computed)

    # 4. Relations, eagerly cached
    for schema in bag.values():
        schema._relations = tuple(
            Relation(
                to=target.name,
                through=attr,
                foreign=_find_reciprocal(schema, attr, target, policy),
                is_many=schema.is_many(attr),
            )
            for attr, target in schema.references.items()
        )

    logger.debug("resolved %d schemas: %s", len(bag), ", ".join(bag))
    return schema_set


generate_schemas = resolve


def _find_reciprocal(source: ResolvedSchema, attr: str, target: ResolvedSchema, policy: str) -> str | None:
    """
    Find the attribute on `target` that references `source` back.

    Matching is structural: a target attribute qualifies when its reference
    resolves to the very `source` schema object.
    """
    spec = source.attributes[attr]
    if spec.foreign is not None:
        if target.references.get(spec.foreign) is not source:
            raise InvalidSchemaError(
                f"[INVALID SCHEMA] '{source.name}.{attr}' names reciprocal '{target.name}.{spec.foreign}', "
                f"which does not reference '{source.name}'"
            )
        return spec.foreign

    candidates = [
        name
        for name, ref in target.references.items()
        if ref is source and not (target is source and name == attr)
    ]

    # An attribute that names us as its reciprocal is the pair
    for name in candidates:
        if target.attributes[name].foreign == attr:
            return name

    # Attributes explicitly paired with another attribute are taken
    candidates = [name for name in candidates if target.attributes[name].foreign is None]

    if not candidates:
        # A lone self reference is its own reciprocal (e.g. friends ↔ friends)
        return attr if target is source else None

    if len(candidates) > 1:
        message = (
            f"'{source.name}.{attr}' has ambiguous reciprocal on '{target.name}': {candidates}; "
            f"name it with foreign="
        )
        if policy == "strict":
            raise InvalidSchemaError(f"[AMBIGUOUS RELATION] {message}")
        logger.warning("resolve: %s (using '%s')", message, candidates[0])

    return candidates[0]
