"""
Entity Store — normalized, relational, in-memory entity state.

Components:
  schema      — declarations and the relation resolver
  normalize   — nested documents → flat tables keyed by type and id
  operations  — create / update / rename / delete / batch constructors
  reducer     — (state, operation) → state  (pure, deterministic)
  selectors   — reads over a state
  store       — single-writer container with subscriptions
"""

from entity_store.errors import (
    EntityStoreError,
    InvalidInputError,
    InvalidSchemaError,
    InvalidSchemasError,
)
from entity_store.normalize import array_of, normalize
from entity_store.operations import (
    batch,
    create_many,
    create_one,
    delete_one,
    generate_id,
    rename_id,
    update_many,
    update_one,
)
from entity_store.reducer import (
    apply_batch,
    apply_operation,
    create_store_reducer,
    create_type_reducer,
    enable_batching,
)
from entity_store.schema import (
    ResolvedSchema,
    ResolvedSchemaSet,
    belongs_to,
    define_schema,
    generate_schemas,
    has_many,
    resolve,
)
from entity_store.selectors import select_many, select_one, select_related, with_computed
from entity_store.store import EntityStore
from entity_store.types import Operation, Relation

__all__ = [
    "define_schema",
    "has_many",
    "belongs_to",
    "resolve",
    "generate_schemas",
    "ResolvedSchema",
    "ResolvedSchemaSet",
    "Relation",
    "normalize",
    "array_of",
    "Operation",
    "generate_id",
    "create_one",
    "create_many",
    "update_one",
    "update_many",
    "rename_id",
    "delete_one",
    "batch",
    "apply_operation",
    "apply_batch",
    "create_type_reducer",
    "create_store_reducer",
    "enable_batching",
    "select_one",
    "select_many",
    "select_related",
    "with_computed",
    "EntityStore",
    "EntityStoreError",
    "InvalidSchemaError",
    "InvalidSchemasError",
    "InvalidInputError",
]
