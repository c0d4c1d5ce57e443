"""
Entity store test configuration.

Shared schema sets: a small blog (user, post, comment, tag) and a
self-referencing employee hierarchy.
"""

import pytest

from entity_store import define_schema, has_many, resolve


@pytest.fixture
def blog():
    return resolve([
        define_schema("user", {
            "name": None,
            "posts": has_many("post"),
            "display_name": lambda record: (record.get("name") or "").upper(),
        }, {"defaults": {"name": "", "posts": list, "role": "reader"}}),
        define_schema("post", {
            "title": None,
            "author": "user",
            "comments": has_many("comment"),
            "tags": has_many("tag"),
        }, {"defaults": {"title": "Untitled", "comments": list, "tags": list}}),
        define_schema("comment", {
            "body": None,
            "post": "post",
        }),
        define_schema("tag", {
            "label": None,
        }),
    ])


@pytest.fixture
def employees():
    return resolve([
        define_schema("employee", {
            "name": None,
            "manager": "employee",
            "reports": has_many("employee"),
        }),
    ])


@pytest.fixture
def sequential_ids():
    counter = iter(range(1, 1000))
    return lambda: f"gen_{next(counter)}"
