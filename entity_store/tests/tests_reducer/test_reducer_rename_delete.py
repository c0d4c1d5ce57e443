"""
Entity Store Reducer — Rename and Delete Tests

rename_id moves a record to a new key; references held elsewhere are not
rewritten. delete_one removes a key without cascading. Both are no-ops
for missing ids.
"""

import pytest

from entity_store import apply_operation, delete_one, rename_id


@pytest.fixture
def state():
    return {
        "post": {
            "tmp_1": {"id": "tmp_1", "title": "Draft", "author": "u1"},
            "p2": {"id": "p2", "title": "Other"},
        },
        "user": {"u1": {"id": "u1", "posts": ["tmp_1", "p2"]}},
    }


class TestRenameId:
    def test_moves_record_to_new_key(self, blog, state):
        next_state = apply_operation(state, rename_id(blog["post"], "tmp_1", "p1"))
        assert "tmp_1" not in next_state["post"]
        assert next_state["post"]["p1"] == {"id": "p1", "title": "Draft", "author": "u1"}
        assert next_state["post"]["p2"] is state["post"]["p2"]

    def test_references_elsewhere_not_rewritten(self, blog, state):
        next_state = apply_operation(state, rename_id(blog["post"], "tmp_1", "p1"))
        assert next_state["user"]["u1"]["posts"] == ["tmp_1", "p2"]
        assert next_state["user"] is state["user"]

    def test_missing_old_id_is_noop(self, blog, state):
        assert apply_operation(state, rename_id(blog["post"], "nope", "p1")) is state

    def test_same_id_is_noop(self, blog, state):
        assert apply_operation(state, rename_id(blog["post"], "p2", "p2")) is state

    def test_custom_id_attribute(self):
        from entity_store import define_schema, resolve

        schemas = resolve([define_schema("tag", {"label": None}, {"id_attribute": "slug"})])
        state = {"tag": {"py": {"slug": "py", "label": "Python"}}}
        next_state = apply_operation(state, rename_id(schemas["tag"], "py", "python"))
        assert next_state["tag"] == {"python": {"slug": "python", "label": "Python"}}


class TestDeleteOne:
    def test_removes_key(self, blog, state):
        next_state = apply_operation(state, delete_one(blog["post"], "p2"))
        assert set(next_state["post"]) == {"tmp_1"}

    def test_no_cascade(self, blog, state):
        next_state = apply_operation(state, delete_one(blog["post"], "p2"))
        assert next_state["user"]["u1"]["posts"] == ["tmp_1", "p2"]

    def test_delete_by_record(self, blog, state):
        next_state = apply_operation(state, delete_one(blog["post"], {"id": "p2", "title": "Other"}))
        assert "p2" not in next_state["post"]

    def test_missing_id_is_noop(self, blog, state):
        assert apply_operation(state, delete_one(blog["post"], "p404")) is state

    def test_missing_slice_is_noop(self, blog):
        state = {}
        assert apply_operation(state, delete_one(blog["tag"], "t1")) is state
