"""
Entity Store — Schema Declaration Tests

Tests for define_schema, has_many, belongs_to.
"""

import pytest

from entity_store import InvalidSchemaError, belongs_to, define_schema, has_many
from entity_store.schema import SchemaOptions
from entity_store.types import Computed, Plain, RefMany, RefOne


class TestDefineSchema:
    def test_shorthands_become_specs(self):
        fn = lambda record: record["a"]  # noqa: E731
        d = define_schema("post", {
            "title": None,
            "author": "user",
            "comments": has_many("comment"),
            "summary": fn,
        })
        assert d.name == "post"
        assert d.attributes["title"] == Plain()
        assert d.attributes["author"] == RefOne("user")
        assert d.attributes["comments"] == RefMany("comment")
        assert d.attributes["summary"] == Computed(fn)

    def test_descriptor_as_reference_target(self):
        user = define_schema("user")
        d = define_schema("post", {"author": user, "editors": has_many(user)})
        assert d.attributes["author"] == RefOne("user")
        assert d.attributes["editors"] == RefMany("user")

    def test_no_attributes_or_options(self):
        d = define_schema("tag")
        assert d.attributes == {}
        assert d.options.id_attribute == "id"
        assert d.options.defaults == {}

    def test_options_are_validated(self):
        d = define_schema("tag", options={"id_attribute": "slug", "defaults": {"label": ""}})
        assert isinstance(d.options, SchemaOptions)
        assert d.options.id_attribute == "slug"
        assert d.options.defaults == {"label": ""}

    @pytest.mark.parametrize("name", ["", None, 42])
    def test_invalid_name(self, name):
        with pytest.raises(InvalidSchemaError, match="INVALID NAME"):
            define_schema(name)

    def test_attributes_must_be_mapping(self):
        with pytest.raises(InvalidSchemaError, match="INVALID CONFIG"):
            define_schema("post", ["title"])

    def test_unsupported_attribute_value(self):
        with pytest.raises(InvalidSchemaError, match="post.title"):
            define_schema("post", {"title": 3})

    def test_unknown_option_rejected(self):
        with pytest.raises(InvalidSchemaError, match="INVALID CONFIG"):
            define_schema("post", options={"idAttribute": "slug"})

    def test_empty_id_attribute_rejected(self):
        with pytest.raises(InvalidSchemaError):
            define_schema("post", options={"id_attribute": ""})

    def test_options_must_be_mapping(self):
        with pytest.raises(InvalidSchemaError):
            define_schema("post", options="slug")


class TestReferenceHelpers:
    def test_has_many_with_foreign(self):
        assert has_many("post", foreign="author") == RefMany("post", "author")

    def test_belongs_to(self):
        assert belongs_to("user", foreign="posts") == RefOne("user", "posts")

    @pytest.mark.parametrize("target", ["", None, {}, 3])
    def test_invalid_target(self, target):
        with pytest.raises(InvalidSchemaError, match="INVALID SCHEMA"):
            has_many(target)
