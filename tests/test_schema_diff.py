# -*- coding: utf-8 -*-
"""Tests for dictionary (schema) comparison and the file-set difference."""

import json

import pytest

from packdiff.config import PackDiffConfig
from packdiff.exceptions import DataAccessError, InvalidSchemaDocument
from packdiff.models import SchemaDocument
from packdiff.schema_diff import SchemaDiffEngine, diff_file_sets, load_schema_document


def _doc(name, fields):
    return SchemaDocument.model_validate({"name": name, "descriptors": fields})


@pytest.fixture
def engine():
    return SchemaDiffEngine(PackDiffConfig())


class TestDiffDocuments:
    """Field-level classification of two dictionary documents."""

    def test_added_and_removed_fields(self, engine):
        """Renamed field: old one removed, new one added, no type change."""
        old = _doc("dictA", {"age": {"type": "integer"}, "name": {"type": "string"}})
        new = _doc("dictA", {"name": {"type": "string"}, "email": {"type": "string"}})

        result = engine.diff_documents(old, new)

        assert result.removed == ["age"]
        assert result.added == ["email"]
        assert result.type_changed == {}
        assert result.has_changes

    def test_type_change(self, engine):
        """Same field with a different type is a type change only."""
        old = _doc("dictA", {"score": {"type": "integer"}})
        new = _doc("dictA", {"score": {"type": "string"}})

        result = engine.diff_documents(old, new)

        assert result.added == []
        assert result.removed == []
        change = result.type_changed["score"]
        assert (change.from_type, change.to_type) == ("integer", "string")

    def test_unchanged_documents(self, engine):
        """Field order and extra descriptor keys do not matter."""
        old = _doc("dictA", {"a": {"type": "string", "doc": "x"}, "b": {"type": "integer"}})
        new = _doc("dictA", {"b": {"type": "integer"}, "a": {"type": "string", "doc": "y"}})

        result = engine.diff_documents(old, new)

        assert not result.has_changes

    def test_missing_type_compares_as_null(self, engine):
        """A descriptor without a type differs from a typed one."""
        old = _doc("dictA", {"a": {}})
        new = _doc("dictA", {"a": {"type": "string"}})

        change = engine.diff_documents(old, new).type_changed["a"]

        assert change.from_type is None
        assert change.to_type == "string"

    def test_buckets_are_sorted(self, engine):
        """Buckets are emitted in name order regardless of input order."""
        old = _doc("dictA", {"z": {"type": "a"}, "m": {"type": "a"}, "y": {"type": "a"}})
        new = _doc("dictA", {"c": {"type": "a"}, "b": {"type": "a"}, "y": {"type": "b"},
                             "m": {"type": "b"}})

        result = engine.diff_documents(old, new)

        assert result.added == ["b", "c"]
        assert result.removed == ["z"]
        assert list(result.type_changed) == ["m", "y"]

    def test_every_field_in_one_bucket(self, engine):
        """No field appears in more than one bucket."""
        old = _doc("dictA", {"a": {"type": "x"}, "b": {"type": "x"}, "c": {"type": "x"}})
        new = _doc("dictA", {"b": {"type": "y"}, "c": {"type": "x"}, "d": {"type": "x"}})

        result = engine.diff_documents(old, new)
        buckets = result.added + result.removed + list(result.type_changed)

        assert sorted(buckets) == ["a", "b", "d"]

    def test_non_string_type_is_rendered_as_json(self):
        """Structured type declarations compare by their JSON form."""
        doc = _doc("dictA", {"a": {"type": ["string", "null"]}})
        assert doc.descriptors["a"].type == '["string", "null"]'


class TestLoadSchemaDocument:
    """Loading dictionary files from disk."""

    def test_load(self, tmp_path):
        """Document is named after the file stem."""
        path = tmp_path / "dictSpecialty.json"
        path.write_text(json.dumps({"name": {"type": "string", "label": "Name"}}), encoding="utf-8")

        doc = load_schema_document(path)

        assert doc.name == "dictSpecialty"
        assert doc.descriptors["name"].type == "string"

    def test_invalid_json(self, tmp_path):
        """Undecodable dictionary files are fatal."""
        path = tmp_path / "dictA.json"
        path.write_text("{", encoding="utf-8")

        with pytest.raises(InvalidSchemaDocument) as exc_info:
            load_schema_document(path)

        assert exc_info.value.context["path"] == str(path)

    def test_non_object_document(self, tmp_path):
        """A top-level array is not a dictionary document."""
        path = tmp_path / "dictA.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(InvalidSchemaDocument, match="must contain a JSON object"):
            load_schema_document(path)

    def test_non_object_descriptor(self, tmp_path):
        """Every descriptor must itself be an object."""
        path = tmp_path / "dictA.json"
        path.write_text(json.dumps({"a": "string", "b": {"type": "x"}}), encoding="utf-8")

        with pytest.raises(InvalidSchemaDocument) as exc_info:
            load_schema_document(path)

        assert exc_info.value.context["schema_errors"] == ["a: descriptor must be an object"]

    def test_missing_file(self, tmp_path):
        """Unreadable files raise a data access error."""
        with pytest.raises(DataAccessError):
            load_schema_document(tmp_path / "dictMissing.json")


class TestDirectories:
    """Directory-level comparison."""

    def test_file_set_difference(self):
        """Files only in one listing are added or removed."""
        result = diff_file_sets(
            ["1.json", "2.json", "dictA.json"],
            ["1.json", "3.json", "dictA.json"],
        )

        assert result.removed_files == ["2.json"]
        assert result.added_files == ["3.json"]

    def test_diff_directories_pairs_by_name(self, engine, make_package_dir):
        """Only dictionaries present on both sides are compared."""
        old_dir = make_package_dir("old", {
            "dictA.json": {"a": {"type": "string"}},
            "dictGone.json": {"x": {"type": "string"}},
            "1.json": [{"id": 1}],
        })
        new_dir = make_package_dir("new", {
            "dictA.json": {"a": {"type": "integer"}},
            "dictNew.json": {"y": {"type": "string"}},
        })

        results = engine.diff_directories(old_dir, new_dir)

        assert [r.name for r in results] == ["dictA"]
        assert results[0].type_changed["a"].to_type == "integer"

    def test_diff_directory_listings(self, make_package_dir):
        """Listing difference covers every file, not just dictionaries."""
        old_dir = make_package_dir("old", {"1.json": [], "2.json": [], "dictA.json": {}})
        new_dir = make_package_dir("new", {"1.json": [], "3.json": [], "dictA.json": {}})

        result = SchemaDiffEngine.diff_directory_listings(old_dir, new_dir)

        assert result.removed_files == ["2.json"]
        assert result.added_files == ["3.json"]
