import pytest
import yaml

from proc_narrative.common.exceptions import TemplateLibraryError
from proc_narrative.reporting.shared_pool import SharedTemplatePool
from proc_narrative.reporting.template_library import (
    TemplateLibrary,
    load_template_file,
    load_template_library,
)
from proc_schemas.templates import ActionTemplate, FindingTemplate, SharedTemplate


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def _finding(template_id="polyp", **extra):
    return {
        "id": template_id,
        "name": "Polyp Finding",
        "version": "1.0.0",
        "codes": {"snomed": ["68496003"]},
        "template": "{number} polyps",
        **extra,
    }


class TestShippedLibrary:
    def test_indexes_by_type(self, library):
        assert len(library) == 11
        assert sorted(library.by_type["finding"]) == ["mass", "polyp"]
        assert sorted(library.by_type["action"]) == ["biopsy", "dilatation", "polypectomy"]
        assert len(library.by_type["shared"]) == 6

    def test_lookup(self, library):
        assert isinstance(library.get("polyp"), FindingTemplate)
        assert isinstance(library.get("biopsy"), ActionTemplate)
        assert "sizes" in library
        assert library.maybe_get("missing") is None
        with pytest.raises(KeyError):
            library.get("missing")

    def test_code_and_keyword_indexes(self, library):
        assert [t.id for t in library.find_by_code("68496003")] == ["polyp"]
        assert {t.id for t in library.find_by_keyword("Polyp")} == {"polyp", "polypectomy"}

    def test_category_index(self, library):
        assert [t.id for t in library.list_by_category("size")] == ["sizes"]
        assert [t.id for t in library.list_by_category("dilatorSize")] == ["dilatorSizes"]

    def test_relationships(self, library):
        polyp = library.relationships_for("polyp")
        assert {(r.child, r.relationship) for r in polyp} == {("polypectomy", "allows"), ("biopsy", "allows")}
        polypectomy = library.relationships_for("polypectomy")
        assert [(r.child, r.relationship) for r in polypectomy] == [("retrieval", "suggests")]
        assert library.relationships_for("locations") == []

    def test_shared_pool_by_category_and_id(self, library):
        pool = library.shared_pool()
        assert isinstance(pool, SharedTemplatePool)
        assert pool.for_category("location").id == "locations"
        assert pool.for_id("locations").category == "location"
        assert pool.has_category("paris")

    def test_camel_case_fields_parse(self, library):
        sizes = library.get("sizes")
        polyp = library.get("polyp")
        assert isinstance(sizes, SharedTemplate)
        assert sizes.variable_defaults() == {"unit": "mm"}
        assert polyp.variables["size"].use_shared.allow_direct is True
        assert library.get("polypectomy").auto_suggest is True


class TestLoading:
    def test_type_defaults_from_directory(self, tmp_path):
        path = _write(tmp_path / "findings" / "polyp.yaml", _finding())
        assert load_template_file(path, "finding").type == "finding"

    def test_type_mismatch(self, tmp_path):
        path = _write(tmp_path / "actions" / "polyp.yaml", _finding(type="finding"))
        with pytest.raises(TemplateLibraryError):
            load_template_file(path, "action")

    def test_invalid_document(self, tmp_path):
        path = _write(tmp_path / "findings" / "bad.yaml", _finding(version="one"))
        with pytest.raises(TemplateLibraryError):
            load_template_file(path, "finding")

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "findings" / "broken.json"
        path.parent.mkdir()
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(TemplateLibraryError):
            load_template_file(path, "finding")

    def test_duplicate_ids(self, tmp_path):
        _write(tmp_path / "findings" / "a.yaml", _finding())
        _write(tmp_path / "findings" / "b.yaml", _finding())
        with pytest.raises(TemplateLibraryError):
            load_template_library(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(TemplateLibraryError):
            load_template_library(tmp_path / "nowhere")

    def test_non_template_files_are_skipped(self, tmp_path):
        _write(tmp_path / "findings" / "polyp.yaml", _finding())
        (tmp_path / "findings" / "README.md").write_text("notes", encoding="utf-8")
        assert load_template_library(tmp_path).list_ids() == ["polyp"]


def test_shared_category_defined_twice(make_shared):
    with pytest.raises(TemplateLibraryError):
        TemplateLibrary(
            [
                SharedTemplate.model_validate(make_shared("a", category="size")),
                SharedTemplate.model_validate(make_shared("b", category="size")),
            ]
        )


def test_pool_from_mapping_indexes_key_and_category(make_shared):
    pool = SharedTemplatePool.coerce({"where": make_shared("locations", category="location")})
    assert pool.for_category("where").id == "locations"
    assert pool.for_category("location").id == "locations"
    assert pool.for_id("locations") is not None
    assert len(pool) == 1
