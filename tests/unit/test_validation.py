import pytest

from proc_narrative.reporting.validation import (
    INVALID_FORMAT,
    INVALID_OPTION,
    INVALID_OPTIONS,
    INVALID_SHARED_TEMPLATE,
    MULTIPLE_NOT_ALLOWED,
    NOT_A_BOOLEAN,
    NOT_A_NUMBER,
    NOT_TEXT,
    REQUIRED,
    validate,
)


class TestScalarFields:
    def test_boolean(self, settings):
        result = validate({"isActive": {"type": "boolean", "required": True}}, {"isActive": "not-a-boolean"}, settings=settings)
        assert result.is_valid is False
        assert result.errors["isActive"] == NOT_A_BOOLEAN == "Must be true or false"

    def test_text_pattern(self, settings):
        variables = {"code": {"type": "text", "required": True, "validation": {"pattern": r"^[A-Z]{2}\d{3}$"}}}
        assert validate(variables, {"code": "invalid"}, settings=settings).errors == {"code": INVALID_FORMAT}
        assert validate(variables, {"code": "AB123"}, settings=settings).is_valid is True

    def test_broken_pattern_reports_invalid_format(self, settings):
        variables = {"code": {"type": "text", "validation": {"pattern": "("}}}
        assert validate(variables, {"code": "x"}, settings=settings).errors == {"code": INVALID_FORMAT}

    def test_text_must_be_string(self, settings):
        assert validate({"note": {"type": "text"}}, {"note": 12}, settings=settings).errors == {"note": NOT_TEXT}

    @pytest.mark.parametrize(
        ("value", "error"),
        [
            ("abc", NOT_A_NUMBER),
            (True, NOT_A_NUMBER),
            (0, "Must be at least 1"),
            (101, "Must be at most 100"),
            ("50", None),
            (1, None),
        ],
    )
    def test_number_bounds(self, settings, value, error):
        variables = {"number": {"type": "number", "validation": {"min": 1, "max": 100}}}
        result = validate(variables, {"number": value}, settings=settings)
        assert result.errors.get("number") == error

    def test_required_and_empty_values(self, settings):
        variables = {
            "name": {"type": "text", "required": True},
            "tags": {"type": "enum", "required": True, "allow_multiple": True, "options": ["a"]},
            "note": {"type": "text"},
        }
        result = validate(variables, {"name": "", "tags": []}, settings=settings)
        assert result.errors == {"name": REQUIRED, "tags": REQUIRED}

    def test_optional_empty_fields_are_skipped(self, settings):
        variables = {"size": {"type": "number", "validation": {"min": 1}}}
        assert validate(variables, {"size": None}, settings=settings).is_valid is True


class TestEnumFields:
    def test_option_membership(self, settings):
        variables = {"method": {"type": "enum", "options": ["forceps", "needle"]}}
        assert validate(variables, {"method": "forceps"}, settings=settings).is_valid is True
        assert validate(variables, {"method": "laser"}, settings=settings).errors == {"method": INVALID_OPTION}

    def test_multiple_values(self, settings):
        single = {"method": {"type": "enum", "options": ["forceps", "needle"]}}
        multi = {"method": {"type": "enum", "allow_multiple": True, "options": ["forceps", "needle"]}}
        assert validate(single, {"method": ["forceps"]}, settings=settings).errors == {"method": MULTIPLE_NOT_ALLOWED}
        assert validate(multi, {"method": ["forceps", "needle"]}, settings=settings).is_valid is True
        assert validate(multi, {"method": ["forceps", "laser"]}, settings=settings).errors == {"method": INVALID_OPTIONS}

    def test_template_reference_must_be_listed(self, settings):
        variables = {"location": {"type": "enum", "options": ["{location}"]}}
        assert validate(variables, {"location": "{location}"}, settings=settings).is_valid is True
        assert validate(variables, {"location": "{elsewhere}"}, settings=settings).errors == {"location": INVALID_OPTION}


class TestSharedFields:
    def test_missing_category(self, settings, site_pool):
        variables = {"site": {"type": "enum", "useShared": {"type": "nowhere"}}}
        assert validate(variables, {"site": "loc1"}, site_pool, settings=settings).errors == {"site": INVALID_SHARED_TEMPLATE}

    def test_no_pool(self, settings):
        variables = {"site": {"type": "enum", "useShared": {"type": "location"}}}
        assert validate(variables, {"site": "loc1"}, settings=settings).errors == {"site": INVALID_SHARED_TEMPLATE}

    def test_option_by_id_or_name(self, settings, site_pool):
        variables = {"site": {"type": "enum", "useShared": {"type": "location"}}}
        assert validate(variables, {"site": "loc1"}, site_pool, settings=settings).is_valid is True
        assert validate(variables, {"site": "Mid"}, site_pool, settings=settings).is_valid is True
        assert validate(variables, {"site": "colon"}, site_pool, settings=settings).errors == {"site": INVALID_OPTION}

    def test_shared_lists(self, settings, site_pool):
        multi = {"sites": {"type": "enum", "allow_multiple": True, "useShared": {"type": "location"}}}
        single = {"sites": {"type": "enum", "useShared": {"type": "location"}}}
        assert validate(multi, {"sites": ["loc1", "loc2"]}, site_pool, settings=settings).is_valid is True
        assert validate(multi, {"sites": ["loc1", "colon"]}, site_pool, settings=settings).errors == {"sites": INVALID_OPTIONS}
        assert validate(single, {"sites": ["loc1"]}, site_pool, settings=settings).errors == {"sites": MULTIPLE_NOT_ALLOWED}

    def test_direct_numbers(self, library, settings):
        mass = library.get("mass")
        pool = library.shared_pool()
        assert validate(mass.variables, {"size": 20}, pool, settings=settings).errors.get("size") is None
        assert validate(mass.variables, {"size": 500}, pool, settings=settings).errors["size"] == "Must be at most 200"
        assert validate(mass.variables, {"size": [5, "small"]}, pool, settings=settings).errors.get("size") is None
        assert validate(mass.variables, {"size": [5, 900]}, pool, settings=settings).errors["size"] == INVALID_OPTIONS

    def test_direct_number_needs_allow_direct(self, settings, make_shared):
        pool = [make_shared("size")]
        variables = {"size": {"type": "mixed", "useShared": {"type": "size"}}}
        assert validate(variables, {"size": 12}, pool, settings=settings).errors == {"size": INVALID_OPTION}

    def test_option_references(self, settings, location_pool):
        variables = {"location": {"type": "enum", "useShared": {"type": "location"}}}
        assert validate(variables, {"location": "loc1"}, location_pool, settings=settings).is_valid is True

    def test_broken_option_reference(self, settings, make_shared, make_option):
        pool = [
            make_shared(
                "location",
                variables={"position": {"type": "enum", "useShared": {"type": "position"}}},
                options=[make_option("loc1", "x", references={"position": "distal"})],
            ),
            make_shared("position", options=[make_option("proximal", "proximal")]),
        ]
        variables = {"location": {"type": "enum", "useShared": {"type": "location"}}}
        result = validate(variables, {"location": "loc1"}, pool, settings=settings)
        assert result.errors == {"location": "Invalid referenced position value"}


def test_library_templates_accept_complete_values(library, settings):
    pool = library.shared_pool()
    polyp = library.get("polyp")
    values = {
        "number": 2,
        "location": ["asc", "sig"],
        "size": [5, "small"],
        "morphology": "sessile",
        "classification": "0-is",
        "removed": True,
    }
    assert validate(polyp.variables, values, pool, settings=settings).errors == {}

    dilatation = library.get("dilatation")
    values = {
        "dilator": "balloon_boston",
        "size": "balloon_10_12",
        "technique": "wire-guided",
        "successful": True,
        "postDilatationFindings": ["residual stenosis"],
    }
    assert validate(dilatation.variables, values, pool, settings=settings).is_valid is True


def test_all_errors_reported_per_field(library, settings):
    biopsy = library.get("biopsy")
    result = validate(biopsy.variables, {"samples": 0, "method": "laser"}, library.shared_pool(), settings=settings)
    assert result.errors == {
        "method": INVALID_OPTION,
        "samples": "Must be at least 1",
        "adequate": REQUIRED,
    }


def test_int_beyond_float_range_is_not_a_number(settings):
    result = validate({"n": {"type": "number"}}, {"n": 10**400}, settings=settings)
    assert result.errors == {"n": NOT_A_NUMBER}
