import pytest

from proc_narrative.reporting.session import ReportSession, versions_compatible


@pytest.fixture
def session(library, settings):
    return ReportSession(library, settings=settings)


class TestSelection:
    def test_select_finding_resets_values_and_assigns_codes(self, session):
        session.select_finding("polyp")
        session.update_finding_values({"number": 1})
        session.select_finding("mass")
        assert session.active_finding.id == "mass"
        assert session.finding_values == {}
        assert [a.source for a in session.code_assignments] == ["mass"]

    def test_select_action_pairs_codes_with_finding(self, session):
        session.select_finding("polyp")
        session.select_action("polypectomy")
        assert [a.primary for a in session.code_assignments] == ["68496003", "65801008"]
        assert session.code_errors == []
        assert session.assigned_codes().primary == "68496003"

    def test_select_action_without_finding_has_no_codes(self, session):
        session.select_action("dilatation")
        assert session.active_action.id == "dilatation"
        assert session.code_assignments == []

    def test_clear_selection(self, session):
        session.select_finding("polyp")
        session.select_finding(None)
        assert session.active_finding is None
        assert session.code_assignments == []

    def test_wrong_template_type(self, session):
        with pytest.raises(TypeError):
            session.select_finding("biopsy")


class TestValues:
    def test_update_validates(self, session):
        session.select_finding("polyp")
        session.update_finding_values({"number": 0})
        assert session.errors["number"] == "Must be at least 1"
        assert session.finding_values == {"number": 0}

    def test_update_without_selection_is_ignored(self, session):
        session.update_action_values({"technique": "hot snare"})
        assert session.action_values == {}

    def test_generate_text_joins_finding_and_action(self, session):
        session.select_finding("mass")
        session.update_finding_values({"appearance": "ulcerated", "location": ["antrum"], "size": 25})
        session.select_action("biopsy")
        session.update_action_values({"samples": 2, "method": "forceps", "adequate": True})
        finding_text, action_text = session.generate_text().split("\n")
        assert finding_text == "An ulcerated mass was found in gastric antrum, measuring 25mm in size "
        assert action_text == "2 biopsy samples obtained using forceps  Adequate sampling achieved "


class TestActions:
    def test_standalone_actions_without_finding(self, session):
        assert [a.id for a in session.available_actions()] == ["dilatation"]

    def test_actions_for_polyp(self, session):
        session.select_finding("polyp")
        assert [a.id for a in session.available_actions()] == ["biopsy", "polypectomy"]

    def test_actions_for_mass(self, session):
        session.select_finding("mass")
        assert [a.id for a in session.available_actions()] == ["biopsy"]

    def test_suggested_next_actions_follow_conditions(self, session):
        session.select_action("dilatation")
        session.update_action_values({"complications": ["mucosal disruption"]})
        assert [a.id for a in session.suggested_next_actions()] == ["biopsy"]
        session.update_action_values({"complications": ["pain"]})
        assert session.suggested_next_actions() == []

    def test_missing_next_action_templates_are_skipped(self, session):
        session.select_finding("polyp")
        session.select_action("polypectomy")
        session.update_action_values({"technique": "cold snare", "complete": True})
        assert session.suggested_next_actions() == []


def test_version_compatibility(session):
    assert versions_compatible("1.2.0", "1.0.5") is True
    assert versions_compatible("2.0.0", "1.0.0") is False
    session.select_finding("polyp")
    session.select_action("biopsy")
    assert session.templates_compatible() is True
    assert session.active_template_version() == "1.0.0"
