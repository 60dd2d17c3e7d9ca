"""Unit tests for persisted record models and their load-time sanitization."""

import pytest
from pydantic import ValidationError

from project_switcher.models import (
    FALLBACK_PROJECT_NAME,
    OpenWindowSessionRecord,
    ProjectGroup,
    SectionCollapseState,
    SectionVisibility,
    StoredProject,
)


def project_payload(**overrides) -> dict:
    payload = {
        "id": "p1",
        "name": "Alpha",
        "kind": "folder",
        "uri": "file:///tmp/alpha",
        "pinned": False,
        "createdAt": 1,
        "updatedAt": 2,
    }
    payload.update(overrides)
    return payload


class TestStoredProject:
    """StoredProject validation doubles as sanitization."""

    def test_camel_case_round_trip(self):
        project = StoredProject.model_validate(project_payload(lastOpenedAt=3, badgeColor="#ABC"))

        assert project.created_at == 1
        assert project.last_opened_at == 3
        assert project.badge_color == "#aabbcc"
        assert project.to_persisted() == project_payload(lastOpenedAt=3, badgeColor="#aabbcc")

    def test_absent_optionals_are_omitted(self):
        persisted = StoredProject.model_validate(project_payload()).to_persisted()
        assert "lastOpenedAt" not in persisted
        assert "badgeColor" not in persisted

    def test_blank_name_falls_back(self):
        project = StoredProject.model_validate(project_payload(name="   "))
        assert project.name == FALLBACK_PROJECT_NAME

    def test_name_and_uri_trimmed(self):
        project = StoredProject.model_validate(project_payload(name="  Alpha ", uri=" file:///tmp/alpha "))
        assert project.name == "Alpha"
        assert project.uri == "file:///tmp/alpha"

    def test_pinned_coerced(self):
        assert StoredProject.model_validate(project_payload(pinned=1)).pinned is True
        assert StoredProject.model_validate(project_payload(pinned=None)).pinned is False

    @pytest.mark.parametrize("value", ["yesterday", None, True, float("nan")])
    def test_invalid_last_opened_dropped(self, value):
        project = StoredProject.model_validate(project_payload(lastOpenedAt=value))
        assert project.last_opened_at is None

    @pytest.mark.parametrize("overrides", [
        {"id": 5},
        {"name": None},
        {"uri": "  "},
        {"uri": None},
        {"kind": "repository"},
        {"createdAt": "1"},
        {"updatedAt": True},
        {"updatedAt": float("inf")},
    ])
    def test_invalid_records_rejected(self, overrides):
        with pytest.raises(ValidationError):
            StoredProject.model_validate(project_payload(**overrides))


class TestProjectGroup:

    def test_valid_group(self):
        group = ProjectGroup.model_validate({
            "id": "g1", "name": " Code ", "rootUri": "file:///code",
            "collapsed": 0, "createdAt": 1, "updatedAt": 1,
        })
        assert group.name == "Code"
        assert group.collapsed is False
        assert group.to_persisted()["rootUri"] == "file:///code"

    def test_blank_root_rejected(self):
        with pytest.raises(ValidationError):
            ProjectGroup.model_validate({
                "id": "g1", "name": "Code", "rootUri": "", "createdAt": 1, "updatedAt": 1,
            })


class TestOpenWindowSessionRecord:
    """Presence record parsing."""

    def test_full_record(self):
        record = OpenWindowSessionRecord.model_validate({
            "sessionId": "s1",
            "workspaceUri": " file:///tmp/a ",
            "focused": True,
            "updatedAt": 1000,
            "badgeColor": "#F00",
            "branch": " main ",
        })

        assert record.workspace_uri == "file:///tmp/a"
        assert record.badge_color == "#ff0000"
        assert record.branch == "main"

    def test_optional_text_normalized_to_none(self):
        record = OpenWindowSessionRecord.model_validate({
            "sessionId": "s1", "workspaceUri": "   ", "updatedAt": 1, "branch": 7, "badgeColor": "blue",
        })
        assert record.workspace_uri is None
        assert record.branch is None
        assert record.badge_color is None
        assert record.focused is False

    @pytest.mark.parametrize("payload", [
        {"updatedAt": 1},
        {"sessionId": "  ", "updatedAt": 1},
        {"sessionId": 12, "updatedAt": 1},
        {"sessionId": "s1"},
        {"sessionId": "s1", "updatedAt": "1000"},
    ])
    def test_malformed_records_rejected(self, payload):
        with pytest.raises(ValidationError):
            OpenWindowSessionRecord.model_validate(payload)

    def test_staleness_is_strictly_older_than_threshold(self):
        record = OpenWindowSessionRecord(session_id="s1", updated_at=1000)
        assert record.age_ms(1500) == 500
        assert not record.is_stale(1500, 500)
        assert record.is_stale(1501, 500)


class TestSectionFlags:
    """Lenient merge of persisted section flags."""

    def test_defaults(self):
        assert SectionVisibility().to_persisted() == {
            "current": True, "recent": True, "pinned": True, "projects": True, "groups": True,
        }
        assert SectionCollapseState().open_elsewhere is False

    def test_merge_ignores_unknown_and_non_boolean(self):
        visibility = SectionVisibility.from_untrusted({"recent": False, "pinned": "no", "bogus": False})
        assert visibility.recent is False
        assert visibility.pinned is True

    @pytest.mark.parametrize("value", [None, [], "recent", 3])
    def test_non_mapping_gives_defaults(self, value):
        assert SectionVisibility.from_untrusted(value) == SectionVisibility()

    def test_collapse_accepts_camel_case_key(self):
        collapse = SectionCollapseState.from_untrusted({"openElsewhere": True})
        assert collapse.open_elsewhere is True
        assert collapse.to_persisted()["openElsewhere"] is True

    def test_toggled(self):
        collapse = SectionCollapseState().toggled("recent")
        assert collapse.recent is True
        with pytest.raises(KeyError):
            collapse.toggled("sidebar")
