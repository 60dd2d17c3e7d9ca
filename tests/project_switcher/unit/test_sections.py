"""Unit tests for section selection and the view-state builder."""

from dataclasses import dataclass
from typing import Optional

import pytest

from project_switcher.core.groups import create_virtual_project_id
from project_switcher.core.sections import (
    build_view_state,
    get_badge_tone,
    get_initials,
    normalize_section_collapse_state,
    normalize_section_visibility,
    select_recent,
    to_project_view,
)
from project_switcher.models import (
    ProjectGroupSection,
    ResolvedGroupProject,
    SectionCollapseState,
    SectionVisibility,
    StoredProject,
)


@dataclass
class Candidate:
    id: str
    pinned: bool = False
    is_current: bool = False
    last_opened_at: Optional[float] = None


def saved(project_id, name=None, uri=None, pinned=False, last_opened_at=None, badge_color=None):
    return StoredProject(
        id=project_id,
        name=name or project_id,
        kind="folder",
        uri=uri or f"file:///projects/{project_id}",
        pinned=pinned,
        created_at=1,
        updated_at=1,
        last_opened_at=last_opened_at,
        badge_color=badge_color,
    )


def group_section(group_id, *names, collapsed=False):
    children = [
        ResolvedGroupProject(
            id=create_virtual_project_id(group_id, f"file:///{group_id}/{name}"),
            name=name,
            uri=f"file:///{group_id}/{name}",
            source_group_id=group_id,
            source_group_name=group_id,
        )
        for name in names
    ]
    return ProjectGroupSection(
        id=group_id, title=group_id.title(), root_uri=f"file:///{group_id}",
        collapsed=collapsed, projects=children,
    )


class TestSelectRecent:

    def test_ten_candidates(self):
        """Five most recently opened, excluding pinned, current and never opened."""
        candidates = [
            Candidate("a", last_opened_at=100),
            Candidate("b", last_opened_at=900, pinned=True),
            Candidate("c", last_opened_at=800),
            Candidate("d"),
            Candidate("e", last_opened_at=700, is_current=True),
            Candidate("f", last_opened_at=600),
            Candidate("g", last_opened_at=500),
            Candidate("h", last_opened_at=300),
            Candidate("i", last_opened_at=400),
            Candidate("j", last_opened_at=200),
        ]

        assert [c.id for c in select_recent(candidates, 5)] == ["c", "f", "g", "i", "h"]

    def test_ties_keep_input_order(self):
        candidates = [Candidate("x", last_opened_at=5), Candidate("y", last_opened_at=5)]
        assert [c.id for c in select_recent(candidates, 5)] == ["x", "y"]

    @pytest.mark.parametrize("limit", [0, -1, None, "5", float("nan"), True])
    def test_invalid_limit_is_empty(self, limit):
        assert select_recent([Candidate("a", last_opened_at=1)], limit) == []

    def test_limit_caps_result(self):
        candidates = [Candidate(str(i), last_opened_at=i) for i in range(10)]
        assert [c.id for c in select_recent(candidates, 3)] == ["9", "8", "7"]


class TestBadges:

    @pytest.mark.parametrize("name,expected", [
        ("web", "WE"),
        ("my-project", "MP"),
        ("my_cool project", "MC"),
        ("  x  ", "X"),
        ("---", "PR"),
        ("", "PR"),
    ])
    def test_initials(self, name, expected):
        assert get_initials(name) == expected

    def test_badge_tone_is_stable_and_bounded(self):
        tones = {get_badge_tone(f"project-{i}") for i in range(50)}
        assert all(0 <= tone < 10 for tone in tones)
        assert get_badge_tone("abc") == get_badge_tone("abc")

    def test_badge_tone_known_values(self):
        # 32-bit string hash: "a" -> 97, "ab" -> 3105
        assert get_badge_tone("") == 0
        assert get_badge_tone("a") == 7
        assert get_badge_tone("ab") == 5


class TestSectionNormalization:

    def test_visibility_merge(self):
        visibility = normalize_section_visibility({"groups": False, "recent": "off"})
        assert visibility == SectionVisibility(groups=False)

    def test_collapse_merge(self):
        collapse = normalize_section_collapse_state({"openElsewhere": True, "pinned": 1})
        assert collapse == SectionCollapseState(open_elsewhere=True)


class TestToProjectView:

    def test_saved_project_annotations(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/user")
        project = saved("p1", name="my-app", uri="file:///home/user/code/my-app", pinned=True, badge_color="#112233")

        view = to_project_view(project)

        assert view.full_path == "/home/user/code/my-app"
        assert view.display_path == "~/code/my-app"
        assert view.initials == "MA"
        assert view.pinned is True
        assert view.is_virtual is False
        assert view.badge_color == "#112233"

    def test_current_badge_color_overrides(self):
        project = saved("p1", uri="file:///a", badge_color="#112233")

        current = to_project_view(project, current_uri="file:///a", current_badge_color="#aabbcc")
        other = to_project_view(project, current_uri="file:///b", current_badge_color="#aabbcc")

        assert current.is_current and current.badge_color == "#aabbcc"
        assert other.badge_color == "#112233"

    def test_remote_location_shown_verbatim(self):
        view = to_project_view(saved("p1", uri="vscode-remote://ssh-remote+box/code"))
        assert view.display_path == "vscode-remote://ssh-remote+box/code"


class TestBuildViewState:

    def test_each_project_in_one_section(self):
        projects = [
            saved("current", uri="file:///current", last_opened_at=50),
            saved("elsewhere", uri="file:///elsewhere", last_opened_at=40),
            saved("pinned", pinned=True, last_opened_at=60),
            saved("recent", last_opened_at=30),
            saved("never"),
        ]

        view = build_view_state(
            projects,
            [group_section("code", "web", "api")],
            current_uri="file:///current",
            open_elsewhere_uris={"file:///elsewhere", "file:///code/api"},
        )

        assert view.current.id == "current"
        assert [p.id for p in view.open_elsewhere] == ["elsewhere"] + [
            create_virtual_project_id("code", "file:///code/api")
        ]
        assert all(p.is_open_elsewhere for p in view.open_elsewhere)
        assert [p.id for p in view.recent] == ["recent"]
        assert [p.id for p in view.pinned] == ["pinned"]
        assert [p.id for p in view.others] == ["never"]
        assert [p.name for p in view.groups[0].projects] == ["web"]
        assert view.project_count() == 7

    def test_current_can_be_virtual(self):
        view = build_view_state([], [group_section("code", "web")], current_uri="file:///code/web")

        assert view.current.is_virtual is True
        assert view.groups[0].projects == []

    def test_recent_limit(self):
        projects = [saved(f"p{i}", last_opened_at=i) for i in range(1, 8)]

        view = build_view_state(projects, [], recent_limit=2)

        assert [p.id for p in view.recent] == ["p7", "p6"]
        assert len(view.others) == 5

    def test_hidden_sections_are_empty(self):
        projects = [saved("pinned", pinned=True), saved("other"), saved("current", uri="file:///c")]
        visibility = SectionVisibility(pinned=False, groups=False, current=False)

        view = build_view_state(
            projects, [group_section("code", "web")], current_uri="file:///c", visibility=visibility,
        )

        assert view.current is None
        assert view.pinned == []
        assert view.groups == []
        assert [p.id for p in view.others] == ["other"]

    def test_collapse_passed_through(self):
        collapse = SectionCollapseState(recent=True)
        assert build_view_state([], [], collapse=collapse).collapse.recent is True

    def test_search_filters_all_sections(self):
        projects = [saved("api-server", pinned=True), saved("website"), saved("tools", last_opened_at=5)]

        view = build_view_state(
            projects,
            [group_section("code", "web", "api"), group_section("misc", "notes", collapsed=True)],
            query="  API ",
        )

        assert view.query == "API"
        assert [p.id for p in view.pinned] == ["api-server"]
        assert view.others == []
        assert view.recent == []
        assert len(view.groups) == 1
        assert view.groups[0].collapsed is False
        assert [p.name for p in view.groups[0].projects] == ["api"]

    def test_search_expands_collapsed_groups_with_matches(self):
        section = group_section("code", "web")
        section = section.model_copy(update={"collapsed": True})

        view = build_view_state([], [section], query="web")

        assert view.groups[0].collapsed is False
        assert [p.name for p in view.groups[0].projects] == ["web"]

    def test_search_matches_kind_and_path(self):
        projects = [saved("alpha", uri="file:///srv/deep/path")]

        assert build_view_state(projects, [], query="deep").others
        assert build_view_state(projects, [], query="FOLDER").others
        assert not build_view_state(projects, [], query="zzz").others
