"""Unit tests for badge color normalization."""

import pytest

from project_switcher.core.badge_color import (
    normalize_badge_color,
    resolve_workspace_badge_color,
)


class TestNormalizeBadgeColor:
    """Canonical #rrggbb form or None."""

    @pytest.mark.parametrize("value,expected", [
        ("#abc", "#aabbcc"),
        ("#ABCD", "#aabbcc"),
        ("#1E90FF", "#1e90ff"),
        ("#1e90ff80", "#1e90ff"),
        ("  #fff  ", "#ffffff"),
    ])
    def test_valid_colors(self, value, expected):
        assert normalize_badge_color(value) == expected

    @pytest.mark.parametrize("value", [
        "", "abc", "#ab", "#abcde", "#abcdefg", "#ggg", "red", "rgb(0,0,0)", "#1e90ff8",
    ])
    def test_invalid_strings(self, value):
        assert normalize_badge_color(value) is None

    @pytest.mark.parametrize("value", [None, 0, 0xFFFFFF, True, ["#fff"], {"color": "#fff"}])
    def test_non_strings(self, value):
        assert normalize_badge_color(value) is None

    @pytest.mark.parametrize("value", ["#abc", "#ABCD", "#A1B2C3", "#a1b2c3d4"])
    def test_idempotent(self, value):
        once = normalize_badge_color(value)
        assert normalize_badge_color(once) == once
        assert once == once.lower()
        assert len(once) == 7


class TestResolveWorkspaceBadgeColor:
    """Window accent color resolution."""

    def test_explicit_accent_wins(self):
        customizations = {"activityBar.activeBackground": "#000000"}
        assert resolve_workspace_badge_color("#F00", customizations) == "#ff0000"

    def test_falls_back_to_activity_bar(self):
        customizations = {"activityBar.activeBackground": "#00FF00"}
        assert resolve_workspace_badge_color(None, customizations) == "#00ff00"

    def test_invalid_accent_falls_back(self):
        customizations = {"activityBar.activeBackground": "#0000ff"}
        assert resolve_workspace_badge_color("blue", customizations) == "#0000ff"

    def test_nothing_usable(self):
        assert resolve_workspace_badge_color(None, None) is None
        assert resolve_workspace_badge_color(None, ["#fff"]) is None
        assert resolve_workspace_badge_color(None, {"statusBar.background": "#fff"}) is None
