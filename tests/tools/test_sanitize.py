"""Tests for value sanitization."""

import math
from datetime import datetime, timezone

from deskmind.tools.sanitize import make_serializable, safe_string, sanitize_window_config


class TestSafeString:
    def test_string_passes(self):
        issues = []
        assert safe_string("ok", "fallback", issues) == "ok"
        assert issues == []

    def test_none_uses_fallback(self):
        issues = []
        assert safe_string(None, "fallback", issues) == "fallback"
        assert issues == []

    def test_number_is_coerced(self):
        issues = []
        assert safe_string(42, "fallback", issues, field="title") == "42"
        assert issues == ["title coerced to string from int"]


class TestMakeSerializable:
    def test_primitives_unchanged(self):
        value = {"a": 1, "b": [True, None, "x", 2.5]}
        assert make_serializable(value, []) == value

    def test_circular_reference_becomes_null(self):
        value = {"name": "loop"}
        value["self"] = value
        issues = []

        assert make_serializable(value, issues) == {"name": "loop", "self": None}
        assert any("circular" in issue for issue in issues)

    def test_shared_reference_is_not_circular(self):
        shared = [1, 2]
        assert make_serializable({"a": shared, "b": shared}, []) == {"a": [1, 2], "b": [1, 2]}

    def test_functions_dropped_and_floats_checked(self):
        issues = []
        result = make_serializable({"fn": len, "inf": math.inf, "ok": 1.5}, issues)
        assert result == {"inf": None, "ok": 1.5}
        assert len(issues) == 2

    def test_datetime_and_objects(self):
        when = datetime(2026, 1, 2, tzinfo=timezone.utc)
        issues = []
        result = make_serializable({"when": when, "obj": object()}, issues)
        assert result == {"when": "2026-01-02T00:00:00+00:00", "obj": None}
        assert "unsupported type object" in issues[0]

    def test_tuples_and_sets_become_lists(self):
        assert make_serializable((1, 2), []) == [1, 2]
        assert make_serializable({"s": {3}}, []) == {"s": [3]}


class TestSanitizeWindowConfig:
    def test_defaults_for_missing_config(self):
        issues = []
        config = sanitize_window_config("webview", None, issues)
        assert config == {
            "title": "Webview Window",
            "position": {"x": 100, "y": 100},
            "size": {"width": 800, "height": 600},
            "metadata": {},
        }
        assert issues == []

    def test_non_object_config(self):
        issues = []
        config = sanitize_window_config("text", "big please", issues)
        assert config["title"] == "Text Window"
        assert issues == ["config must be an object, got str; using defaults"]

    def test_invalid_geometry_replaced(self):
        issues = []
        config = sanitize_window_config(
            "graph",
            {"position": {"x": "left", "y": 5}, "size": {"width": math.nan, "height": 10}},
            issues,
        )
        assert config["position"] == {"x": 100, "y": 100}
        assert config["size"] == {"width": 600, "height": 400}
        assert len(issues) == 2

    def test_valid_values_kept(self):
        config = sanitize_window_config(
            "text",
            {
                "title": "Notes",
                "position": {"x": 10, "y": 20.5},
                "size": {"width": 300, "height": 250},
                "metadata": {"label": "notes"},
            },
            [],
        )
        assert config["title"] == "Notes"
        assert config["position"] == {"x": 10, "y": 20.5}
        assert config["metadata"] == {"label": "notes"}

    def test_non_object_metadata(self):
        issues = []
        config = sanitize_window_config("text", {"metadata": ["a"]}, issues)
        assert config["metadata"] == {}
        assert "metadata must be an object; replaced with {}" in issues
