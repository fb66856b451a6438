"""Tests for text-window tools."""

import pytest

from deskmind.tools import ToolRegistry
from deskmind.tools.text import TEXT_TOOLS, apply_update
from deskmind.windows import InMemoryWindowManager


@pytest.fixture
def windows() -> InMemoryWindowManager:
    return InMemoryWindowManager()


@pytest.fixture
def registry(windows: InMemoryWindowManager) -> ToolRegistry:
    return ToolRegistry(tool_cls(windows) for tool_cls in TEXT_TOOLS)


class TestApplyUpdate:
    def test_modes(self):
        assert apply_update("a", "b", "replace") == "b"
        assert apply_update("a", "b", "append") == "a\nb"
        assert apply_update("a", "b", "prepend") == "b\na"
        assert apply_update("", "b", "append") == "b"
        assert apply_update("a", "b", None) == "b"

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown mode"):
            apply_update("a", "b", "merge")


class TestTextTools:
    @pytest.mark.asyncio
    async def test_create_and_read_by_label(self, registry):
        created = await registry.execute("createTextWindow", {"label": "Groceries", "content": "milk"})
        assert created.success
        assert created.data["label"] == "Groceries"

        read = await registry.execute("readTextByLabel", {"label": "groceries"})
        assert read.data["content"] == "milk"
        assert read.window_id == created.window_id

    @pytest.mark.asyncio
    async def test_update_by_label_appends(self, registry):
        await registry.execute("createTextWindow", {"label": "Log", "content": "one"})

        result = await registry.execute(
            "updateTextByLabel", {"label": "Log", "content": "two", "mode": "append"}
        )

        assert result.data["mode"] == "append"
        read = await registry.execute("readTextByLabel", {"label": "Log"})
        assert read.data["content"] == "one\ntwo"

    @pytest.mark.asyncio
    async def test_unknown_label(self, registry):
        result = await registry.execute("readTextByLabel", {"label": "nothing"})
        assert result.success is False
        assert "No text window with label 'nothing'" in result.error

    @pytest.mark.asyncio
    async def test_rename_label(self, registry, windows):
        created = await registry.execute("createTextWindow", {"label": "Draft"})

        renamed = await registry.execute("updateTextLabel", {"label": "Draft", "newLabel": "Final"})

        assert renamed.data["label"] == "Final"
        window = windows.get_window(created.window_id)
        assert window.title == "Final"
        assert window.metadata["label"] == "Final"

    @pytest.mark.asyncio
    async def test_rename_needs_target(self, registry):
        result = await registry.execute("updateTextLabel", {"newLabel": "Final"})
        assert result.success is False
        assert "Provide either windowId or label" in result.error

    @pytest.mark.asyncio
    async def test_list_text_windows(self, registry, windows):
        await registry.execute("createTextWindow", {"label": "A", "content": "abc"})
        await registry.execute("createTextWindow", {"label": "B"})
        await windows.create_window("webview", {})

        result = await registry.execute("listTextWindows")

        assert [(w["label"], w["length"]) for w in result.data] == [("A", 3), ("B", 0)]

    @pytest.mark.asyncio
    async def test_content_by_id(self, registry):
        created = await registry.execute("createTextWindow", {"label": "Notes", "content": "x"})
        window_id = created.window_id

        await registry.execute(
            "updateTextContent", {"windowId": window_id, "content": "top", "mode": "prepend"}
        )
        read = await registry.execute("readTextContent", {"windowId": window_id})

        assert read.data["content"] == "top\nx"

    @pytest.mark.asyncio
    async def test_content_by_id_rejects_other_types(self, registry, windows):
        webview = await windows.create_window("webview", {})
        result = await registry.execute("readTextContent", {"windowId": webview.id})
        assert result.success is False
        assert "is not a text window" in result.error

    @pytest.mark.asyncio
    async def test_invalid_mode_is_rejected(self, registry):
        created = await registry.execute("createTextWindow", {"label": "Notes"})
        result = await registry.execute(
            "updateTextContent", {"windowId": created.window_id, "content": "x", "mode": "merge"}
        )
        assert result.success is False
        assert "Unknown mode" in result.error
