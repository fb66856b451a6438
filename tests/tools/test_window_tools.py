"""Tests for window-management tools, driven through the registry."""

import pytest

from deskmind.tools import ToolRegistry
from deskmind.tools.windows import WINDOW_TOOLS
from deskmind.windows import InMemoryWindowManager


@pytest.fixture
def windows() -> InMemoryWindowManager:
    return InMemoryWindowManager()


@pytest.fixture
def registry(windows: InMemoryWindowManager) -> ToolRegistry:
    return ToolRegistry(tool_cls(windows) for tool_cls in WINDOW_TOOLS)


async def create(registry: ToolRegistry, window_type: str = "text", **config) -> str:
    result = await registry.execute("createWindow", {"type": window_type, "config": config})
    assert result.success, result.error
    return result.window_id


class TestCreateWindow:
    @pytest.mark.asyncio
    async def test_creates_with_config(self, registry, windows):
        result = await registry.execute("createWindow", {
            "type": "webview",
            "config": {"title": "Docs", "position": {"x": 50, "y": 60}, "metadata": {"url": "https://a.b"}},
        })

        assert result.success
        window = windows.get_window(result.window_id)
        assert window.title == "Docs"
        assert (window.position.x, window.position.y) == (50, 60)
        assert (window.size.width, window.size.height) == (800, 600)
        assert window.metadata == {"url": "https://a.b"}
        assert result.data["sanitizeIssues"] == []

    @pytest.mark.asyncio
    async def test_bad_config_is_sanitized_not_rejected(self, registry, windows):
        result = await registry.execute("createWindow", {
            "type": "graph",
            "config": {"position": "top-left", "size": {"width": "huge"}},
        })

        assert result.success
        window = windows.get_window(result.window_id)
        assert (window.position.x, window.position.y) == (100, 100)
        assert len(result.data["sanitizeIssues"]) == 2

    @pytest.mark.asyncio
    async def test_unknown_type_falls_back_to_text(self, registry, windows):
        window_id = await create(registry, "hologram")
        assert windows.get_window(window_id).type == "text"

    @pytest.mark.asyncio
    async def test_missing_type(self, registry):
        result = await registry.execute("createWindow", {})
        assert result.success is False
        assert "Missing required argument: type" in result.error


class TestWindowOperations:
    @pytest.mark.asyncio
    async def test_move_resize_title(self, registry, windows):
        window_id = await create(registry)

        assert (await registry.execute("moveWindow", {"windowId": window_id, "x": 300, "y": 40})).success
        assert (await registry.execute("resizeWindow", {"windowId": window_id, "width": 640, "height": 480})).success
        assert (await registry.execute("setWindowTitle", {"windowId": window_id, "title": "Renamed"})).success

        window = windows.get_window(window_id)
        assert (window.position.x, window.position.y) == (300, 40)
        assert (window.size.width, window.size.height) == (640, 480)
        assert window.title == "Renamed"

    @pytest.mark.asyncio
    async def test_move_rejects_non_numbers(self, registry):
        window_id = await create(registry)
        result = await registry.execute("moveWindow", {"windowId": window_id, "x": "left", "y": 0})
        assert result.success is False

    @pytest.mark.asyncio
    async def test_state_changes(self, registry, windows):
        window_id = await create(registry)

        await registry.execute("lockWindow", {"windowId": window_id})
        await registry.execute("minimizeWindow", {"windowId": window_id})
        window = windows.get_window(window_id)
        assert window.is_locked and window.is_minimized

        await registry.execute("unlockWindow", {"windowId": window_id})
        await registry.execute("restoreWindow", {"windowId": window_id})
        assert not window.is_locked and not window.is_minimized

    @pytest.mark.asyncio
    async def test_bring_to_front(self, registry, windows):
        first = await create(registry, title="first")
        await create(registry, title="second")

        await registry.execute("bringToFront", {"windowId": first})

        assert windows.get_all_windows()[-1].id == first

    @pytest.mark.asyncio
    async def test_delete(self, registry, windows):
        window_id = await create(registry)
        result = await registry.execute("deleteWindow", {"windowId": window_id})
        assert result.data == {"windowId": window_id, "deleted": True}
        assert windows.get_window(window_id) is None

    @pytest.mark.asyncio
    async def test_missing_window_is_error_envelope(self, registry):
        result = await registry.execute("deleteWindow", {"windowId": "nope"})
        assert result.success is False
        assert "Window with id nope not found" in result.error

    @pytest.mark.asyncio
    async def test_tile_windows(self, registry):
        ids = [await create(registry) for _ in range(2)]
        result = await registry.execute("tileWindows", {"windowIds": ids, "layout": "horizontal"})

        assert result.success
        tiled = result.data
        assert tiled[0]["position"]["y"] == tiled[1]["position"]["y"]
        assert tiled[0]["position"]["x"] < tiled[1]["position"]["x"]

    @pytest.mark.asyncio
    async def test_tile_unknown_layout(self, registry):
        window_id = await create(registry)
        result = await registry.execute("tileWindows", {"windowIds": [window_id], "layout": "spiral"})
        assert result.success is False
        assert "Unknown layout" in result.error


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_search_metrics(self, registry):
        await create(registry, "webview", title="Python docs")
        await create(registry, "text", title="Shopping")

        listing = await registry.execute("getWindowList")
        assert len(listing.data) == 2

        found = await registry.execute("searchWindows", {"query": "python"})
        assert [w["title"] for w in found.data] == ["Python docs"]

        metrics = await registry.execute("getSystemMetrics")
        assert metrics.data["totalWindows"] == 2
        assert metrics.data["windowsByType"] == {"webview": 1, "text": 1}

    @pytest.mark.asyncio
    async def test_content_and_export(self, registry):
        window_id = await create(registry, title="Notes")
        content = await registry.execute("getWindowContent", {"windowId": window_id})
        assert content.data["title"] == "Notes"

        exported = await registry.execute("exportWindowState", {"windowId": window_id})
        assert exported.data["window"]["id"] == window_id

    @pytest.mark.asyncio
    async def test_canvas_state(self, registry):
        await create(registry)
        result = await registry.execute("getCanvasState")
        assert result.data["windowCount"] == 1
        assert result.data["dimensions"] == {"width": 1400, "height": 900}


class TestTypedContentTools:
    @pytest.mark.asyncio
    async def test_set_webview_url(self, registry, windows):
        window_id = await create(registry, "webview")
        result = await registry.execute("setWebviewUrl", {"windowId": window_id, "url": "https://x.y"})
        assert result.success
        assert windows.get_window(window_id).metadata["url"] == "https://x.y"

    @pytest.mark.asyncio
    async def test_set_url_on_text_window_fails(self, registry):
        window_id = await create(registry, "text")
        result = await registry.execute("setWebviewUrl", {"windowId": window_id, "url": "https://x.y"})
        assert result.success is False
        assert "not a webview" in result.error

    @pytest.mark.asyncio
    async def test_update_markdown(self, registry, windows):
        window_id = await create(registry, "markdown-editor")
        result = await registry.execute("updateMarkdownContent", {"windowId": window_id, "content": "# Hi"})
        assert result.success
        assert windows.get_window(window_id).metadata["content"] == "# Hi"

    @pytest.mark.asyncio
    async def test_create_artifact(self, registry, windows):
        result = await registry.execute("createArtifactWindow", {
            "title": "Timer",
            "html": "<div id='t'>0</div>",
            "javascript": "let a = 1, b = 2;",
        })

        assert result.success
        assert result.data == {"windowId": result.window_id, "title": "Timer"}
        window = windows.get_window(result.window_id)
        assert window.type == "artifact"
        assert window.metadata["artifact"]["javascript"] == "let a = 1, b = 2;"
        assert window.metadata["artifact"]["css"] == ""

    @pytest.mark.asyncio
    async def test_create_artifact_from_broken_arguments(self, registry, windows):
        raw = "{'title': 'Counter', 'html': '<button>+</button>', 'javascript': 'let n = 0, m = 1;'}"
        result = await registry.execute("createArtifactWindow", raw)

        assert result.success, result.error
        artifact = windows.get_window(result.window_id).metadata["artifact"]
        assert artifact["title"] == "Counter"
        assert artifact["javascript"] == "let n = 0, m = 1;"
