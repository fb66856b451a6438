"""Tests for the in-memory window manager."""

import pytest

from deskmind.windows import InMemoryWindowManager, WindowNotFoundError


@pytest.fixture
def windows() -> InMemoryWindowManager:
    return InMemoryWindowManager()


@pytest.mark.asyncio
async def test_create_applies_type_defaults(windows: InMemoryWindowManager) -> None:
    window = await windows.create_window("code-execution", {})
    assert window.title == "Code Window"
    assert (window.size.width, window.size.height) == (800, 600)
    assert window.id.startswith("window_")


@pytest.mark.asyncio
async def test_resize_respects_minimum(windows: InMemoryWindowManager) -> None:
    window = await windows.create_window("text", {})
    await windows.resize_window(window.id, {"width": 10, "height": 10})
    assert (window.size.width, window.size.height) == (300, 200)


@pytest.mark.asyncio
async def test_missing_window(windows: InMemoryWindowManager) -> None:
    with pytest.raises(WindowNotFoundError, match="Window with id w0 not found"):
        await windows.move_window("w0", {"x": 1, "y": 2})
    assert windows.get_window("w0") is None


@pytest.mark.asyncio
async def test_update_window_metadata_and_title(windows: InMemoryWindowManager) -> None:
    window = await windows.create_window("text", {"metadata": {"label": "a"}})
    await windows.update_window(window.id, {"title": "B", "metadata": {"label": "b"}})
    assert window.title == "B"
    assert window.metadata == {"label": "b"}


@pytest.mark.asyncio
async def test_grid_tiling(windows: InMemoryWindowManager) -> None:
    created = [await windows.create_window("text", {}) for _ in range(4)]
    await windows.minimize_window(created[0].id)

    tiled = await windows.tile_windows([w.id for w in created])

    positions = {(w.position.x, w.position.y) for w in tiled}
    assert len(positions) == 4
    assert not created[0].is_minimized


@pytest.mark.asyncio
async def test_search_matches_metadata(windows: InMemoryWindowManager) -> None:
    await windows.create_window("text", {"title": "Notes", "metadata": {"content": "buy oat milk"}})
    await windows.create_window("text", {"title": "Todo"})
    assert [w.title for w in windows.search_windows("OAT")] == ["Notes"]
    assert windows.search_windows("   ") == []


@pytest.mark.asyncio
async def test_system_metrics(windows: InMemoryWindowManager) -> None:
    first = await windows.create_window("text", {})
    await windows.create_window("graph", {})
    await windows.lock_window(first.id)

    metrics = windows.get_system_metrics()

    assert metrics["totalWindows"] == 2
    assert metrics["lockedWindows"] == 1
    assert metrics["windowsByType"] == {"text": 1, "graph": 1}


def test_window_to_dict_keys() -> None:
    from deskmind.windows import Window

    data = Window(id="w1", type="text", title="T").to_dict()
    assert {"zIndex", "isLocked", "isMinimized", "createdAt", "updatedAt"} <= set(data)
