"""
Tests for the MCP tool functions with a stubbed service container
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from editor_rag.server import stdio


@pytest.fixture
def fake_services(monkeypatch):
    services = MagicMock()
    services.open_project = AsyncMock(return_value={"success": True, "path": "/work/proj"})
    monkeypatch.setattr(stdio, "services", services)
    return services


class TestOpenProjectTool:

    @pytest.mark.asyncio
    async def test_copy_files_defers_to_config(self, fake_services):
        result = await stdio.open_project("/work/proj")

        assert result["success"] is True
        fake_services.open_project.assert_awaited_once_with("/work/proj", copy_files=None)

    @pytest.mark.asyncio
    async def test_explicit_copy_files(self, fake_services):
        await stdio.open_project("/work/proj", copy_files=False)
        fake_services.open_project.assert_awaited_once_with("/work/proj", copy_files=False)

    @pytest.mark.asyncio
    async def test_not_ready(self, monkeypatch):
        monkeypatch.setattr(stdio, "services", None)
        result = await stdio.open_project("/work/proj")
        assert result == {"success": False, "error": "Editor services not initialized"}
