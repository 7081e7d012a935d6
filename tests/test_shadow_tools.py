"""
Tests for the shadow file write/append tools
"""

import os
import shutil
import tempfile

import pytest

from editor_rag.service.shadow_workspace import ShadowWorkspaceMirror
from editor_rag.service.workspace_registry import WorkspaceRegistry
from editor_rag.tools.shadow_files import append_to_shadow_file, write_to_shadow_file


@pytest.fixture
def opened():
    base = os.path.realpath(tempfile.mkdtemp())
    project = os.path.join(base, "proj")
    os.makedirs(os.path.join(project, "src"))
    with open(os.path.join(project, "src", "a.ts"), 'w') as f:
        f.write("original")
    mirror = ShadowWorkspaceMirror(WorkspaceRegistry(), os.path.join(base, "shadow"))
    yield mirror, project
    shutil.rmtree(base, ignore_errors=True)


class TestShadowFileTools:

    @pytest.mark.asyncio
    async def test_write_and_append(self, opened):
        mirror, project = opened
        await mirror.create_shadow_workspace(project, copy_files=True)
        original = os.path.join(project, "src", "a.ts")

        written = write_to_shadow_file(mirror, original, "proposed")
        appended = append_to_shadow_file(mirror, original, " + more")

        assert written.success and appended.success
        assert written.message == f"Successfully wrote to shadow file: {written.shadow_path}"
        assert appended.message == f"Successfully appended to shadow file: {appended.shadow_path}"
        with open(written.shadow_path) as f:
            assert f.read() == "proposed + more"
        with open(original) as f:
            assert f.read() == "original"

    @pytest.mark.asyncio
    async def test_missing_shadow_file_is_not_created(self, opened):
        mirror, project = opened
        info = await mirror.create_shadow_workspace(project)
        original = os.path.join(project, "src", "a.ts")

        result = write_to_shadow_file(mirror, original, "proposed")

        expected = os.path.join(info.shadow_path, "src", "a.ts")
        assert result.success is False
        assert result.shadow_path == expected
        assert result.message == f"Shadow file does not exist and won't be created: {expected}"
        assert not os.path.exists(expected)

    def test_no_workspace(self, opened):
        mirror, _ = opened

        result = append_to_shadow_file(mirror, "/somewhere/else.ts", "text")

        assert result.success is False
        assert result.shadow_path is None
        assert result.message == "No shadow workspace found for file: /somewhere/else.ts"
        assert result.to_dict() == {
            "success": False,
            "shadowPath": None,
            "message": "No shadow workspace found for file: /somewhere/else.ts",
        }
