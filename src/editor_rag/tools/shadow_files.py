"""
Write surface for AI tools into shadow workspaces.

Both operations only touch shadow files that already exist: a shadow file
is created by mirroring a real change or by an explicit copy, never here.
"""

import logging
import os

from ..core.models import ShadowToolResult
from ..service.shadow_workspace import ShadowWorkspaceMirror

logger = logging.getLogger(__name__)


def _resolve(mirror: ShadowWorkspaceMirror, original_file_path: str):
    shadow_path = mirror.get_shadow_path(original_file_path)
    if shadow_path is None:
        return None, ShadowToolResult(
            success=False,
            shadow_path=None,
            message=f"No shadow workspace found for file: {original_file_path}",
        )
    if not os.path.isfile(shadow_path):
        return None, ShadowToolResult(
            success=False,
            shadow_path=shadow_path,
            message=f"Shadow file does not exist and won't be created: {shadow_path}",
        )
    return shadow_path, None


def write_to_shadow_file(mirror: ShadowWorkspaceMirror, original_file_path: str,
                         content: str) -> ShadowToolResult:
    """Overwrite the shadow copy of ``original_file_path``"""
    shadow_path, failure = _resolve(mirror, original_file_path)
    if failure is not None:
        return failure
    try:
        with open(shadow_path, 'w', encoding='utf-8') as f:
            f.write(content)
    except OSError as e:
        logger.error(f"[ShadowFileTool] Error writing to shadow file: {e}")
        return ShadowToolResult(success=False, shadow_path=None, message=f"Error writing to shadow file: {e}")

    logger.info(f"[ShadowFileTool] Successfully wrote to shadow file: {shadow_path}")
    return ShadowToolResult(
        success=True,
        shadow_path=shadow_path,
        message=f"Successfully wrote to shadow file: {shadow_path}",
    )


def append_to_shadow_file(mirror: ShadowWorkspaceMirror, original_file_path: str,
                          content_to_append: str) -> ShadowToolResult:
    """Append to the shadow copy of ``original_file_path``"""
    shadow_path, failure = _resolve(mirror, original_file_path)
    if failure is not None:
        return failure
    try:
        with open(shadow_path, 'a', encoding='utf-8') as f:
            f.write(content_to_append)
    except OSError as e:
        logger.error(f"[ShadowFileTool] Error appending to shadow file: {e}")
        return ShadowToolResult(success=False, shadow_path=None, message=f"Error appending to shadow file: {e}")

    logger.info(f"[ShadowFileTool] Successfully appended to shadow file: {shadow_path}")
    return ShadowToolResult(
        success=True,
        shadow_path=shadow_path,
        message=f"Successfully appended to shadow file: {shadow_path}",
    )
