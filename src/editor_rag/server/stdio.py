#!/usr/bin/env python3
"""
Editor RAG Server - stdio MCP wrapper around EditorServices

Exposes on-demand indexing, retrieval-augmented answers and the shadow
workspace write surface as MCP tools. The services (watcher, embedding
pipeline, shadow mirror) live for as long as the server runs.

Usage:
    editor-rag --project /path/to/project
    editor-rag --config editor_rag_config.yaml --copy-files
"""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

# MCP SDK imports
from mcp.server.fastmcp import FastMCP

from ..config.app import AppConfig
from ..service.app_services import EditorServices

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "editor_rag_config.json"

# Set in main(), consumed by the lifespan
app_config: Optional[AppConfig] = None
startup_project: Optional[str] = None

# Global service container (alive between lifespan startup and shutdown)
services: Optional[EditorServices] = None


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Build and start the services, open the startup project, tear down on exit"""
    global services

    config = app_config or AppConfig.create_default()
    services = EditorServices(config)
    await services.start()

    if startup_project:
        result = await services.open_project(startup_project)
        if result.get("success"):
            logger.info(f"Opened project {result['path']} (shadow: {result.get('shadowPath')})")
        else:
            logger.error(f"Could not open project {startup_project}: {result.get('error')}")

    logger.info("=== READY === Editor RAG server started")
    try:
        yield
    finally:
        logger.info("Shutting down editor services")
        await services.shutdown()
        services = None


# Create the MCP server
mcp = FastMCP(
    "Editor RAG",
    instructions="""
    Code retrieval and shadow workspace tools for an open project. Provides:
    - Retrieval-augmented answers about the project's code
    - On-demand indexing of a single file
    - Writes into the shadow copy of a file (the real file is never touched)

    Use rag_query to ask questions about the code.
    Use write_to_shadow_file or append_to_shadow_file to propose edits safely.
    """,
    lifespan=lifespan,
)


def _not_ready() -> dict[str, Any]:
    return {"success": False, "error": "Editor services not initialized"}


@mcp.tool()
async def index_file(file_path: str) -> dict[str, Any]:
    """
    Embed a file into the vector store unless it is already indexed.

    Args:
        file_path: Absolute path of the file to index

    Returns:
        Dictionary with success and a message or error
    """
    if not services:
        return _not_ready()
    result = await services.index_file(file_path)
    return result.to_dict()


@mcp.tool()
async def rag_query(query: str, file_path: str | None = None) -> dict[str, Any]:
    """
    Answer a question using the most relevant indexed code chunks.

    Args:
        query: The question to answer
        file_path: Optional file to restrict retrieval to

    Returns:
        Dictionary with success, response text and the sources used
    """
    if not services:
        return _not_ready()
    response = await services.query(query, file_path)
    return response.to_dict()


@mcp.tool()
def write_to_shadow_file(file_path: str, content: str) -> dict[str, Any]:
    """
    Write content to the shadow copy of a file, overwriting any existing content.

    Args:
        file_path: The path to the original file whose shadow copy you want to write to
        content: The content to write to the shadow file
    """
    if not services:
        return _not_ready()
    return services.write_to_shadow_file(file_path, content).to_dict()


@mcp.tool()
def append_to_shadow_file(file_path: str, content_to_append: str) -> dict[str, Any]:
    """
    Append content to the shadow copy of a file without overwriting existing content.

    Args:
        file_path: The path to the original file whose shadow copy you want to append to
        content_to_append: The content to append to the shadow file
    """
    if not services:
        return _not_ready()
    return services.append_to_shadow_file(file_path, content_to_append).to_dict()


@mcp.tool()
def get_shadow_path(original_path: str) -> dict[str, Any]:
    """
    Translate a path inside an open project into its shadow workspace path.

    Returns:
        Dictionary with shadowPath (None when no shadow workspace owns the path)
    """
    if not services:
        return _not_ready()
    shadow_path = services.get_shadow_workspace_path(original_path)
    return {"success": shadow_path is not None, "shadowPath": shadow_path}


@mcp.tool()
async def copy_file_to_shadow(file_path: str) -> dict[str, Any]:
    """
    Copy the current content of a real file into its shadow workspace.

    Returns:
        Dictionary with the shadow path of the copy
    """
    if not services:
        return _not_ready()
    shadow_path = await services.copy_file_to_shadow_workspace(file_path)
    if shadow_path is None:
        return {"success": False, "shadowPath": None, "message": f"No shadow workspace found for file: {file_path}"}
    return {"success": True, "shadowPath": shadow_path}


@mcp.tool()
def toggle_watch_path(dir_path: str, should_watch: bool = True) -> dict[str, Any]:
    """
    Start or stop embedding changes below a directory.

    Args:
        dir_path: Directory to watch or unwatch
        should_watch: True to watch, False to stop watching
    """
    if not services:
        return _not_ready()
    return {"success": services.toggle_watch_path(dir_path, should_watch)}


@mcp.tool()
def get_watched_paths() -> dict[str, Any]:
    """List the directories whose changes are embedded."""
    if not services:
        return _not_ready()
    return {"success": True, "paths": services.get_watched_paths()}


@mcp.tool()
async def open_project(project_path: str, copy_files: Optional[bool] = None) -> dict[str, Any]:
    """
    Open a project: create its shadow workspace, watch it and reconcile its embeddings.

    Args:
        project_path: Root directory of the project
        copy_files: Copy file contents into the shadow workspace (structure only otherwise);
            defaults to the configured copy_files_on_open
    """
    if not services:
        return _not_ready()
    return await services.open_project(project_path, copy_files=copy_files)


@mcp.tool()
async def cleanup_shadow_workspace(project_path: str) -> dict[str, Any]:
    """Delete the shadow workspace of a project root."""
    if not services:
        return _not_ready()
    return {"success": await services.cleanup_shadow_workspace(project_path)}


def main():
    """Main entry point for stdio MCP server"""
    global app_config, startup_project

    parser = argparse.ArgumentParser(description="Editor RAG Server (stdio)")
    parser.add_argument("--config", type=str, help=f"Config file path (default: {DEFAULT_CONFIG} if exists)")
    parser.add_argument("--project", type=str, help="Project directory to open on startup")
    parser.add_argument("--persist-dir", type=str, help="Chroma persistent storage dir")
    parser.add_argument("--log-level", type=str, default=None, help="Log level")
    parser.add_argument("--copy-files", action="store_true", help="Copy file contents into shadow workspaces")

    args = parser.parse_args()

    # Determine config file path
    config_path = args.config
    if not config_path and Path(DEFAULT_CONFIG).exists():
        config_path = DEFAULT_CONFIG
        logger.info(f"Auto-detected config file: {DEFAULT_CONFIG}")

    # Load configuration
    if config_path:
        try:
            config = AppConfig.from_file(config_path)
            logger.info(f"Loaded config from: {config_path}")
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            sys.exit(1)
    else:
        config = AppConfig.create_default()

    if args.persist_dir:
        config.vector_db.chroma_persist_directory = str(Path(args.persist_dir).expanduser().resolve())
    if args.copy_files:
        config.copy_files_on_open = True
    if args.log_level:
        config.log_level = args.log_level

    # Set log level
    logging.getLogger().setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    app_config = config
    startup_project = args.project

    logger.info("Starting Editor RAG Server (stdio transport)")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
