#!/usr/bin/env python3
"""
Basic usage example for editor-rag

This example demonstrates:
1. Creating a configuration
2. Opening a project (shadow workspace + embedding scan)
3. Asking a question about the code
4. Proposing an edit through the shadow workspace
"""

import asyncio
import os
import sys
from pathlib import Path

from editor_rag import AppConfig, EmbeddingPolicy, get_editor_services


async def run(project_path: str):
    config = AppConfig.create_default(
        persist_directory=str(Path.home() / ".editor-rag" / "chroma")
    )
    config.policy = EmbeddingPolicy(
        extensions=[".py", ".js", ".ts", ".md"],
        debounce_seconds=2.0,
        max_concurrency=2,
    )

    EditorServices = get_editor_services()
    services = EditorServices(config)
    await services.start()

    try:
        print(f"Opening {project_path}...")
        opened = await services.open_project(project_path)
        print(f"Shadow workspace: {opened.get('shadowPath')}")

        # Wait for the initial scan to finish
        await services.bus.drain()
        print(f"Watching for embedding: {services.get_watched_paths()}")

        print("\n--- Asking about the code ---")
        response = await services.query("Where is the configuration loaded?")
        print(response.response)
        for source in response.sources:
            print(f"  - {source.source} ({source.id})")

        readme = os.path.join(project_path, "README.md")
        if os.path.isfile(readme):
            print("\n--- Proposing an edit in the shadow workspace ---")
            await services.copy_file_to_shadow_workspace(readme)
            result = services.append_to_shadow_file(readme, "\n\nEdited in the shadow workspace.\n")
            print(result.message)
    finally:
        await services.shutdown()


def main():
    if len(sys.argv) != 2:
        print("Usage: basic_usage.py /path/to/project")
        sys.exit(1)
    asyncio.run(run(os.path.abspath(sys.argv[1])))


if __name__ == "__main__":
    main()
