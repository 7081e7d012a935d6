"""AI tool operations over shadow workspaces"""

from .shadow_files import write_to_shadow_file, append_to_shadow_file

__all__ = ["write_to_shadow_file", "append_to_shadow_file"]
