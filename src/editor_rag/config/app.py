"""
Application Configuration for the editor RAG services

Loaded from a JSON or YAML file, or built from defaults for a single project.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field

from .llm import LLMConfig
from .policy import EmbeddingPolicy
from .vector_db import VectorDBConfig

logger = logging.getLogger(__name__)

TEMPORARY_USER_ID = "default-user"
DEFAULT_SHADOW_ROOT = os.path.join("~", ".cache", ".shadow_workspace")
DEFAULT_STATE_FILE = os.path.join("~", ".editor-rag", "state.json")


@dataclass
class AppConfig:
    """Configuration for the embedding pipeline, shadow mirror and RAG services"""

    # Owner of every embedded chunk (single-user system)
    user_id: str = TEMPORARY_USER_ID

    # Process-wide root under which shadow workspaces are created
    shadow_root: str = DEFAULT_SHADOW_ROOT

    # Copy file contents when a project is opened (structure only otherwise)
    copy_files_on_open: bool = False

    # Persisted UI state (recent projects, expanded directories)
    state_file: str = DEFAULT_STATE_FILE

    # Logging settings
    log_level: str = "INFO"

    vector_db: VectorDBConfig = field(default_factory=VectorDBConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    policy: EmbeddingPolicy = field(default_factory=EmbeddingPolicy)

    def __post_init__(self):
        """Validate and normalize the configuration"""
        self.shadow_root = os.path.abspath(os.path.expanduser(self.shadow_root))
        self.state_file = os.path.abspath(os.path.expanduser(self.state_file))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'user_id': self.user_id,
            'shadow_root': self.shadow_root,
            'copy_files_on_open': self.copy_files_on_open,
            'state_file': self.state_file,
            'log_level': self.log_level,
            'vector_db': self.vector_db.to_dict(),
            'llm': self.llm.to_dict(),
            'policy': self.policy.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppConfig':
        """Create from dictionary"""
        return cls(
            user_id=data.get('user_id', TEMPORARY_USER_ID),
            shadow_root=data.get('shadow_root', DEFAULT_SHADOW_ROOT),
            copy_files_on_open=data.get('copy_files_on_open', False),
            state_file=data.get('state_file', DEFAULT_STATE_FILE),
            log_level=data.get('log_level', 'INFO'),
            vector_db=VectorDBConfig.from_dict(data.get('vector_db', {})),
            llm=LLMConfig.from_dict(data),
            policy=EmbeddingPolicy.from_dict(data.get('policy', {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> 'AppConfig':
        """Load configuration from a JSON or YAML file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            content = f.read()

        if config_path.suffix in ('.yaml', '.yml'):
            import yaml
            data = yaml.safe_load(content) or {}
        else:
            data = json.loads(content)

        return cls.from_dict(data)

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to a JSON or YAML file"""
        config_path = Path(config_path)

        data = self.to_dict()

        with open(config_path, 'w', encoding='utf-8') as f:
            if config_path.suffix in ('.yaml', '.yml'):
                import yaml
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(data, f, indent=2)

        logger.info(f"Saved configuration to: {config_path}")

    @classmethod
    def create_default(cls, persist_directory: Optional[str] = None) -> 'AppConfig':
        """Create a default configuration, optionally overriding the Chroma directory"""
        config = cls(vector_db=VectorDBConfig.from_env())
        if persist_directory:
            config.vector_db.chroma_persist_directory = os.path.abspath(os.path.expanduser(persist_directory))
        return config


def generate_example_config(output_path: str = "editor_rag_config.json") -> None:
    """Write an example configuration file"""
    config = AppConfig(
        policy=EmbeddingPolicy(
            extensions=['.py', '.ts', '.tsx', '.md'],
            ignored_directories=['node_modules', '.git', 'dist', 'build'],
            debounce_seconds=5.0,
            max_concurrency=1,
        ),
        log_level="INFO",
    )

    config.save_to_file(output_path)
    print(f"Example configuration saved to: {output_path}")
