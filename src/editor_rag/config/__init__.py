"""Configuration classes for editor-rag"""

from .vector_db import VectorDBConfig
from .llm import LLMConfig
from .policy import EmbeddingPolicy, ui_language_for
from .app import AppConfig, TEMPORARY_USER_ID, generate_example_config

__all__ = [
    "VectorDBConfig",
    "LLMConfig",
    "EmbeddingPolicy",
    "ui_language_for",
    "AppConfig",
    "TEMPORARY_USER_ID",
    "generate_example_config",
]
