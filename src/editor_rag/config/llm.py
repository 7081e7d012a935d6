"""
LLM configuration for retrieval-augmented answers.
"""

from dataclasses import dataclass
from typing import Any, Dict


DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant that answers questions about code."


@dataclass
class LLMConfig:
    """Configuration for the answer-generating LLM."""

    enabled: bool = True

    # Ollama configuration
    base_url: str = "http://localhost:11434"
    model: str = "qwen2.5-coder:1.5b"

    # LLM parameters
    temperature: float = 0.7
    max_response_tokens: int = 1000
    timeout_seconds: float = 60.0

    # Retrieval
    chunk_limit: int = 5
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'LLMConfig':
        """Create config from the ``llm`` section of an app config dictionary."""
        llm_config = config_dict.get('llm', {})

        return cls(
            enabled=llm_config.get('enabled', True),
            base_url=llm_config.get('base_url', "http://localhost:11434"),
            model=llm_config.get('model', "qwen2.5-coder:1.5b"),
            temperature=llm_config.get('temperature', 0.7),
            max_response_tokens=llm_config.get('max_response_tokens', 1000),
            timeout_seconds=llm_config.get('timeout_seconds', 60.0),
            chunk_limit=llm_config.get('chunk_limit', 5),
            system_prompt=llm_config.get('system_prompt', DEFAULT_SYSTEM_PROMPT),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'enabled': self.enabled,
            'base_url': self.base_url,
            'model': self.model,
            'temperature': self.temperature,
            'max_response_tokens': self.max_response_tokens,
            'timeout_seconds': self.timeout_seconds,
            'chunk_limit': self.chunk_limit,
            'system_prompt': self.system_prompt,
        }
