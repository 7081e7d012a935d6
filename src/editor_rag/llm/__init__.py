"""
LLM integration package for retrieval-augmented answers.
"""

from .base import LLMClient, LLMError, LLMConnectionError, LLMResponseError, LLMResponse
from .ollama_client import OllamaClient

__all__ = [
    'LLMClient',
    'LLMError',
    'LLMConnectionError',
    'LLMResponseError',
    'LLMResponse',
    'OllamaClient',
]
