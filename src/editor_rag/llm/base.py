"""
Base LLM client interface for answering questions over retrieved code.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional
from dataclasses import dataclass


class LLMError(Exception):
    """Base exception for LLM-related errors."""
    pass


class LLMConnectionError(LLMError):
    """Raised when the LLM service cannot be reached or times out."""
    pass


class LLMResponseError(LLMError):
    """Raised when the LLM service answers with an error or malformed payload."""
    pass


@dataclass
class LLMResponse:
    """Answer text plus bookkeeping from one LLM call."""
    content: str
    model: str
    tokens_used: Optional[int] = None
    response_time_ms: Optional[float] = None
    raw_response: Optional[Dict[str, Any]] = None


class LLMClient(ABC):
    """Abstract base class for chat-style LLM clients."""

    def __init__(self, base_url: str, model: str, timeout: float = 60.0):
        """
        Args:
            base_url: Base URL for the LLM service
            model: Model name to use
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.timeout = timeout

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """
        Produce an answer for a single prompt.

        Raises:
            LLMConnectionError: If unable to connect to service
            LLMResponseError: If response is invalid or contains error
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the service is reachable and the model is available."""
        pass

    @abstractmethod
    async def list_models(self) -> List[str]:
        pass

    async def close(self) -> None:
        """Release network resources held by the client."""
        pass

    def get_provider_name(self) -> str:
        return self.__class__.__name__.replace('Client', '').lower()
