"""
Ollama chat client used to answer questions about indexed code.

Ollama provides a REST API at http://localhost:11434
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

from .base import LLMClient, LLMResponse, LLMConnectionError, LLMResponseError

logger = logging.getLogger(__name__)


class OllamaClient(LLMClient):
    """Ollama client using the native /api/chat endpoint."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen2.5-coder:1.5b",
        timeout: float = 60.0
    ):
        super().__init__(base_url, model, timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session for the running loop.

        Timeouts are applied per request with asyncio.wait_for rather than
        aiohttp.ClientTimeout.
        """
        current_loop = asyncio.get_running_loop()

        if self._session is not None and not self._session.closed:
            if self._session_loop is current_loop:
                return self._session
            # Created on another loop; it cannot be awaited from here
            logger.debug("Discarding Ollama session bound to a different event loop")

        self._session = aiohttp.ClientSession()
        self._session_loop = current_loop
        return self._session

    def _build_payload(self, prompt: str, system_prompt: Optional[str],
                       temperature: float, max_tokens: Optional[int]) -> Dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        options: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            options["num_predict"] = max_tokens

        return {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": options,
        }

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """
        Ask the model a single question.

        Args:
            prompt: User prompt (question plus code context)
            system_prompt: Optional system prompt
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate (Ollama calls it num_predict)
        """
        start_time = time.time()
        url = f"{self.base_url}/api/chat"
        payload = self._build_payload(prompt, system_prompt, temperature, max_tokens)

        try:
            session = await self._get_session()

            async def do_request():
                async with session.post(url, json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise LLMResponseError(f"Ollama API error {response.status}: {error_text}")
                    return await response.json()

            try:
                response_data = await asyncio.wait_for(do_request(), timeout=self.timeout)
            except asyncio.TimeoutError:
                raise LLMConnectionError(f"Ollama request timed out after {self.timeout}s")

            if "error" in response_data:
                raise LLMResponseError(f"Ollama error: {response_data['error']}")

            message = response_data.get("message") or {}
            if "content" not in message:
                raise LLMResponseError("No message content in Ollama response")

            tokens_used = None
            if "eval_count" in response_data:
                tokens_used = response_data.get("eval_count", 0) + response_data.get("prompt_eval_count", 0)

            return LLMResponse(
                content=message["content"],
                model=response_data.get("model", self.model),
                tokens_used=tokens_used,
                response_time_ms=(time.time() - start_time) * 1000,
                raw_response=response_data
            )

        except aiohttp.ClientError as e:
            raise LLMConnectionError(f"Failed to connect to Ollama: {e}")
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"Invalid JSON response from Ollama: {e}")

    async def list_models(self) -> List[str]:
        """Names of the models the Ollama server has pulled."""
        try:
            session = await self._get_session()
            url = f"{self.base_url}/api/tags"

            async def do_request():
                async with session.get(url) as response:
                    if response.status != 200:
                        raise LLMConnectionError(f"Failed to list models: HTTP {response.status}")
                    return await response.json()

            try:
                tags_data = await asyncio.wait_for(do_request(), timeout=10.0)
            except asyncio.TimeoutError:
                raise LLMConnectionError("Timed out listing models")

            return [model["name"] for model in tags_data.get("models", [])]

        except aiohttp.ClientError as e:
            raise LLMConnectionError(f"Failed to connect to Ollama: {e}")

    async def health_check(self) -> bool:
        try:
            available_models = await self.list_models()
        except Exception as e:
            logger.debug(f"Ollama health check failed: {e}")
            return False

        if self.model not in available_models:
            logger.warning(f"Ollama model '{self.model}' not found. Available: {available_models}")
            return False
        return True

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
