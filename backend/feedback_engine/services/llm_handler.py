"""
LLM Handler Service for review analysis.
This module manages communication with an OpenAI-compatible chat completions
provider (Groq by default) behind a single-method text generation interface.
"""

import logging
import httpx
import json
from typing import Any, Dict, Optional, Protocol
from datetime import datetime
import tiktoken

from ..config import settings

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Raised when the provider cannot produce a completion."""
    pass


class TextGenerator(Protocol):
    """Anything that turns a prompt into free text."""

    async def generate(self, prompt: str) -> str:
        ...


class LLMHandler:
    """Single-provider LLM handler with fixed sampling parameters."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.api_url = (api_url or settings.llm_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.model = model or settings.llm_model_name
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.timeout = timeout or settings.llm_timeout_seconds
        self.http_client = http_client
        # Loaded on first use; tiktoken may fetch the encoding file
        self.tokenizer = None

    def _get_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self.http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=5.0),
                headers=headers
            )
            logger.debug(f"HTTP client initialized with {self.timeout}s timeout")
        return self.http_client

    def count_tokens(self, text: str) -> int:
        """Count tokens in text using tiktoken."""
        try:
            if not self.tokenizer:
                self.tokenizer = tiktoken.get_encoding("cl100k_base")
            return len(self.tokenizer.encode(text))
        except Exception as e:
            logger.warning(f"Token counting failed: {e}, estimating...")
            return len(text) // 4  # Rough estimate

    async def generate(self, prompt: str) -> str:
        """
        Generate a completion for a single user prompt.

        Args:
            prompt: Full prompt text

        Returns:
            Raw completion text

        Raises:
            LLMError: On connection failure, timeout, bad status or unknown format
        """
        if not self.api_key:
            raise LLMError("LLM API key not configured")

        url = f"{self.api_url}/chat/completions"
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False
        }

        prompt_tokens = self.count_tokens(prompt)
        logger.info(f"📤 Sending request to LLM (model={self.model}, prompt_tokens={prompt_tokens}, max_tokens={self.max_tokens})")

        start_time = datetime.now()
        try:
            response = await self._get_client().post(url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"⏰ Request to LLM timed out after {self.timeout}s")
            raise LLMError(f"LLM request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Connection failed to LLM at {url}: {e}")
            raise LLMError(f"Cannot reach LLM provider at {self.api_url}") from e

        latency = (datetime.now() - start_time).total_seconds()
        logger.info(f"📥 Received response from LLM in {latency:.2f}s (status: {response.status_code})")

        if response.status_code != 200:
            logger.error(f"Provider returned error status {response.status_code}: {response.text[:500]}")
            raise LLMError(f"Provider returned status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError("Provider returned a non-JSON body") from e

        return self._extract_content(data)

    def _extract_content(self, data: Dict[str, Any]) -> str:
        """Pull completion text out of chat or text completion formats."""
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            logger.error(f"❌ No choices in response: {json.dumps(data)[:500]}")
            raise LLMError("No choices in LLM response")

        choice = choices[0]
        message = choice.get("message") or {}
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        if isinstance(choice.get("text"), str):
            return choice["text"]

        logger.error(f"❌ Unknown response format: {json.dumps(choice)[:500]}")
        raise LLMError("Response format not recognized")

    async def close(self):
        """Close HTTP client."""
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None


# Global instance
llm_handler = LLMHandler()


def get_llm_handler() -> LLMHandler:
    """Dependency injection for the LLM handler."""
    return llm_handler
