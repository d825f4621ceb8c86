"""
Abstract base class for commit-message providers.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from ..exceptions import ProviderFailure
from ..utils.message_extractor import message_extractor
from ..utils.prompts import PromptBuilder


@dataclass
class AIResponse:
    """Structured AI response data."""

    content: str
    model: str
    response_time: Optional[float] = None
    backend_type: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


class AIBackend(ABC):
    """A remote text-generation service that can write commit messages.

    Subclasses declare ``name`` (display name), ``env_key`` (the environment
    variable holding the credential) and implement :meth:`call_api`.
    """

    name: str = "AI"
    env_key: str = ""
    system_prompt = (
        "You are a helpful assistant that generates concise, conventional "
        "git commit messages based on code diffs."
    )

    def __init__(self, api_key: str, model: str, timeout: int = 30, prompt_builder: Optional[PromptBuilder] = None):
        """Initialize the AI backend."""
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.backend_type = self.__class__.__name__.lower().replace('backend', '')

    @abstractmethod
    async def call_api(self, prompt: str) -> AIResponse:
        """Call the AI API with the given prompt."""
        pass

    def build_prompt(self, diff: str) -> str:
        return self.prompt_builder.build_commit_prompt(diff)

    async def generate(self, diff: str) -> str:
        """Return a commit message for ``diff`` or raise :class:`ProviderFailure`."""
        prompt = self.build_prompt(diff)
        self._log_request(prompt)

        start_time = time.time()
        try:
            response = await self.call_api(prompt)
        except ProviderFailure:
            raise
        except (aiohttp.ClientError, TimeoutError) as e:
            raise ProviderFailure(f"{self.name} request failed: {e}") from e
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderFailure(f"{self.name} returned an unexpected payload: {e}") from e
        response.response_time = time.time() - start_time
        self._log_response(response)

        message = message_extractor.extract_commit_message(response.content)
        if not message:
            raise ProviderFailure(f"{self.name} response was empty")
        return message

    async def health_check(self) -> bool:
        """Check that the provider answers a trivial request."""
        try:
            response = await self.call_api("Reply with the single word: ok")
            return bool(response.content.strip())
        except Exception as e:
            logger.debug(f"{self.name} health check failed: {e}")
            return False

    def _client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.timeout)

    async def _post_json(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """POST ``payload`` and return the decoded JSON body."""
        async with aiohttp.ClientSession(timeout=self._client_timeout()) as session:
            async with session.post(url, json=payload, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise ProviderFailure(
                        f"{self.name} API error: {response.status} {response.reason} - {body[:200]}"
                    )
                return await response.json()

    def _log_request(self, prompt: str) -> None:
        """Log the API request details."""
        logger.debug(f"AI API request to {self.backend_type}")
        logger.debug(f"Model: {self.model}")
        logger.debug(f"Prompt length: {len(prompt)} characters")
        logger.debug(f"Timeout: {self.timeout}s")

    def _log_response(self, response: AIResponse) -> None:
        """Log the API response details."""
        logger.debug(f"AI API response from {self.backend_type}")
        logger.debug(f"Response length: {len(response.content)} characters")
        if response.response_time:
            logger.debug(f"Response time: {response.response_time:.2f}s")
