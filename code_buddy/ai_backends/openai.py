"""
OpenAI chat-completions backend.
"""

from typing import Any, Dict, Optional

from .base import AIBackend, AIResponse


class OpenAIBackend(AIBackend):
    """OpenAI backend implementation."""

    name = "OpenAI"
    env_key = "OPENAI_API_KEY"
    base_url = "https://api.openai.com/v1"

    def __init__(self, api_key: str, model: str, timeout: int = 30, base_url: Optional[str] = None, **kwargs):
        super().__init__(api_key, model, timeout, **kwargs)
        if base_url:
            self.base_url = base_url.rstrip('/')

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 100,
            "temperature": 0.3,
        }

    async def call_api(self, prompt: str) -> AIResponse:
        """Call the chat completions endpoint."""
        data = await self._post_json(
            f"{self.base_url}/chat/completions",
            self.build_payload(prompt),
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        return AIResponse(
            content=self.parse_content(data),
            model=self.model,
            backend_type=self.backend_type,
            raw_response=data
        )

    @staticmethod
    def parse_content(data: Dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return (message.get("content") or "").strip()
