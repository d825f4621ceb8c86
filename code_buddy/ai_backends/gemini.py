"""
Google Gemini backend.
"""

from typing import Any, Dict

from loguru import logger

from .base import AIBackend, AIResponse


class GeminiBackend(AIBackend):
    """Gemini ``generateContent`` backend implementation."""

    name = "Gemini"
    env_key = "GEMINI_API_KEY"
    base_url = "https://generativelanguage.googleapis.com/v1beta"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.3},
        }

    async def call_api(self, prompt: str) -> AIResponse:
        """Call the Gemini API."""
        data = await self._post_json(
            f"{self.base_url}/models/{self.model}:generateContent",
            self.build_payload(prompt),
            headers={"x-goog-api-key": self.api_key},
        )
        content = self.parse_content(data)
        if not content:
            logger.debug(f"Gemini response data: {data}")
        return AIResponse(
            content=content,
            model=self.model,
            backend_type=self.backend_type,
            raw_response=data
        )

    @staticmethod
    def parse_content(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return ""
        return (parts[0].get("text") or "").strip()
