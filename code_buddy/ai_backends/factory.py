"""
Commit-message provider factory with credential-based selection.
"""

from typing import Dict, List, Optional, Type

from loguru import logger

from .addisai import AddisAIBackend
from .base import AIBackend
from .gemini import GeminiBackend
from .openai import OpenAIBackend
from ..config.settings import Settings
from ..utils.prompts import PromptBuilder


class BackendFactory:
    """Creates providers in their fixed priority order."""

    # Priority order: first available wins.
    _backends: Dict[str, Type[AIBackend]] = {
        "openai": OpenAIBackend,
        "gemini": GeminiBackend,
        "addisai": AddisAIBackend,
    }

    @classmethod
    def _model_for(cls, backend_type: str, settings: Settings) -> str:
        return {
            "openai": settings.ai.openai_model,
            "gemini": settings.ai.gemini_model,
            "addisai": settings.ai.addisai_model,
        }[backend_type]

    @classmethod
    def create_backend(cls, backend_type: str, settings: Settings) -> Optional[AIBackend]:
        """Create a backend of the given type, or None without a usable credential."""
        if backend_type not in cls._backends:
            raise ValueError(f"Unknown backend type: {backend_type}")

        backend_class = cls._backends[backend_type]
        api_key = settings.api_key_for(backend_class.env_key)
        if not api_key:
            return None

        kwargs = {}
        if backend_type == "addisai":
            kwargs["base_url"] = settings.ai.addisai_base_url

        return backend_class(
            api_key=api_key,
            model=cls._model_for(backend_type, settings),
            timeout=settings.ai.timeout,
            prompt_builder=PromptBuilder(max_diff_lines=settings.ai.max_diff_lines),
            **kwargs
        )

    @classmethod
    def available_backends(cls, settings: Settings) -> List[AIBackend]:
        """Every backend with a credential, in priority order."""
        backends = []
        for backend_type in cls._backends:
            backend = cls.create_backend(backend_type, settings)
            if backend:
                backends.append(backend)
        logger.debug(f"Available AI backends: {[b.name for b in backends]}")
        return backends

    @classmethod
    def provider_status(cls, settings: Settings) -> List[dict]:
        """Display info for each supported provider."""
        return [
            {
                "key": backend_type,
                "name": backend_class.name,
                "env_key": backend_class.env_key,
                "model": cls._model_for(backend_type, settings),
                "available": settings.api_key_for(backend_class.env_key) is not None,
            }
            for backend_type, backend_class in cls._backends.items()
        ]

    @classmethod
    async def test_all_backends(cls, settings: Settings) -> Dict[str, Optional[bool]]:
        """Health-check every configured backend. None means no credential."""
        results: Dict[str, Optional[bool]] = {}

        for backend_type in cls._backends:
            backend = cls.create_backend(backend_type, settings)
            if backend is None:
                results[backend_type] = None
                continue
            results[backend_type] = await backend.health_check()

        return results

    @classmethod
    def list_supported_backends(cls) -> List[str]:
        """List all supported backend types."""
        return list(cls._backends.keys())
