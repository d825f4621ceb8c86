"""
Addis AI backend. Speaks the OpenAI chat-completions dialect.
"""

from .openai import OpenAIBackend


class AddisAIBackend(OpenAIBackend):
    """Addis AI backend with local-language support."""

    name = "Addis AI"
    env_key = "ADDIS_AI_API_KEY"
    base_url = "https://api.addisai.com/v1"
    system_prompt = (
        "You are a helpful assistant that generates concise git commit messages "
        "based on code diffs. Support local languages when appropriate."
    )

    def build_prompt(self, diff: str) -> str:
        return self.prompt_builder.build_local_language_prompt(diff)
