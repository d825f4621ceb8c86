"""
Commit message extraction and cleaning utilities.
"""

import re
from typing import Optional

from loguru import logger

MAX_MESSAGE_LENGTH = 200


class MessageExtractor:
    """Extract and clean commit messages from AI responses."""

    # Labels models like to put in front of the answer.
    LABEL_PATTERN = re.compile(r'^(commit message|message|commit)\s*:\s*', re.IGNORECASE)

    def __init__(self, max_length: int = MAX_MESSAGE_LENGTH):
        """Initialize message extractor."""
        self.max_length = max_length

    def extract_commit_message(self, raw_response: str) -> Optional[str]:
        """Return a usable commit message, or None when nothing is left."""
        if not raw_response:
            return None

        cleaned = self._clean_response(raw_response)
        logger.debug(f"Cleaned response: '{cleaned}' (length: {len(cleaned)})")
        if not cleaned:
            logger.warning("Empty response after cleaning")
            return None

        if len(cleaned) > self.max_length:
            # Keep the subject line when the body pushes it over the limit.
            subject = cleaned.split('\n', 1)[0]
            cleaned = subject[:self.max_length].rstrip()

        return cleaned

    def _clean_response(self, response: str) -> str:
        """Strip reasoning blocks, markdown fences, quotes and labels."""
        cleaned = re.sub(r'<think>.*?</think>', '', response, flags=re.DOTALL | re.IGNORECASE)

        cleaned = re.sub(r'```\w*\n?', '', cleaned)
        cleaned = cleaned.replace('```', '')

        lines = [line.strip() for line in cleaned.split('\n')]
        while lines and not lines[0]:
            lines.pop(0)
        while lines and not lines[-1]:
            lines.pop()
        if not lines:
            return ''

        lines[0] = self.LABEL_PATTERN.sub('', lines[0])
        cleaned = '\n'.join(lines).strip()

        for quote in ('"', "'", '`'):
            if len(cleaned) >= 2 and cleaned.startswith(quote) and cleaned.endswith(quote):
                cleaned = cleaned[1:-1].strip()

        return cleaned


def validate_commit_message(message: Optional[str]) -> bool:
    """A message is valid when it is non-blank and at most 200 characters."""
    if not message or not message.strip():
        return False
    return len(message.strip()) <= MAX_MESSAGE_LENGTH


message_extractor = MessageExtractor()
