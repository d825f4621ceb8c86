"""
Commit message generation: remote providers first, diff-statistics heuristic last.
"""

from typing import Callable, List, Optional, Sequence

from loguru import logger

from ..ai_backends.base import AIBackend
from ..exceptions import ProviderFailure
from ..git_ops.repository import DiffStats, compute_diff_stats
from ..ui.console import CodeBuddyConsole

DEFAULT_MESSAGE = "Update files"


def fallback_commit_message(stats: DiffStats) -> str:
    """Deterministic message built from added/removed line counts."""
    if not stats.added and not stats.removed:
        return DEFAULT_MESSAGE

    parts = []
    if stats.added > 0:
        parts.append(f"{stats.added} lines added")
    if stats.removed > 0:
        parts.append(f"{stats.removed} lines removed")

    return f"{DEFAULT_MESSAGE} — {', '.join(parts)}"


class CommitMessageGenerator:
    """Produce a commit message for a diff.

    ``backends_factory`` returns the providers to try, already in priority
    order; it is only called when AI mode is on so credentials are read
    lazily.
    """

    def __init__(
        self,
        backends_factory: Callable[[], Sequence[AIBackend]],
        console: Optional[CodeBuddyConsole] = None,
    ):
        self.backends_factory = backends_factory
        self.console = console

    async def generate(self, diff: str, use_ai: bool = False) -> str:
        if not diff or not diff.strip():
            return DEFAULT_MESSAGE

        if not use_ai:
            return fallback_commit_message(compute_diff_stats(diff))

        backends: List[AIBackend] = list(self.backends_factory())
        if not backends:
            self._warn("No AI API keys found in environment, using fallback")
            return fallback_commit_message(compute_diff_stats(diff))

        for backend in backends:
            self._step("🤖", f"Generating AI commit message using {backend.name}...")
            try:
                message = await backend.generate(diff)
            except ProviderFailure as e:
                logger.warning(f"{backend.name} failed: {e}")
                self._error(f"AI generation failed: {e}")
                continue
            self._success(f"{backend.name} commit message generated")
            return message

        self._warn("🔄 Using fallback commit message")
        return fallback_commit_message(compute_diff_stats(diff))

    def _step(self, icon: str, message: str) -> None:
        if self.console:
            self.console.print_step(icon, message)

    def _success(self, message: str) -> None:
        if self.console:
            self.console.print_success(message)

    def _warn(self, message: str) -> None:
        if self.console:
            self.console.print_warning(message)

    def _error(self, message: str) -> None:
        if self.console:
            self.console.print_error(message)
