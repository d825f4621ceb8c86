"""
Workflow pipeline run by the watcher once file changes settle.

The pipeline is linear with early exits and no retries::

    CheckRepoDirty -> QualityGate -> DiffCapture -> MessageGeneration
        -> Confirmation -> Commit (stage, commit, push)

Every step reports success or failure; a failure is printed, logged and ends
the run. Nothing here raises to the caller, so the watch loop always resumes.
"""

import asyncio
import threading
from enum import Enum
from typing import AbstractSet, List, Optional

from loguru import logger

from .config.settings import WorkflowConfig
from .exceptions import CodeBuddyError, RepositoryStateError, UserDeclined
from .git_ops.repository import GitRepository, compute_diff_stats
from .quality.runner import QualityChecker
from .ui.console import CodeBuddyConsole
from .utils.commit_message import CommitMessageGenerator


class PipelineOutcome(str, Enum):
    """How a pipeline run ended."""

    EMPTY = "empty"
    NO_CHANGES = "no_changes"
    CHECKS_FAILED = "checks_failed"
    DECLINED = "declined"
    STAGE_FAILED = "stage_failed"
    COMMIT_FAILED = "commit_failed"
    PUSH_FAILED = "push_failed"
    COMMITTED = "committed"
    ERROR = "error"


class WorkflowPipeline:
    """Quality gate, commit message, confirmation, then stage/commit/push."""

    def __init__(
        self,
        config: WorkflowConfig,
        git_repo: GitRepository,
        checker: QualityChecker,
        messages: CommitMessageGenerator,
        console: CodeBuddyConsole,
        stop: Optional[asyncio.Event] = None,
    ):
        self.config = config
        self.stop = stop
        self.git_repo = git_repo
        self.checker = checker
        self.messages = messages
        self.console = console

    async def run(self, changes: AbstractSet[str]) -> PipelineOutcome:
        """Run the workflow once for a drained batch of changed paths."""
        if not changes:
            return PipelineOutcome.EMPTY

        logger.info(f"Running workflow for {len(changes)} changed paths")
        self.console.print_step("🔄", "Processing file changes...")

        try:
            return await self._run_steps()
        except UserDeclined:
            self.console.print_skip("Skipping commit and push")
            return PipelineOutcome.DECLINED
        except RepositoryStateError as e:
            self.console.print_warning(str(e))
            return PipelineOutcome.NO_CHANGES
        except CodeBuddyError as e:
            logger.error(f"Workflow aborted: {e}")
            self.console.print_error(f"Error processing changes: {e}")
            return PipelineOutcome.ERROR
        except Exception as e:
            logger.exception("Unexpected error in workflow")
            self.console.print_error(f"Error processing changes: {e}")
            return PipelineOutcome.ERROR

    async def _run_steps(self) -> PipelineOutcome:
        if not await asyncio.to_thread(self.git_repo.has_changes):
            raise RepositoryStateError("No git changes detected, skipping workflow")

        self.console.print_step("📋", "Running quality checks...")
        results = await self.checker.run_checks(self.config)
        if not results.all_passed:
            logger.warning(f"Quality gate failed: {results}")
            self.console.print_error("Quality checks failed, skipping git operations")
            return PipelineOutcome.CHECKS_FAILED
        self.console.print_success("All quality checks passed!")

        diff = await asyncio.to_thread(self.git_repo.diff)
        stats = compute_diff_stats(diff)

        self.console.print_step("💭", "Generating commit message...")
        message = await self.messages.generate(diff, self.config.use_ai)
        logger.info(f"Commit message: {message}")

        details = self.console.commit_details(stats, message, self.config.branch)
        if self.config.auto_confirm:
            self.console.print_details("📦 Auto-confirming commit and push...", details)
        else:
            if not await self._confirm(details):
                raise UserDeclined("User declined commit")

        return await self._commit_and_push(message)

    async def _confirm(self, details: List[str]) -> bool:
        """Prompt for confirmation; a stop request while waiting declines.

        The prompt runs on a daemon thread so a blocked ``input()`` never
        holds up interpreter shutdown once the session has stopped.
        """
        if self.stop is not None and self.stop.is_set():
            return False

        loop = asyncio.get_running_loop()
        answer = loop.create_future()

        def deliver(result, error):
            if answer.done():
                return
            if error is not None:
                answer.set_exception(error)
            else:
                answer.set_result(result)

        def ask():
            result, error = None, None
            try:
                result = self.console.confirm_with_details(
                    "📦 Ready to commit and push", details, "Commit and push now?", True
                )
            except Exception as e:
                error = e
            try:
                loop.call_soon_threadsafe(deliver, result, error)
            except RuntimeError:
                # Loop already closed: the session stopped while the prompt waited.
                logger.debug("Confirmation answered after the watch stopped")

        threading.Thread(target=ask, name="code-buddy-confirm", daemon=True).start()

        if self.stop is None:
            return await answer

        stopped = asyncio.ensure_future(self.stop.wait())
        try:
            await asyncio.wait({answer, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
        if self.stop.is_set():
            logger.info("Stop requested while waiting for confirmation")
            answer.cancel()
            return False
        return answer.result()

    async def _commit_and_push(self, message: str) -> PipelineOutcome:
        """Stage, commit and push; each step runs only if the previous succeeded."""
        self.console.print_step("🚀", "Starting git workflow...")

        self.console.print_step("📦", "Staging all changes...")
        staged = await asyncio.to_thread(self.git_repo.stage_all)
        if not staged.success:
            self.console.print_error("Failed to stage changes")
            self._echo(staged.output)
            return PipelineOutcome.STAGE_FAILED
        self.console.print_success("All changes staged")

        self.console.print_step("💾", "Committing changes...")
        committed = await asyncio.to_thread(self.git_repo.commit, message)
        if not committed.success:
            if committed.nothing_to_commit:
                self.console.print_warning("No changes to commit.")
            else:
                self.console.print_error("Failed to commit changes")
                self._echo(committed.output)
            return PipelineOutcome.COMMIT_FAILED
        self._echo(committed.output)
        self.console.print_success("Changes committed")

        self.console.print_step("🚀", f"Pushing to {self.config.branch}...")
        pushed = await asyncio.to_thread(self.git_repo.push, self.config.branch)
        if not pushed.success:
            self.console.print_error("Failed to push changes")
            self._echo(pushed.output)
            return PipelineOutcome.PUSH_FAILED
        self._echo(pushed.output)
        self.console.print_success("Changes pushed")

        self.console.print("[success]🎉 Successfully committed and pushed changes![/success]")
        return PipelineOutcome.COMMITTED

    def _echo(self, output: str) -> None:
        if output:
            self.console.print_output(output)
