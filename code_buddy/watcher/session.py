"""
Watch session: owns the debouncer and the watch handle for one ``watch`` run.
"""

import asyncio
import signal
import time
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..ai_backends.factory import BackendFactory
from ..config.settings import Settings, WorkflowConfig
from ..core import WorkflowPipeline
from ..git_ops.repository import GitRepository
from ..quality.runner import QualityChecker
from ..ui.console import CodeBuddyConsole
from ..utils.commit_message import CommitMessageGenerator
from .debouncer import ChangeDebouncer
from .file_watcher import FileWatcher


class WatchSession:
    """Wire the watcher, debouncer and pipeline together for one session."""

    def __init__(
        self,
        settings: Settings,
        config: WorkflowConfig,
        console: CodeBuddyConsole,
        repo_path: Optional[Path] = None,
        verbose: bool = False,
    ):
        self.settings = settings
        self.config = config
        self.console = console
        self.repo_path = Path(repo_path or Path.cwd()).resolve()
        self.verbose = verbose
        self._stop = asyncio.Event()

        self.git_repo = GitRepository(self.repo_path)
        self.pipeline = WorkflowPipeline(
            config=config,
            git_repo=self.git_repo,
            checker=QualityChecker(console, cwd=self.repo_path),
            messages=CommitMessageGenerator(
                lambda: BackendFactory.available_backends(settings),
                console=console,
            ),
            console=console,
            stop=self._stop,
        )
        self.debouncer: Optional[ChangeDebouncer] = None
        self.watcher: Optional[FileWatcher] = None

    def request_stop(self) -> None:
        """Ask the session to unwind. Safe to call from a signal handler."""
        if not self._stop.is_set():
            self.console.print("\n[warning]🛑 Stopping file watcher...[/warning]")
            self._stop.set()

    def _on_file_event(self, path: str, kind: str) -> None:
        timestamp = time.strftime("%H:%M:%S") if self.verbose else None
        self.console.print_file_event(path, kind, timestamp)
        self.debouncer.on_file_event(path, kind)

    def _on_directory_event(self, path: str, added: bool) -> None:
        if self.verbose:
            self.console.print_directory_event(path, added)

    def _on_drained(self) -> None:
        self.console.print("\n[info]👀 Watching for more changes...[/info]\n")

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> List[int]:
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Windows event loops; KeyboardInterrupt still unwinds run().
                logger.debug(f"Signal handler for {sig} not supported")
        return installed

    async def run(self) -> None:
        """Watch until interrupted, then release everything in order."""
        loop = asyncio.get_running_loop()
        self.debouncer = ChangeDebouncer(
            self.pipeline.run,
            delay=self.config.debounce_seconds,
            loop=loop,
            on_drained=self._on_drained,
        )
        self.watcher = FileWatcher(
            self.repo_path,
            on_file_event=self._on_file_event,
            ignore_patterns=self.config.ignore_patterns,
            settle_seconds=self.config.settle_seconds,
            on_directory_event=self._on_directory_event,
        )

        self.console.print_watch_configuration(self.config, self.watcher.ignore_patterns)
        installed = self._install_signal_handlers(loop)
        try:
            async with self.watcher:
                if self.verbose:
                    self.console.print("[success]✅ Initial scan complete. Ready for changes.[/success]\n")
                self.console.print("[warning]Press Ctrl+C to stop watching...[/warning]\n")
                await self._stop.wait()
                # Let an in-flight commit/push finish before releasing the watch.
                await self.debouncer.close()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            await self.debouncer.close()

        self.console.print_success("File watcher stopped")


async def run_watch(
    settings: Settings,
    config: WorkflowConfig,
    console: CodeBuddyConsole,
    repo_path: Optional[Path] = None,
    verbose: bool = False,
) -> None:
    """Entry point used by the ``watch`` command."""
    session = WatchSession(settings, config, console, repo_path=repo_path, verbose=verbose)
    await session.run()
