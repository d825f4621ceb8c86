"""Filesystem watcher that feeds settled file events to a callback."""

import asyncio
import fnmatch
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)
from watchdog.observers import Observer

FileEventCallback = Callable[[str, str], None]
DirectoryEventCallback = Callable[[str, bool], None]

DEFAULT_IGNORE_PATTERNS = [
    ".git/**",
    "node_modules/**",
    "dist/**",
    ".DS_Store",
    "*.log",
    ".env*",
    "coverage/**",
    ".nyc_output/**",
    "**/*.tmp",
    "**/*.temp",
    "__pycache__/**",
    "*.pyc",
    ".pytest_cache/**",
    ".venv/**",
]


def should_ignore(relative_path: str, patterns: Iterable[str]) -> bool:
    """Match a POSIX relative path against glob patterns.

    ``dir/**`` patterns match the directory at any depth; other patterns are
    tried against the full path and the basename.
    """
    path = PurePosixPath(relative_path)
    name = path.name
    parts = path.parts

    for pattern in patterns:
        if pattern.endswith("/**"):
            directory = pattern[:-3]
            if directory.startswith("**/"):
                directory = directory[3:]
            if _matches_segments(parts, PurePosixPath(directory).parts):
                return True
            continue

        if fnmatch.fnmatch(relative_path, pattern):
            return True
        bare = pattern[3:] if pattern.startswith("**/") else pattern
        if fnmatch.fnmatch(name, bare):
            return True

    return False


def _matches_segments(parts: Tuple[str, ...], directory: Tuple[str, ...]) -> bool:
    """True when ``directory`` matches a run of consecutive path segments."""
    width = len(directory)
    if not width:
        return False
    for start in range(len(parts) - width + 1):
        window = parts[start:start + width]
        if all(fnmatch.fnmatch(part, glob) for part, glob in zip(window, directory)):
            return True
    return False


class _EventAdapter(FileSystemEventHandler):
    """Runs in the observer thread; forwards translated events to the loop."""

    def __init__(self, watcher: "FileWatcher"):
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher._dispatch(event.src_path, "added", event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher._dispatch(event.src_path, "modified", False)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher._dispatch(event.src_path, "deleted", event.is_directory)

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        self.watcher._dispatch(event.src_path, "deleted", event.is_directory)
        self.watcher._dispatch(event.dest_path, "added", event.is_directory)


class FileWatcher:
    """Recursive watch over a directory tree.

    Use as an async context manager; the observer thread is always stopped
    and joined on exit::

        async with FileWatcher(root, on_file_event=debouncer.on_file_event):
            await stop_event.wait()
    """

    def __init__(
        self,
        root_path: Path,
        on_file_event: FileEventCallback,
        ignore_patterns: Optional[Iterable[str]] = None,
        settle_seconds: float = 0.3,
        on_directory_event: Optional[DirectoryEventCallback] = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.root_path = Path(root_path).resolve()
        self.on_file_event = on_file_event
        self.on_directory_event = on_directory_event
        self.settle_seconds = settle_seconds
        self.ignore_patterns: List[str] = list(DEFAULT_IGNORE_PATTERNS)
        if ignore_patterns:
            self.ignore_patterns.extend(ignore_patterns)

        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        # Per-path settle timers: path -> (timer, latest kind)
        self._settling: Dict[str, Tuple[asyncio.TimerHandle, str]] = {}

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    async def __aenter__(self) -> "FileWatcher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await asyncio.to_thread(self.stop)

    def start(self) -> None:
        """Start the observer thread. Must be called from the event loop."""
        if self._observer is not None:
            logger.warning("Watcher already running")
            return

        self._loop = asyncio.get_running_loop()
        observer = self._observer_factory()
        observer.schedule(_EventAdapter(self), str(self.root_path), recursive=True)
        observer.start()
        self._observer = observer
        logger.info(f"Started watching: {self.root_path}")

    def stop(self) -> None:
        """Stop and join the observer; drop events still settling."""
        observer, self._observer = self._observer, None
        if observer is None:
            return

        observer.stop()
        observer.join(timeout=5)
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._cancel_settling)
        logger.info("Stopped watching")

    def relative(self, path: str) -> str:
        try:
            return Path(path).resolve().relative_to(self.root_path).as_posix()
        except ValueError:
            return Path(path).as_posix()

    def _dispatch(self, src_path, kind: str, is_directory: bool) -> None:
        """Observer thread entry point."""
        if isinstance(src_path, bytes):
            src_path = src_path.decode(errors="replace")
        relative_path = self.relative(src_path)
        if not relative_path or relative_path == "." or should_ignore(relative_path, self.ignore_patterns):
            return

        loop = self._loop
        if loop is None or loop.is_closed():
            return

        if is_directory:
            if self.on_directory_event and kind in ("added", "deleted"):
                loop.call_soon_threadsafe(self.on_directory_event, relative_path, kind == "added")
            return

        loop.call_soon_threadsafe(self._settle, relative_path, kind)

    def _settle(self, relative_path: str, kind: str) -> None:
        """Report ``relative_path`` once it has been quiet for ``settle_seconds``."""
        if self._observer is None:
            return
        if self.settle_seconds <= 0:
            self.on_file_event(relative_path, kind)
            return

        previous = self._settling.pop(relative_path, None)
        if previous is not None:
            previous[0].cancel()
            # A file created then written is still an addition.
            if previous[1] == "added" and kind == "modified":
                kind = "added"

        timer = self._loop.call_later(self.settle_seconds, self._report, relative_path)
        self._settling[relative_path] = (timer, kind)

    def _report(self, relative_path: str) -> None:
        entry = self._settling.pop(relative_path, None)
        if entry is None or self._observer is None:
            return
        self.on_file_event(relative_path, entry[1])

    def _cancel_settling(self) -> None:
        for timer, _ in self._settling.values():
            timer.cancel()
        self._settling.clear()

    def get_status(self) -> dict:
        """Get watcher status."""
        return {
            "running": self.is_running,
            "root_path": str(self.root_path),
            "ignore_patterns": len(self.ignore_patterns),
            "settling": len(self._settling),
        }
