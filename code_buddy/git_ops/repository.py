"""
Git repository operations built on GitPython.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from loguru import logger

from ..exceptions import ExternalCommandFailure, RepositoryStateError


@dataclass
class DiffStats:
    """Added/removed line counts of a unified diff."""

    added: int = 0
    removed: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


@dataclass
class GitResult:
    """Outcome of a mutating git operation."""

    success: bool
    output: str = ""
    nothing_to_commit: bool = False


@dataclass
class RepoInfo:
    """Summary shown by the ``info`` command."""

    name: str
    origin: Optional[str]
    branch: str
    last_commit: Optional[str]
    total_commits: int


def compute_diff_stats(diff: str) -> DiffStats:
    """Count added and removed lines, skipping the ``+++``/``---`` file headers."""
    stats = DiffStats()
    if not diff:
        return stats

    for line in diff.split("\n"):
        if line.startswith("+") and not line.startswith("+++"):
            stats.added += 1
        elif line.startswith("-") and not line.startswith("---"):
            stats.removed += 1

    return stats


class GitRepository:
    """Git collaborator used by the CLI commands and the watch workflow."""

    def __init__(self, repo_path: Optional[Path] = None):
        """Open the repository rooted exactly at ``repo_path``."""
        self.repo_path = Path(repo_path or Path.cwd()).resolve()
        try:
            self.repo = Repo(self.repo_path)
            logger.debug(f"Initialized Git repository at {self.repo.working_dir}")
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise RepositoryStateError(f"Not a Git repository: {self.repo_path}")

    @staticmethod
    def is_repository(path: Optional[Path] = None) -> bool:
        """True only when ``path`` is the top level of a work tree."""
        path = Path(path or Path.cwd()).resolve()
        if (path / ".git").exists():
            return True
        try:
            repo = Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            return False
        return repo.working_tree_dir is not None and Path(repo.working_tree_dir).resolve() == path

    def current_branch(self) -> str:
        """Current branch name, or an empty string when HEAD is detached."""
        try:
            return self.repo.active_branch.name
        except (TypeError, ValueError):
            return ""

    def status_porcelain(self) -> List[str]:
        """Lines of ``git status --porcelain``."""
        output = self.repo.git.status("--porcelain")
        return [line for line in output.split("\n") if line.strip()]

    def has_changes(self) -> bool:
        return bool(self.status_porcelain())

    def diff(self, staged: bool = False) -> str:
        """Return the staged or unstaged diff text."""
        try:
            if staged:
                return self.repo.git.diff("--cached")
            return self.repo.git.diff()
        except GitCommandError as e:
            logger.error(f"Failed to get {'staged' if staged else 'unstaged'} diff: {e}")
            raise GitRepositoryError("Failed to get diff", str(e))

    def stage_all(self) -> GitResult:
        """Stage every change in the work tree."""
        try:
            output = self.repo.git.add("--all")
            logger.info("Staged all changes")
            return GitResult(success=True, output=output)
        except GitCommandError as e:
            logger.error(f"Failed to stage changes: {e}")
            return GitResult(success=False, output=_command_output(e))

    def commit(self, message: str) -> GitResult:
        """Create a commit; "nothing to commit" is reported separately."""
        try:
            output = self.repo.git.commit("-m", message)
            logger.info(f"Created commit: {message}")
            return GitResult(success=True, output=output)
        except GitCommandError as e:
            output = _command_output(e)
            if "nothing to commit" in output:
                logger.info("Nothing to commit")
                return GitResult(success=False, output=output, nothing_to_commit=True)
            logger.error(f"Failed to commit: {output}")
            return GitResult(success=False, output=output)

    def push(self, branch: str = "main", remote: str = "origin") -> GitResult:
        """Push ``branch`` to ``remote``."""
        try:
            output = self.repo.git.push(remote, branch)
            logger.info(f"Pushed to {remote}/{branch}")
            return GitResult(success=True, output=output)
        except GitCommandError as e:
            logger.error(f"Failed to push: {e}")
            return GitResult(success=False, output=_command_output(e))

    def get_branches(self, remote: bool = False, all: bool = False) -> List[str]:
        """Raw ``git branch`` lines, most recently committed first."""
        args = ["--sort=-committerdate"]
        if all:
            args.insert(0, "-a")
        elif remote:
            args.insert(0, "-r")
        try:
            output = self.repo.git.branch(*args)
        except GitCommandError as e:
            raise GitRepositoryError("Failed to list branches", _command_output(e))
        return [line for line in output.split("\n") if line.strip()]

    def unpushed_commits_count(self) -> Optional[int]:
        """Commits ahead of upstream, or None when no upstream is configured."""
        try:
            return int(self.repo.git.rev_list("--count", "@{u}..HEAD").strip())
        except (GitCommandError, ValueError):
            return None

    def remote_url(self, remote: str = "origin") -> Optional[str]:
        try:
            return self.repo.git.remote("get-url", remote).strip()
        except GitCommandError:
            return None

    def last_commit_summary(self) -> Optional[str]:
        try:
            return self.repo.git.log("-1", "--pretty=format:%h - %s (%an, %ar)")
        except GitCommandError:
            return None

    def total_commits(self) -> int:
        try:
            return int(self.repo.git.rev_list("--count", "HEAD").strip())
        except (GitCommandError, ValueError):
            return 0

    def get_repo_info(self) -> RepoInfo:
        origin = self.remote_url()
        return RepoInfo(
            name=self.repo_path.name,
            origin=origin,
            branch=self.current_branch(),
            last_commit=self.last_commit_summary(),
            total_commits=self.total_commits(),
        )


def _command_output(error: GitCommandError) -> str:
    parts = [str(part).strip() for part in (error.stderr, error.stdout) if part]
    return "\n".join(part for part in parts if part) or str(error)


class GitRepositoryError(ExternalCommandFailure):
    """Custom exception for Git repository operations."""
    pass
