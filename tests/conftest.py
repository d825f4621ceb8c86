import io
import os
from pathlib import Path

import git
import pytest
from rich.console import Console

from code_buddy.ui.console import CodeBuddyConsole

PROVIDER_ENV_KEYS = ("OPENAI_API_KEY", "GEMINI_API_KEY", "ADDIS_AI_API_KEY")


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Run every test from an empty directory with no credentials or CB_ overrides."""
    for key in PROVIDER_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    for key in list(os.environ):
        if key.startswith("CB_"):
            monkeypatch.delenv(key, raising=False)

    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    return workdir


@pytest.fixture
def git_repo(tmp_path) -> Path:
    """A repository on ``main`` with one commit and no remote."""
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    repo = git.Repo.init(repo_dir)

    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")

    readme = repo_dir / "README.md"
    readme.write_text("# Demo\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")
    repo.git.branch("-M", "main")
    return repo_dir


@pytest.fixture
def bare_remote(tmp_path, git_repo) -> Path:
    """A bare repository registered as ``origin`` of ``git_repo``."""
    remote_dir = tmp_path / "remote.git"
    git.Repo.init(remote_dir, bare=True)
    git.Repo(git_repo).create_remote("origin", str(remote_dir))
    return remote_dir


@pytest.fixture
def console() -> CodeBuddyConsole:
    """Console whose output is captured in memory; read it with ``console.output()``."""
    ui = CodeBuddyConsole()
    buffer = io.StringIO()
    ui.console = Console(file=buffer, theme=ui.theme, width=120, color_system=None)
    ui.output = buffer.getvalue
    return ui
