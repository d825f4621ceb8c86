"""Tests for the watch workflow pipeline."""

import asyncio
import threading

import git
import pytest

from code_buddy.config.settings import WorkflowConfig
from code_buddy.core import PipelineOutcome, WorkflowPipeline
from code_buddy.git_ops.repository import GitRepository, GitResult
from code_buddy.quality.runner import CheckResults, QualityChecker
from code_buddy.utils.commit_message import CommitMessageGenerator
from code_buddy.watcher.debouncer import ChangeDebouncer

DIFF = """diff --git a/app.py b/app.py
--- a/app.py
+++ b/app.py
@@ -1 +1,2 @@
 print("a")
+print("b")
"""

CHANGES = frozenset({"app.py"})


@pytest.fixture
def git_double(mocker):
    repo = mocker.Mock(spec=GitRepository)
    repo.has_changes.return_value = True
    repo.diff.return_value = DIFF
    repo.stage_all.return_value = GitResult(success=True)
    repo.commit.return_value = GitResult(success=True, output="[main abc123] feat: add b")
    repo.push.return_value = GitResult(success=True)
    return repo


@pytest.fixture
def checker(mocker):
    checker = mocker.Mock(spec=QualityChecker)
    checker.run_checks = mocker.AsyncMock(return_value=CheckResults(tests_pass=True, lint_pass=True))
    return checker


@pytest.fixture
def messages(mocker):
    messages = mocker.Mock(spec=CommitMessageGenerator)
    messages.generate = mocker.AsyncMock(return_value="feat: add b")
    return messages


def make_pipeline(config, git_double, checker, messages, console):
    return WorkflowPipeline(config, git_double, checker, messages, console)


@pytest.mark.asyncio
async def test_empty_batch_is_a_no_op(git_double, checker, messages, console):
    pipeline = make_pipeline(WorkflowConfig(), git_double, checker, messages, console)

    assert await pipeline.run(frozenset()) == PipelineOutcome.EMPTY
    git_double.has_changes.assert_not_called()


@pytest.mark.asyncio
async def test_clean_work_tree_skips_everything(git_double, checker, messages, console):
    git_double.has_changes.return_value = False
    pipeline = make_pipeline(WorkflowConfig(), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.NO_CHANGES
    checker.run_checks.assert_not_called()
    git_double.stage_all.assert_not_called()


@pytest.mark.asyncio
async def test_lint_failure_blocks_git_operations(git_double, checker, messages, console):
    checker.run_checks.return_value = CheckResults(tests_pass=True, lint_pass=False)
    pipeline = make_pipeline(WorkflowConfig(), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.CHECKS_FAILED
    assert git_double.stage_all.call_count == 0
    assert git_double.commit.call_count == 0
    assert git_double.push.call_count == 0
    messages.generate.assert_not_called()


@pytest.mark.asyncio
async def test_declined_confirmation_aborts_without_error(git_double, checker, messages, console, mocker):
    confirm = mocker.patch.object(console, "confirm_with_details", return_value=False)
    pipeline = make_pipeline(WorkflowConfig(), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.DECLINED
    confirm.assert_called_once()
    git_double.stage_all.assert_not_called()
    git_double.commit.assert_not_called()
    assert "Skipping commit and push" in console.output()


@pytest.mark.asyncio
async def test_confirmed_run_commits_and_pushes(git_double, checker, messages, console, mocker):
    confirm = mocker.patch.object(console, "confirm_with_details", return_value=True)
    pipeline = make_pipeline(WorkflowConfig(branch="develop"), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.COMMITTED

    details = confirm.call_args.args[1]
    assert any("1 lines added, 0 lines removed" in line for line in details)
    assert any("develop" in line for line in details)
    git_double.commit.assert_called_once_with("feat: add b")
    git_double.push.assert_called_once_with("develop")


@pytest.mark.asyncio
async def test_auto_confirm_skips_prompt(git_double, checker, messages, console, mocker):
    confirm = mocker.patch.object(console, "confirm_with_details")
    pipeline = make_pipeline(WorkflowConfig(auto_confirm=True), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.COMMITTED
    confirm.assert_not_called()


@pytest.mark.asyncio
async def test_use_ai_flag_is_passed_to_message_generation(git_double, checker, messages, console):
    pipeline = make_pipeline(WorkflowConfig(auto_confirm=True, use_ai=True), git_double, checker, messages, console)

    await pipeline.run(CHANGES)

    messages.generate.assert_awaited_once_with(DIFF, True)


@pytest.mark.asyncio
async def test_stage_failure_stops_commit(git_double, checker, messages, console):
    git_double.stage_all.return_value = GitResult(success=False, output="fatal: index.lock exists")
    pipeline = make_pipeline(WorkflowConfig(auto_confirm=True), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.STAGE_FAILED
    git_double.commit.assert_not_called()
    git_double.push.assert_not_called()


@pytest.mark.asyncio
async def test_commit_failure_stops_push(git_double, checker, messages, console):
    git_double.commit.return_value = GitResult(success=False, output="nothing to commit", nothing_to_commit=True)
    pipeline = make_pipeline(WorkflowConfig(auto_confirm=True), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.COMMIT_FAILED
    git_double.push.assert_not_called()
    assert "No changes to commit" in console.output()


@pytest.mark.asyncio
async def test_push_failure_is_reported(git_double, checker, messages, console):
    git_double.push.return_value = GitResult(success=False, output="rejected")
    pipeline = make_pipeline(WorkflowConfig(auto_confirm=True), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.PUSH_FAILED
    assert "Failed to push changes" in console.output()


@pytest.mark.asyncio
async def test_unexpected_error_is_contained(git_double, checker, messages, console):
    messages.generate.side_effect = RuntimeError("kaboom")
    pipeline = make_pipeline(WorkflowConfig(auto_confirm=True), git_double, checker, messages, console)

    assert await pipeline.run(CHANGES) == PipelineOutcome.ERROR
    git_double.stage_all.assert_not_called()
    assert "kaboom" in console.output()


@pytest.mark.asyncio
async def test_end_to_end_against_real_repository(git_repo, bare_remote, console):
    (git_repo / "README.md").write_text("# Demo\nMore docs\n")
    config = WorkflowConfig(
        branch="main",
        test_command="exit 0",
        lint_command="exit 0",
        auto_confirm=True,
    )
    pipeline = WorkflowPipeline(
        config,
        GitRepository(git_repo),
        QualityChecker(console, cwd=git_repo),
        CommitMessageGenerator(lambda: [], console=console),
        console,
    )

    assert await pipeline.run(frozenset({"README.md"})) == PipelineOutcome.COMMITTED

    pushed = git.Repo(bare_remote).commit("main")
    assert pushed.message.strip() == "Update files — 1 lines added"


@pytest.mark.asyncio
async def test_stop_while_prompting_declines_without_git_operations(git_double, checker, messages, console, mocker):
    asked = threading.Event()
    answered = threading.Event()

    def wait_for_enter(*args):
        asked.set()
        answered.wait(5)
        return True

    mocker.patch.object(console, "confirm_with_details", side_effect=wait_for_enter)
    stop = asyncio.Event()
    pipeline = WorkflowPipeline(WorkflowConfig(), git_double, checker, messages, console, stop=stop)

    task = asyncio.create_task(pipeline.run(CHANGES))
    assert await asyncio.to_thread(asked.wait, 5)
    stop.set()

    try:
        assert await asyncio.wait_for(task, timeout=5) == PipelineOutcome.DECLINED
    finally:
        answered.set()

    git_double.stage_all.assert_not_called()
    git_double.commit.assert_not_called()
    git_double.push.assert_not_called()
    assert "Skipping commit and push" in console.output()


@pytest.mark.asyncio
async def test_stop_before_prompt_skips_confirmation(git_double, checker, messages, console, mocker):
    confirm = mocker.patch.object(console, "confirm_with_details", return_value=True)
    stop = asyncio.Event()
    stop.set()
    pipeline = WorkflowPipeline(WorkflowConfig(), git_double, checker, messages, console, stop=stop)

    assert await pipeline.run(CHANGES) == PipelineOutcome.DECLINED
    confirm.assert_not_called()
    git_double.commit.assert_not_called()


@pytest.mark.asyncio
async def test_answer_is_used_when_no_stop_requested(git_double, checker, messages, console, mocker):
    mocker.patch.object(console, "confirm_with_details", return_value=True)
    pipeline = WorkflowPipeline(WorkflowConfig(), git_double, checker, messages, console, stop=asyncio.Event())

    assert await pipeline.run(CHANGES) == PipelineOutcome.COMMITTED


@pytest.mark.asyncio
async def test_declined_batch_is_cleared_and_watch_resumes(git_double, checker, messages, console, mocker):
    confirm = mocker.patch.object(console, "confirm_with_details", return_value=False)
    pipeline = make_pipeline(WorkflowConfig(), git_double, checker, messages, console)
    outcomes = []

    async def run(batch):
        outcomes.append((batch, await pipeline.run(batch)))

    debouncer = ChangeDebouncer(run, delay=0.05)

    debouncer.on_file_event("app.py", "modified")
    await asyncio.sleep(0.3)

    assert confirm.call_count == 1
    assert debouncer.pending == frozenset()
    assert not debouncer.is_running

    debouncer.on_file_event("util.py", "added")
    await asyncio.sleep(0.3)
    await debouncer.close()

    assert confirm.call_count == 2
    assert outcomes == [
        (frozenset({"app.py"}), PipelineOutcome.DECLINED),
        (frozenset({"util.py"}), PipelineOutcome.DECLINED),
    ]
    git_double.commit.assert_not_called()
