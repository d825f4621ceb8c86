"""
Test and lint command execution for the quality gate.
"""

import asyncio
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.settings import WorkflowConfig
from ..ui.console import CodeBuddyConsole


@dataclass
class CommandResult:
    """Captured result of a shell command."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None


@dataclass
class CheckResults:
    """Results of the quality gate. Skipped checks count as passed."""

    tests_pass: bool = True
    lint_pass: bool = True

    @property
    def all_passed(self) -> bool:
        return self.tests_pass and self.lint_pass


async def run_command(command: str, cwd: Optional[Path] = None) -> CommandResult:
    """Run ``command`` through the shell and capture its output."""
    logger.debug(f"Running command: {command}")
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd
        )
        stdout, stderr = await process.communicate()
    except OSError as e:
        logger.error(f"Failed to start '{command}': {e}")
        return CommandResult(success=False, stderr=str(e))

    result = CommandResult(
        success=process.returncode == 0,
        stdout=stdout.decode(errors="replace").strip(),
        stderr=stderr.decode(errors="replace").strip(),
        returncode=process.returncode,
    )
    logger.debug(f"'{command}' exited with {process.returncode}")
    return result


class QualityChecker:
    """Runs the configured test and lint commands."""

    def __init__(self, console: CodeBuddyConsole, cwd: Optional[Path] = None):
        self.console = console
        self.cwd = cwd

    async def run_tests(self, test_command: str) -> bool:
        self.console.print_step("🧪", "Running tests...")
        result = await run_command(test_command, self.cwd)
        self._report("Tests", result)
        return result.success

    async def run_lint(self, lint_command: str) -> bool:
        self.console.print_step("🔍", "Running linter...")
        result = await run_command(lint_command, self.cwd)
        self._report("Linting", result)
        return result.success

    async def run_checks(self, config: WorkflowConfig) -> CheckResults:
        """Run tests then lint, each skippable through ``config``."""
        results = CheckResults()

        if config.run_tests:
            results.tests_pass = await self.run_tests(config.test_command)
        else:
            self.console.print_skip("Skipping tests (disabled in config)")

        if config.run_lint:
            results.lint_pass = await self.run_lint(config.lint_command)
        else:
            self.console.print_skip("Skipping linting (disabled in config)")

        return results

    def _report(self, label: str, result: CommandResult) -> None:
        if result.success:
            self.console.print_success(f"{label} passed")
        else:
            logger.warning(f"{label} failed with exit code {result.returncode}")
            self.console.print_error(f"{label} failed")
            if result.stderr:
                self.console.print_output(result.stderr, style="red")
        if result.stdout:
            self.console.print_output(result.stdout)
