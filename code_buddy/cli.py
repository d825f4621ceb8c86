"""
Command line interface using Typer with Rich integration.
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from rich.console import Console

from .ai_backends.factory import BackendFactory
from .config.settings import Settings
from .exceptions import CodeBuddyError
from .git_ops.repository import GitRepository
from .ssh.handler import SSHHandler
from .ui.console import CodeBuddyConsole
from .utils.commit_message import CommitMessageGenerator
from .watcher.session import run_watch


app = typer.Typer(
    name="code-buddy",
    help="A sophisticated CLI tool for git assistance",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=False,
)

# Global console for error handling
console = Console()

SAMPLE_DIFF = """diff --git a/README.md b/README.md
--- a/README.md
+++ b/README.md
@@ -1,3 +1,4 @@
 # Project
+Add installation instructions for new contributors.
 Some description.
"""


def setup_logging(log_level: str = "WARNING", log_file: Optional[Path] = None):
    """Setup logging configuration."""
    logger.remove()

    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        colorize=True
    )

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"File logging disabled: {e}")
            return
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="1 MB",
            retention="7 days"
        )


def _load_settings(ctx: typer.Context) -> Settings:
    settings: Settings = ctx.obj.get("settings") if ctx.obj else None
    if settings is None:
        settings = Settings.load()
    return settings


def _open_repository(ui: CodeBuddyConsole) -> GitRepository:
    if not GitRepository.is_repository(Path.cwd()):
        ui.print_error("This is not a git repository")
        raise typer.Exit(1)
    return GitRepository(Path.cwd())


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose",
        help="Enable verbose logging"
    ),
    debug: bool = typer.Option(
        False, "--debug", "-d",
        help="Enable debug logging (includes verbose)"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c",
        help="Path to a configuration file (default: discovered from the current directory)"
    ),
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version information"
    ),
):
    """
    A sophisticated CLI tool for git assistance.

    [bold blue]Examples:[/bold blue]

    [green]code-buddy status[/green]                      # Enhanced git status
    [green]code-buddy info[/green]                        # Repository information
    [green]code-buddy branch --all[/green]                # Local and remote branches
    [green]code-buddy watch --use-ai[/green]              # Watch, check, commit and push
    [green]code-buddy watch --no-tests --yes[/green]      # Lint only, no prompt
    [green]code-buddy ssh-setup you@example.com[/green]   # Generate a GitHub SSH key
    [green]code-buddy config --show[/green]               # Show configuration
    [green]code-buddy test[/green]                        # Check AI providers
    """
    if version:
        from . import __version__
        console.print(f"[bold blue]code_buddy[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()

    try:
        settings = Settings.from_file(config_file) if config_file else Settings.load()
    except (ValueError, OSError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = settings.ui.log_level
    setup_logging(log_level, settings.log_file)

    ctx.obj = {"settings": settings}

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def status(ctx: typer.Context):
    """Show enhanced git status with helpful information."""
    ui = CodeBuddyConsole(_load_settings(ctx))
    ui.print_header("🔍 code_buddy - Enhanced Status")
    git_repo = _open_repository(ui)

    try:
        branch = git_repo.current_branch() or "(detached HEAD)"
        ui.print(f"[success]📍 Current branch: [bold]{branch}[/bold][/success]")

        entries = git_repo.status_porcelain()
        if not entries:
            ui.print_success("Working directory clean")
        else:
            ui.print("[warning]📝 Changes detected:[/warning]")
            for line in entries:
                ui.print_status_entry(line)

        unpushed = git_repo.unpushed_commits_count()
        if unpushed:
            ui.print(f"\n[cyan]📤 Unpushed commits: {unpushed}[/cyan]")
    except CodeBuddyError as e:
        ui.print_error(f"Error: {e}")
        raise typer.Exit(1)


@app.command()
def info(ctx: typer.Context):
    """Show repository information and current branch details."""
    ui = CodeBuddyConsole(_load_settings(ctx))
    ui.print_header("📊 code_buddy - Repository Information")
    git_repo = _open_repository(ui)
    ui.print_repo_info(git_repo.get_repo_info())


@app.command()
def branch(
    ctx: typer.Context,
    remote: bool = typer.Option(
        False, "--remote", "-r",
        help="Show remote branches"
    ),
    all_branches: bool = typer.Option(
        False, "--all", "-a",
        help="Show all branches (local and remote)"
    ),
):
    """List branches, most recently committed first."""
    ui = CodeBuddyConsole(_load_settings(ctx))
    ui.print_header("🌿 code_buddy - Branch Information")
    git_repo = _open_repository(ui)

    try:
        lines = git_repo.get_branches(remote=remote, all=all_branches)
    except CodeBuddyError as e:
        ui.print_error(f"Error: {e}")
        raise typer.Exit(1)

    if not lines:
        ui.print_info("No branches found")
        return
    for line in lines:
        ui.print_branch_line(line)


@app.command()
def watch(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log every file event with a timestamp"
    ),
    use_ai: Optional[bool] = typer.Option(
        None, "--use-ai/--no-ai",
        help="Use an AI provider for commit messages"
    ),
    no_tests: bool = typer.Option(
        False, "--no-tests",
        help="Skip running tests on file change"
    ),
    no_lint: bool = typer.Option(
        False, "--no-lint",
        help="Skip linting on file change"
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y",
        help="Automatically confirm all prompts"
    ),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore",
        help="Additional glob pattern to ignore (repeatable)"
    ),
):
    """
    Watch files, run checks, then commit and push once changes settle.

    [bold blue]Examples:[/bold blue]

    [green]code-buddy watch[/green]                             # Tests + lint, fallback messages
    [green]code-buddy watch --use-ai[/green]                    # AI commit messages
    [green]code-buddy watch --ignore "docs/**" --ignore "*.md"[/green]
    """
    settings = _load_settings(ctx)
    ui = CodeBuddyConsole(settings)
    ui.print_header()
    _open_repository(ui)

    if settings.uses_legacy_config:
        ui.print_warning(
            f"Found legacy '{settings.config_path.name}' config file. "
            "Please rename it to '.code_buddyrc.json'."
        )

    config = settings.workflow_config(
        use_ai=use_ai,
        run_tests=False if no_tests else None,
        run_lint=False if no_lint else None,
        auto_confirm=True if yes else None,
        extra_ignore=ignore,
    )
    if config.use_ai and not BackendFactory.available_backends(settings):
        ui.print_warning("No AI provider credentials found, using fallback commit messages")

    try:
        asyncio.run(run_watch(settings, config, ui, repo_path=Path.cwd(), verbose=verbose))
    except (CodeBuddyError, OSError) as e:
        console.print(f"[red]Error starting watcher:[/red] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Watcher interrupted[/yellow]")
        raise typer.Exit(130)


@app.command("ssh-setup")
def ssh_setup(
    ctx: typer.Context,
    email: Optional[str] = typer.Argument(
        None,
        help="Email address for the SSH key"
    ),
):
    """Generate and set up an SSH key for GitHub."""
    ui = CodeBuddyConsole(_load_settings(ctx))
    ui.print_header("🔐 code_buddy - SSH Key Setup")
    asyncio.run(_run_ssh_setup(ui, email or ""))


async def _run_ssh_setup(ui: CodeBuddyConsole, email: str):
    handler = SSHHandler()

    existing = handler.get_existing_keys()
    if existing:
        ui.print("[info]📋 Existing SSH keys found:[/info]")
        for name in existing:
            ui.print(f"[muted]  - {name}[/muted]")

    with ui.show_progress_spinner("Generating SSH key"):
        result = await handler.generate_ssh_key(email)

    if not result.success:
        ui.print_error(result.message)
        raise typer.Exit(1)

    if result.warning:
        ui.print_warning(result.warning)
    ui.show_ssh_setup_instructions(result.public_key)


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(
        False, "--show", "-s",
        help="Show current configuration"
    ),
):
    """
    Show code_buddy configuration.

    Options are read from [green].code_buddyrc[/green], [green].code_buddyrc.json[/green],
    a [green]code_buddy[/green] key in package.json or [green][tool.code_buddy][/green] in
    pyproject.toml, and [green]CB_[/green] environment variables.
    """
    settings = _load_settings(ctx)
    if not show:
        console.print("[yellow]No configuration action requested[/yellow]")
        console.print("Use [green]--show[/green] to see current configuration")
        return

    ui = CodeBuddyConsole(settings)
    ui.show_configuration(settings, BackendFactory.provider_status(settings))


@app.command()
def test(
    ctx: typer.Context,
    generate: bool = typer.Option(
        False, "--generate", "-g",
        help="Generate a sample commit message with the configured providers"
    ),
):
    """
    Test AI provider credentials and connectivity.

    [bold blue]Examples:[/bold blue]

    [green]code-buddy test[/green]                 # Check every provider
    [green]code-buddy test --generate[/green]      # Also generate a sample message
    """
    settings = _load_settings(ctx)
    asyncio.run(_run_test(settings, generate))


async def _run_test(settings: Settings, generate: bool):
    """Run test command."""
    ui = CodeBuddyConsole(settings)
    try:
        ui.print("[bold blue]Testing AI providers...[/bold blue]")
        results = await BackendFactory.test_all_backends(settings)
        for backend_type, status in results.items():
            if status is None:
                status_text = "[yellow]- No credential[/yellow]"
            elif status:
                status_text = "[green]✓ Available[/green]"
            else:
                status_text = "[red]✗ Unavailable[/red]"
            ui.print(f"  {backend_type}: {status_text}")

        if generate:
            generator = CommitMessageGenerator(lambda: BackendFactory.available_backends(settings), console=ui)
            message = await generator.generate(SAMPLE_DIFF, use_ai=True)
            ui.show_commit_message_preview(message)

        if not any(results.values()):
            ui.print_warning("No AI provider is usable; watch will use fallback commit messages")
    except CodeBuddyError as e:
        console.print(f"[red]Test failed:[/red] {e}")
        raise typer.Exit(1)


# Short aliases
app.command("s", hidden=True)(status)
app.command("i", hidden=True)(info)
app.command("b", hidden=True)(branch)
app.command("w", hidden=True)(watch)
app.command("ssh", hidden=True)(ssh_setup)


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
