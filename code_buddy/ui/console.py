"""
Console output and interactive prompts built on Rich.
"""

from typing import Iterable, List, Optional, TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme

if TYPE_CHECKING:
    from ..config.settings import Settings, WorkflowConfig
    from ..git_ops.repository import DiffStats, RepoInfo


LOGO = r"""
    _________            .___       __________          .___  .___
    \_   ___ \  ____   __| _/____   \______   \__ __  __| _/__| _/__.__.
    /    \  \/ /  _ \ / __ |/ __ \   |    |  _/  |  \/ __ |/ __ <   |  |
    \     \___(  <_> ) /_/ \  ___/   |    |   \  |  / /_/ / /_/ |\___  |
     \______  /\____/\____ |\___  >  |______  /____/\____ \____ |/ ____|
            \/            \/    \/          \/           \/    \/\/
"""

TAGLINE = "       Your personal Git assistant"

# Porcelain XY codes -> (icon, style)
STATUS_ICONS = {
    "M ": ("📝", "yellow"),
    " M": ("📝", "yellow"),
    "A ": ("➕", "green"),
    "D ": ("➖", "red"),
    " D": ("➖", "red"),
    "R ": ("🔄", "blue"),
    "C ": ("📋", "blue"),
    "U ": ("⚠️ ", "red"),
    "UU": ("⚠️ ", "red"),
    "??": ("❓", "dim"),
    "AM": ("📝", "yellow"),
    "MM": ("📝", "yellow"),
}

FILE_EVENT_STYLES = {
    "added": ("➕", "Added", "file_added"),
    "modified": ("📝", "Modified", "file_modified"),
    "deleted": ("➖", "Deleted", "file_deleted"),
}


class CodeBuddyConsole:
    """Console interface shared by the CLI commands and the watch workflow."""

    def __init__(self, settings: Optional["Settings"] = None, console: Optional[Console] = None):
        """Initialize console with settings."""
        use_colors = settings.ui.use_colors if settings else True
        self._setup_styles()
        self.console = console or Console(
            color_system="auto" if use_colors else None,
            theme=self.theme
        )

    def _setup_styles(self) -> None:
        """Setup custom styles for consistent theming."""
        self.styles = {
            "title": "bold blue",
            "success": "bold green",
            "warning": "bold yellow",
            "error": "bold red",
            "info": "blue",
            "muted": "dim",
            "file_added": "green",
            "file_modified": "yellow",
            "file_deleted": "red",
            "commit_type": "bold magenta",
            "logo": "cyan",
            "tagline": "bright_magenta",
        }

        self.theme = Theme(self.styles)

    def print(self, *args, **kwargs) -> None:
        self.console.print(*args, **kwargs)

    def print_header(self, title: Optional[str] = None) -> None:
        """Print the logo followed by the command title."""
        self.console.print(f"[logo]{escape(LOGO)}[/logo]", highlight=False)
        self.console.print(f"[tagline]{TAGLINE}[/tagline]")

        if title:
            self.console.print(f"\n[title]{title}[/title]\n")

    def print_success(self, message: str) -> None:
        """Print success message."""
        self.console.print(f"[success]✅ {escape(message)}[/success]")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self.console.print(f"[warning]⚠️  {escape(message)}[/warning]")

    def print_error(self, message: str) -> None:
        """Print error message."""
        self.console.print(f"[error]❌ {escape(message)}[/error]")

    def print_info(self, message: str) -> None:
        """Print info message."""
        self.console.print(f"[info]ℹ {escape(message)}[/info]")

    def print_step(self, icon: str, message: str) -> None:
        self.console.print(f"[info]{icon} {escape(message)}[/info]")

    def print_skip(self, message: str) -> None:
        self.console.print(f"[warning]⏭️  {escape(message)}[/warning]")

    def print_output(self, text: str, style: str = "muted") -> None:
        """Echo captured command output."""
        self.console.print(escape(text), style=style, highlight=False)

    def print_file_event(self, path: str, kind: str, timestamp: Optional[str] = None) -> None:
        icon, label, style = FILE_EVENT_STYLES.get(kind, ("•", kind.title(), "muted"))
        self.console.print(f"[{style}]{icon} {label}: {escape(path)}[/{style}]")
        if timestamp:
            self.console.print(f"[muted]   Time: {timestamp}[/muted]")

    def print_directory_event(self, path: str, added: bool) -> None:
        if added:
            self.console.print(f"[blue]📁 Directory added: {escape(path)}[/blue]")
        else:
            self.console.print(f"[magenta]📁 Directory removed: {escape(path)}[/magenta]")

    def print_watch_configuration(self, config: "WorkflowConfig", ignore_patterns: Iterable[str]) -> None:
        """Print what the watcher will do on each change."""

        def flag(enabled: bool) -> str:
            return "✅" if enabled else "❌"

        self.console.print("[success]📁 Watching current directory for changes...[/success]")
        self.console.print(f"[muted]🚫 Ignoring: {escape(', '.join(ignore_patterns))}[/muted]")
        self.console.print("\n[info]⚙️  Configuration:[/info]")
        self.console.print(f"[muted]   Tests: {flag(config.run_tests)}[/muted]")
        self.console.print(f"[muted]   Linting: {flag(config.run_lint)}[/muted]")
        self.console.print(f"[muted]   AI Commits: {flag(config.use_ai)}[/muted]")
        self.console.print(f"[muted]   Branch: {escape(config.branch)}[/muted]")
        self.console.print()

    def show_commit_message_preview(self, message: str) -> None:
        """Show commit message preview."""
        if ':' in message:
            prefix, description = message.split(':', 1)
            formatted_message = f"[commit_type]{escape(prefix.strip())}[/commit_type]: {escape(description.strip())}"
        else:
            formatted_message = escape(message)

        self.console.print(Panel(
            formatted_message,
            title="Generated Commit Message",
            box=box.ROUNDED,
            style="green"
        ))

    def commit_details(self, stats: "DiffStats", message: str, branch: str) -> List[str]:
        """Lines summarizing a pending commit."""
        return [
            f"[green]📊 Changes: {stats.added} lines added, {stats.removed} lines removed[/green]",
            f"[blue]💬 Commit message: \"{escape(message)}\"[/blue]",
            f"[muted]🌿 Target branch: {escape(branch)}[/muted]",
        ]

    def print_details(self, title: str, details: List[str]) -> None:
        self.console.print(f"\n[title]{title}[/title]")
        self.console.print(Rule(style="dim"))
        for detail in details:
            self.console.print(detail)
        self.console.print(Rule(style="dim"))

    def confirm_with_details(self, title: str, details: List[str], question: str, default: bool = True) -> bool:
        """Show a framed summary then ask a yes/no question."""
        self.print_details(title, details)
        return self.confirm_action(question, default=default)

    def confirm_action(self, message: str, default: bool = True) -> bool:
        """Get user confirmation for an action."""
        return Confirm.ask(message, default=default, console=self.console)

    def show_progress_spinner(self, description: str):
        """Create a progress spinner context manager."""
        return self.console.status(f"[blue]{description}...[/blue]", spinner="dots")

    def print_status_entry(self, line: str) -> None:
        """Print one ``git status --porcelain`` line with an icon."""
        code, file_name = line[:2], line[3:]
        icon, style = STATUS_ICONS.get(code, ("❓", "dim"))
        self.console.print(f"   [{style}]{icon}[/{style}] {escape(file_name)}")

    def print_branch_line(self, line: str) -> None:
        """Print one ``git branch`` line, marking current and remote branches."""
        is_current = line.startswith("*")
        is_remote = "remotes/" in line
        name = line.lstrip("*").strip()
        if name.startswith("remotes/"):
            name = name[len("remotes/"):]

        if is_current:
            self.console.print(f"[green]👉 [bold]{escape(name)}[/bold] (current)[/green]")
        elif is_remote:
            self.console.print(f"[cyan]🌐 {escape(name)}[/cyan]")
        else:
            self.console.print(f"📍 {escape(name)}")

    def print_repo_info(self, info: "RepoInfo") -> None:
        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column("Field", style="bold green")
        table.add_column("Value")
        table.add_row("📁 Repository", escape(info.name))
        table.add_row("🌐 Origin", escape(info.origin) if info.origin else "[warning]Not configured[/warning]")
        table.add_row("📍 Current branch", f"[bold]{escape(info.branch)}[/bold]")
        table.add_row("📝 Last commit", escape(info.last_commit) if info.last_commit else "[warning]No commits yet[/warning]")
        table.add_row("📈 Total commits", str(info.total_commits))
        self.console.print(table)

    def show_ssh_setup_instructions(self, public_key: str) -> None:
        self.console.print("\n[success]🎉 SSH Key Setup Complete![/success]\n")
        self.console.print("[info]📋 Your new public key:[/info]")
        self.console.print(f"[yellow]{escape(public_key)}[/yellow]", soft_wrap=True)
        self.console.print("\n[cyan]🔗 Next steps:[/cyan]")
        self.console.print("1. Copy the public key above")
        self.console.print("2. Go to GitHub SSH settings: https://github.com/settings/keys")
        self.console.print("3. Click \"New SSH key\"")
        self.console.print("4. Paste your key and give it a title")
        self.console.print("5. Click \"Add SSH key\"\n")
        self.console.print("[muted]💡 You can test your connection with: ssh -T git@github.com[/muted]")

    def show_configuration(self, settings: "Settings", providers: List[dict]) -> None:
        """Display the resolved configuration."""
        self.console.print("[title]code_buddy Configuration[/title]")
        source = str(settings.config_path) if settings.config_path else "defaults"
        self.console.print(f"[muted]Source: {escape(source)}[/muted]\n", soft_wrap=True)

        wf = settings.workflow
        table = Table(title="Workflow", box=box.SIMPLE_HEAD)
        table.add_column("Option", style="bold")
        table.add_column("Value")
        table.add_row("branch", escape(wf.branch))
        table.add_row("runTests", str(wf.run_tests))
        table.add_row("runLint", str(wf.run_lint))
        table.add_row("useAI", str(wf.use_ai))
        table.add_row("testCommand", escape(wf.test_command))
        table.add_row("lintCommand", escape(wf.lint_command))
        table.add_row("watchIgnore", escape(", ".join(wf.watch_ignore)) or "—")
        table.add_row("autoConfirm", str(wf.auto_confirm))
        self.console.print(table)

        self.show_provider_status(providers)

    def show_provider_status(self, providers: List[dict]) -> None:
        table = Table(title="AI Providers (priority order)", box=box.SIMPLE_HEAD)
        table.add_column("Provider", style="bold")
        table.add_column("Env var")
        table.add_column("Model")
        table.add_column("Credential")
        for provider in providers:
            status = "[green]✓ found[/green]" if provider["available"] else "[red]✗ missing[/red]"
            table.add_row(provider["name"], provider["env_key"], provider["model"], status)
        self.console.print(table)
