"""
Configuration management with Pydantic validation and environment variable support.

Settings are resolved from (highest priority first) explicit keyword arguments,
the first project config file found from the working directory upwards,
``CB_``-prefixed environment variables, a local ``.env`` file and the defaults
declared below.
"""

import json
import os
import platform
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

MODULE_NAME = "code_buddy"

# Searched in order in each directory, walking up towards the filesystem root.
CONFIG_SEARCH_PLACES = [
    "package.json",
    f".{MODULE_NAME}rc",
    f".{MODULE_NAME}rc.json",
    "pyproject.toml",
    ".gitassistrc",
    ".gitassistrc.json",
]

LEGACY_CONFIG_NAMES = {".gitassistrc", ".gitassistrc.json"}

# Placeholder values shipped in example .env files never count as credentials.
PLACEHOLDER_PREFIX = "your_"
PLACEHOLDER_MARKER = "placeholder"


class AISettings(BaseModel):
    """Commit-message provider configuration."""

    timeout: int = Field(
        default=30,
        ge=5,
        le=600,
        description="Provider request timeout in seconds"
    )
    openai_model: str = Field(
        default="gpt-3.5-turbo",
        description="OpenAI chat model"
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model"
    )
    addisai_model: str = Field(
        default="addis-ai-local",
        description="Addis AI model"
    )
    addisai_base_url: str = Field(
        default="https://api.addisai.com/v1",
        description="Addis AI OpenAI-compatible endpoint"
    )
    max_diff_lines: int = Field(
        default=500,
        ge=50,
        le=5000,
        description="Maximum lines of diff sent to a provider"
    )


class WorkflowSettings(BaseModel):
    """Watch workflow configuration.

    Accepts both snake_case and the camelCase keys used by ``.code_buddyrc``.
    """

    model_config = ConfigDict(populate_by_name=True)

    branch: str = Field(
        default="main",
        description="Branch to push to"
    )
    run_tests: bool = Field(
        default=True,
        validation_alias=AliasChoices("run_tests", "runTests"),
        description="Run the test command before committing"
    )
    run_lint: bool = Field(
        default=True,
        validation_alias=AliasChoices("run_lint", "runLint"),
        description="Run the lint command before committing"
    )
    use_ai: bool = Field(
        default=False,
        validation_alias=AliasChoices("use_ai", "useAI", "useAi"),
        description="Generate commit messages with a remote provider"
    )
    test_command: str = Field(
        default="npm test",
        validation_alias=AliasChoices("test_command", "testCommand"),
        description="Shell command that runs the tests"
    )
    lint_command: str = Field(
        default="npm run lint",
        validation_alias=AliasChoices("lint_command", "lintCommand"),
        description="Shell command that runs the linter"
    )
    watch_ignore: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("watch_ignore", "watchIgnore"),
        description="Extra glob patterns ignored by the watcher"
    )
    auto_confirm: bool = Field(
        default=False,
        validation_alias=AliasChoices("auto_confirm", "autoConfirm"),
        description="Commit and push without asking"
    )
    debounce_ms: int = Field(
        default=2000,
        ge=100,
        le=60000,
        validation_alias=AliasChoices("debounce_ms", "debounceMs"),
        description="Quiet period before the workflow runs"
    )
    settle_ms: int = Field(
        default=300,
        ge=0,
        le=10000,
        validation_alias=AliasChoices("settle_ms", "settleMs"),
        description="Time a file must stay unchanged before it is reported"
    )


class UISettings(BaseModel):
    """User interface configuration."""

    use_colors: bool = Field(
        default=True,
        description="Use colored output"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level"
    )


@dataclass(frozen=True)
class WorkflowConfig:
    """Immutable snapshot of the workflow options, taken when watching starts."""

    branch: str = "main"
    run_tests: bool = True
    run_lint: bool = True
    use_ai: bool = False
    test_command: str = "npm test"
    lint_command: str = "npm run lint"
    auto_confirm: bool = False
    ignore_patterns: Tuple[str, ...] = ()
    debounce_seconds: float = 2.0
    settle_seconds: float = 0.3


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    ai: AISettings = Field(default_factory=AISettings)
    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)
    ui: UISettings = Field(default_factory=UISettings)

    openai_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
    )
    gemini_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "gemini_api_key"),
    )
    addis_ai_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("ADDIS_AI_API_KEY", "addis_ai_api_key"),
    )

    model_config = SettingsConfigDict(
        env_prefix="CB_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    _config_path: Optional[Path] = PrivateAttr(default=None)

    @classmethod
    def load(cls, start_dir: Optional[Path] = None) -> "Settings":
        """Load settings, merging the nearest project config file if any."""
        config_path = find_config_file(start_dir or Path.cwd())
        if config_path is None:
            return cls()

        user_config = read_config_file(config_path)
        logger.debug(f"Loaded configuration from {config_path}")
        if config_path.name in LEGACY_CONFIG_NAMES:
            logger.warning(
                f"Found legacy '{config_path.name}' config file. "
                f"Rename it to '.{MODULE_NAME}rc.json'"
            )

        settings = cls(**normalize_user_config(user_config))
        settings._config_path = config_path
        return settings

    @classmethod
    def from_file(cls, config_path: Path) -> "Settings":
        """Load settings from an explicit configuration file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        settings = cls(**normalize_user_config(read_config_file(config_path)))
        settings._config_path = config_path
        return settings

    @property
    def config_path(self) -> Optional[Path]:
        """The project config file these settings were read from."""
        return self._config_path

    @property
    def uses_legacy_config(self) -> bool:
        return self._config_path is not None and self._config_path.name in LEGACY_CONFIG_NAMES

    def api_key_for(self, env_key: str) -> Optional[str]:
        """Return a usable credential for ``env_key``, ignoring placeholders."""
        field_name = env_key.lower()
        secret = getattr(self, field_name, None)
        value = secret.get_secret_value() if secret else os.getenv(env_key)
        if not value or not value.strip():
            return None
        value = value.strip()
        if value.startswith(PLACEHOLDER_PREFIX) or PLACEHOLDER_MARKER in value:
            return None
        return value

    def workflow_config(
        self,
        use_ai: Optional[bool] = None,
        run_tests: Optional[bool] = None,
        run_lint: Optional[bool] = None,
        auto_confirm: Optional[bool] = None,
        extra_ignore: Optional[List[str]] = None,
    ) -> WorkflowConfig:
        """Resolve the immutable workflow snapshot, applying CLI overrides."""
        wf = self.workflow

        def pick(override: Optional[bool], configured: bool) -> bool:
            return configured if override is None else override

        return WorkflowConfig(
            branch=wf.branch,
            run_tests=pick(run_tests, wf.run_tests),
            run_lint=pick(run_lint, wf.run_lint),
            use_ai=pick(use_ai, wf.use_ai),
            test_command=wf.test_command,
            lint_command=wf.lint_command,
            auto_confirm=pick(auto_confirm, wf.auto_confirm),
            ignore_patterns=tuple(wf.watch_ignore) + tuple(extra_ignore or ()),
            debounce_seconds=wf.debounce_ms / 1000,
            settle_seconds=wf.settle_ms / 1000,
        )

    @property
    def cache_dir(self) -> Path:
        """Get the cache directory."""
        if platform.system() == "Windows":
            base = Path(os.environ.get("LOCALAPPDATA", "~"))
        else:
            base = Path(os.environ.get("XDG_CACHE_HOME", "~/.cache"))

        return (base / "code-buddy").expanduser()

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.cache_dir / "code-buddy.log"


def find_config_file(start_dir: Path) -> Optional[Path]:
    """Walk up from ``start_dir`` and return the first file holding our config."""
    directory = start_dir.resolve()
    for candidate_dir in [directory, *directory.parents]:
        for name in CONFIG_SEARCH_PLACES:
            path = candidate_dir / name
            if not path.is_file():
                continue
            if name in ("package.json", "pyproject.toml"):
                # Only counts when it carries a code_buddy section.
                try:
                    if MODULE_NAME not in _read_embedded_section(path):
                        continue
                except (OSError, ValueError):
                    continue
            return path
    return None


def read_config_file(path: Path) -> Dict[str, Any]:
    """Read a config file and return the raw user configuration mapping."""
    if path.name in ("package.json", "pyproject.toml"):
        return dict(_read_embedded_section(path).get(MODULE_NAME) or {})

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain an object")
    return data


def _read_embedded_section(path: Path) -> Dict[str, Any]:
    if path.name == "pyproject.toml":
        with open(path, "rb") as f:
            return tomllib.load(f).get("tool", {})
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def normalize_user_config(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map the flat rc-file layout onto the nested settings layout.

    ``{"branch": "dev", "runTests": false}`` becomes
    ``{"workflow": {"branch": "dev", "runTests": false}}``; the nested
    ``ai``/``ui``/``workflow`` sections pass through untouched.
    """
    nested = {"ai", "ui", "workflow"}
    result: Dict[str, Any] = {key: value for key, value in data.items() if key in nested}
    flat = {key: value for key, value in data.items() if key not in nested}
    if flat:
        workflow = dict(result.get("workflow") or {})
        workflow.update(flat)
        result["workflow"] = workflow
    return result
