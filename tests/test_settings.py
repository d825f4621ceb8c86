"""Tests for configuration discovery and resolution."""

import dataclasses
import json

import pytest

from code_buddy.config.settings import (
    Settings,
    WorkflowConfig,
    find_config_file,
    normalize_user_config,
)


def test_defaults(isolated_env):
    settings = Settings.load(isolated_env)

    assert settings.config_path is None
    assert settings.workflow.branch == "main"
    assert settings.workflow.run_tests is True
    assert settings.workflow.run_lint is True
    assert settings.workflow.use_ai is False
    assert settings.workflow.test_command == "npm test"
    assert settings.workflow.lint_command == "npm run lint"
    assert settings.workflow.watch_ignore == []


def test_rc_file_with_camel_case_keys(isolated_env):
    rc = isolated_env / ".code_buddyrc.json"
    rc.write_text(json.dumps({
        "branch": "develop",
        "runTests": False,
        "useAI": True,
        "testCommand": "pytest -q",
        "watchIgnore": ["docs/**"],
    }))

    settings = Settings.load(isolated_env)

    assert settings.config_path == rc
    assert settings.workflow.branch == "develop"
    assert settings.workflow.run_tests is False
    assert settings.workflow.use_ai is True
    assert settings.workflow.test_command == "pytest -q"
    assert settings.workflow.watch_ignore == ["docs/**"]


def test_config_is_found_in_parent_directory(isolated_env):
    (isolated_env / ".code_buddyrc").write_text('{"branch": "trunk"}')
    nested = isolated_env / "src" / "pkg"
    nested.mkdir(parents=True)

    assert Settings.load(nested).workflow.branch == "trunk"


def test_package_json_section(isolated_env):
    (isolated_env / "package.json").write_text(json.dumps({
        "name": "demo",
        "code_buddy": {"branch": "release", "lintCommand": "eslint ."},
    }))

    settings = Settings.load(isolated_env)

    assert settings.workflow.branch == "release"
    assert settings.workflow.lint_command == "eslint ."


def test_package_json_without_section_is_skipped(isolated_env):
    (isolated_env / "package.json").write_text('{"name": "demo"}')

    assert find_config_file(isolated_env) is None


def test_pyproject_tool_section(isolated_env):
    (isolated_env / "pyproject.toml").write_text(
        '[tool.code_buddy]\nbranch = "stable"\ntest_command = "pytest"\nrun_lint = false\n'
    )

    settings = Settings.load(isolated_env)

    assert settings.workflow.branch == "stable"
    assert settings.workflow.test_command == "pytest"
    assert settings.workflow.run_lint is False


def test_legacy_config_is_read_and_flagged(isolated_env):
    (isolated_env / ".gitassistrc.json").write_text('{"branch": "old"}')

    settings = Settings.load(isolated_env)

    assert settings.workflow.branch == "old"
    assert settings.uses_legacy_config is True


def test_invalid_rc_file_raises(isolated_env):
    (isolated_env / ".code_buddyrc").write_text("{not json")

    with pytest.raises(ValueError):
        Settings.load(isolated_env)


def test_environment_override(isolated_env, monkeypatch):
    monkeypatch.setenv("CB_WORKFLOW__BRANCH", "staging")

    assert Settings.load(isolated_env).workflow.branch == "staging"


def test_normalize_user_config_nests_flat_keys():
    data = {"branch": "dev", "ai": {"timeout": 10}, "runLint": False}

    assert normalize_user_config(data) == {
        "ai": {"timeout": 10},
        "workflow": {"branch": "dev", "runLint": False},
    }


def test_workflow_config_applies_overrides():
    settings = Settings(workflow={"watchIgnore": ["docs/**"], "debounceMs": 1500})

    config = settings.workflow_config(
        use_ai=True, run_tests=False, auto_confirm=True, extra_ignore=["*.md"]
    )

    assert config.use_ai is True
    assert config.run_tests is False
    assert config.run_lint is True
    assert config.auto_confirm is True
    assert config.ignore_patterns == ("docs/**", "*.md")
    assert config.debounce_seconds == 1.5


def test_workflow_config_is_immutable():
    config = Settings().workflow_config()

    assert isinstance(config, WorkflowConfig)
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.branch = "other"


@pytest.mark.parametrize("value", ["your_openai_api_key_here", "sk-placeholder-value", "   "])
def test_placeholder_credentials_are_ignored(monkeypatch, value):
    monkeypatch.setenv("OPENAI_API_KEY", value)

    assert Settings().api_key_for("OPENAI_API_KEY") is None


def test_real_credential_is_returned(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "AIza-real-key")

    assert Settings().api_key_for("GEMINI_API_KEY") == "AIza-real-key"


def test_log_file_lives_in_cache_dir(tmp_path):
    settings = Settings()

    assert settings.log_file == tmp_path / "cache" / "code-buddy" / "code-buddy.log"


def test_from_file(tmp_path):
    path = tmp_path / "team.json"
    path.write_text('{"branch": "team", "ui": {"log_level": "DEBUG"}}')

    settings = Settings.from_file(path)

    assert settings.config_path == path
    assert settings.workflow.branch == "team"
    assert settings.ui.log_level == "DEBUG"


def test_from_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Settings.from_file(tmp_path / "absent.json")
