from __future__ import annotations

from pathlib import Path

import allure
import pytest

from batch_runner.config import (
    DEFAULT_JOB_START_STATEMENT,
    LOG_FILE_NAME,
    Settings,
    SqlSettings,
    default_log_path,
)

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]

_ENV_VARS = (
    "BATCH_RUNNER_LOG_PATH",
    "BATCH_RUNNER_LOG_LEVEL",
    "BATCH_RUNNER_EXECUTABLE_SUFFIXES",
    "BATCH_RUNNER_SQL_COMMAND_TIMEOUT_SECONDS",
    "BATCH_RUNNER_JOB_POLL_INTERVAL_SECONDS",
    "BATCH_RUNNER_ODBC_DRIVER",
    "BATCH_RUNNER_JOB_START_STATEMENT",
    "BATCH_RUNNER_JOB_STATUS_QUERY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("sys.argv", [str(tmp_path / "run.py")])

    settings = Settings.from_env()
    settings.validate()

    assert settings.log_path == tmp_path.resolve() / LOG_FILE_NAME
    assert settings.log_level == "INFO"
    assert settings.executable_suffixes == (".exe",)
    assert settings.sql.command_timeout_seconds == 900
    assert settings.sql.job_poll_interval_seconds == 3.0
    assert settings.sql.job_start_statement == DEFAULT_JOB_START_STATEMENT


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BATCH_RUNNER_LOG_PATH", str(tmp_path / "custom.log"))
    monkeypatch.setenv("BATCH_RUNNER_LOG_LEVEL", "debug")
    monkeypatch.setenv("BATCH_RUNNER_EXECUTABLE_SUFFIXES", ".EXE, .bat,,.exe")
    monkeypatch.setenv("BATCH_RUNNER_SQL_COMMAND_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("BATCH_RUNNER_JOB_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("BATCH_RUNNER_ODBC_DRIVER", "FreeTDS")

    settings = Settings.from_env()
    settings.validate()

    assert settings.log_path == tmp_path / "custom.log"
    assert settings.log_level == "DEBUG"
    assert settings.executable_suffixes == (".exe", ".bat")
    assert settings.sql == SqlSettings(
        command_timeout_seconds=30,
        job_poll_interval_seconds=0.5,
        odbc_driver="FreeTDS",
    )


def test_explicit_log_path_beats_environment(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("BATCH_RUNNER_LOG_PATH", str(tmp_path / "env.log"))

    settings = Settings.from_env(log_path=tmp_path / "cli.log")

    assert settings.log_path == tmp_path / "cli.log"


def test_default_log_path_falls_back_to_cwd(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sys.argv", [""])

    assert default_log_path() == Path.cwd() / LOG_FILE_NAME


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(log_level="LOUD"), "Invalid BATCH_RUNNER_LOG_LEVEL"),
        (Settings(executable_suffixes=()), "at least one suffix"),
        (Settings(executable_suffixes=("exe",)), "Invalid executable suffix"),
        (Settings(sql=SqlSettings(command_timeout_seconds=0)), "TIMEOUT_SECONDS must be > 0"),
        (Settings(sql=SqlSettings(job_poll_interval_seconds=-1)), "POLL_INTERVAL_SECONDS"),
        (
            Settings(sql=SqlSettings(job_start_statement="EXEC start_job")),
            "JOB_START_STATEMENT must reference",
        ),
        (
            Settings(sql=SqlSettings(job_status_query="SELECT 0")),
            "JOB_STATUS_QUERY must reference",
        ),
    ],
)
def test_validate_rejects_unusable_settings(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()


def test_non_numeric_timeout_fails_to_load(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BATCH_RUNNER_SQL_COMMAND_TIMEOUT_SECONDS", "soon")

    with pytest.raises(ValueError):
        Settings.from_env()
