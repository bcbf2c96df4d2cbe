"""Runtime configuration for the supervisor and its database steps."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

LOG_FILE_NAME = "BatchRunner.log"

DEFAULT_JOB_START_STATEMENT = "EXEC msdb.dbo.sp_start_job @job_name = :job_name"
DEFAULT_JOB_STATUS_QUERY = (
    "SELECT COUNT(*) "
    "FROM msdb.dbo.sysjobactivity AS activity "
    "JOIN msdb.dbo.sysjobs AS job ON activity.job_id = job.job_id "
    "WHERE job.name = :job_name "
    "AND activity.session_id = (SELECT MAX(session_id) FROM msdb.dbo.syssessions) "
    "AND activity.start_execution_date IS NOT NULL "
    "AND activity.stop_execution_date IS NULL"
)


def default_log_path() -> Path:
    """Log file beside the entry script that launched the process."""

    if not sys.argv or not sys.argv[0]:
        return Path.cwd() / LOG_FILE_NAME
    return Path(sys.argv[0]).resolve().parent / LOG_FILE_NAME


@dataclass(slots=True)
class SqlSettings:
    """Database step execution settings."""

    command_timeout_seconds: int = 900
    job_poll_interval_seconds: float = 3.0
    odbc_driver: str = "ODBC Driver 18 for SQL Server"
    job_start_statement: str = DEFAULT_JOB_START_STATEMENT
    job_status_query: str = DEFAULT_JOB_STATUS_QUERY


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    log_path: Path = field(default_factory=default_log_path)
    log_level: str = "INFO"
    executable_suffixes: tuple[str, ...] = (".exe",)
    sql: SqlSettings = field(default_factory=SqlSettings)

    @classmethod
    def from_env(cls, log_path: Path | None = None) -> Settings:
        """Load settings from environment, falling back to defaults."""

        env_log_path = os.getenv("BATCH_RUNNER_LOG_PATH", "").strip()
        return cls(
            log_path=log_path or (Path(env_log_path) if env_log_path else default_log_path()),
            log_level=os.getenv("BATCH_RUNNER_LOG_LEVEL", "INFO").strip().upper(),
            executable_suffixes=_collect_suffixes(),
            sql=SqlSettings(
                command_timeout_seconds=int(
                    os.getenv("BATCH_RUNNER_SQL_COMMAND_TIMEOUT_SECONDS", "900"),
                ),
                job_poll_interval_seconds=float(
                    os.getenv("BATCH_RUNNER_JOB_POLL_INTERVAL_SECONDS", "3.0"),
                ),
                odbc_driver=os.getenv(
                    "BATCH_RUNNER_ODBC_DRIVER",
                    "ODBC Driver 18 for SQL Server",
                ),
                job_start_statement=os.getenv(
                    "BATCH_RUNNER_JOB_START_STATEMENT",
                    DEFAULT_JOB_START_STATEMENT,
                ),
                job_status_query=os.getenv(
                    "BATCH_RUNNER_JOB_STATUS_QUERY",
                    DEFAULT_JOB_STATUS_QUERY,
                ),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any setting is unusable."""

        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Invalid BATCH_RUNNER_LOG_LEVEL: {self.log_level!r}")
        if not self.executable_suffixes:
            raise ValueError("BATCH_RUNNER_EXECUTABLE_SUFFIXES must name at least one suffix.")
        for suffix in self.executable_suffixes:
            if not suffix.startswith(".") or len(suffix) < 2:
                raise ValueError(
                    f"Invalid executable suffix: {suffix!r}. Expected a form like '.exe'.",
                )
        if self.sql.command_timeout_seconds <= 0:
            raise ValueError("BATCH_RUNNER_SQL_COMMAND_TIMEOUT_SECONDS must be > 0.")
        if self.sql.job_poll_interval_seconds < 0:
            raise ValueError("BATCH_RUNNER_JOB_POLL_INTERVAL_SECONDS must be >= 0.")
        for name, statement in (
            ("BATCH_RUNNER_JOB_START_STATEMENT", self.sql.job_start_statement),
            ("BATCH_RUNNER_JOB_STATUS_QUERY", self.sql.job_status_query),
        ):
            if ":job_name" not in statement:
                raise ValueError(f"{name} must reference the :job_name parameter.")


def _collect_suffixes() -> tuple[str, ...]:
    raw = os.getenv("BATCH_RUNNER_EXECUTABLE_SUFFIXES", ".exe")
    suffixes: list[str] = []
    for part in raw.split(","):
        normalized = part.strip().lower()
        if normalized and normalized not in suffixes:
            suffixes.append(normalized)
    return tuple(suffixes)
