"""Execute database steps: ad-hoc SQL commands and polled server-side jobs."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import assert_never

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from batch_runner.config import SqlSettings
from batch_runner.database.engine import DEFAULT_ODBC_DRIVER, build_engine
from batch_runner.supervisor.models import RunCommand, RunJob, Step

logger = logging.getLogger(__name__)

_NATIVE_ERROR_CODE = re.compile(r"\((-?\d+)\)")


class SqlExecutionError(RuntimeError):
    """A database step failed; details were already logged."""


class SqlStepExecutor:
    """Runs each step on its own short-lived connection.

    Commands are sent verbatim. Jobs are started with ``job_start_statement``
    and then polled with ``job_status_query`` every
    ``job_poll_interval_seconds`` until the query returns a falsy scalar.
    Both statements receive the job name as ``:job_name``.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        command_timeout_seconds: int = 900,
        job_poll_interval_seconds: float = 3.0,
        job_start_statement: str,
        job_status_query: str,
        odbc_driver: str = DEFAULT_ODBC_DRIVER,
        engine_factory: Callable[..., Engine] = build_engine,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.command_timeout_seconds = command_timeout_seconds
        self.job_poll_interval_seconds = job_poll_interval_seconds
        self.job_start_statement = job_start_statement
        self.job_status_query = job_status_query
        self.odbc_driver = odbc_driver
        self._engine_factory = engine_factory
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: SqlSettings, **overrides) -> SqlStepExecutor:
        return cls(
            command_timeout_seconds=settings.command_timeout_seconds,
            job_poll_interval_seconds=settings.job_poll_interval_seconds,
            job_start_statement=settings.job_start_statement,
            job_status_query=settings.job_status_query,
            odbc_driver=settings.odbc_driver,
            **overrides,
        )

    def execute(self, step: Step) -> None:
        if isinstance(step, RunCommand):
            self.execute_command(step.connection, step.text)
        elif isinstance(step, RunJob):
            self.execute_job(step.connection, step.name)
        else:
            assert_never(step)

    def execute_command(self, connection_string: str, command_text: str) -> None:
        """Run ``command_text`` as a non-query; raises SqlExecutionError on failure."""

        with self._sql_errors(command_text), self._connect(connection_string) as connection:
            connection.exec_driver_sql(command_text)

    def execute_job(self, connection_string: str, job_name: str) -> None:
        """Start ``job_name`` and block until the server reports it inactive."""

        with self._sql_errors(f"job {job_name}"), self._connect(connection_string) as connection:
            params = {"job_name": job_name}
            connection.execute(text(self.job_start_statement), params)
            logger.info(
                "SQL job %s started; polling every %ss",
                job_name,
                self.job_poll_interval_seconds,
            )
            polls = 0
            while True:
                self._sleep(self.job_poll_interval_seconds)
                polls += 1
                active = connection.execute(text(self.job_status_query), params).scalar()
                if not active:
                    break
            logger.info("SQL job %s finished after %d poll(s)", job_name, polls)

    @contextmanager
    def _connect(self, connection_string: str) -> Iterator[Connection]:
        engine = self._engine_factory(
            connection_string,
            command_timeout_seconds=self.command_timeout_seconds,
            odbc_driver=self.odbc_driver,
        )
        try:
            with engine.connect() as connection:
                yield connection.execution_options(isolation_level="AUTOCOMMIT")
        finally:
            engine.dispose()

    @contextmanager
    def _sql_errors(self, subject: str) -> Iterator[None]:
        try:
            yield
        except DBAPIError as error:
            logger.error("SQL ERROR executing: %s", subject)
            for code, message in provider_errors(error):
                logger.error("SQL ERROR %s: %s", code, message)
            raise SqlExecutionError(f"SQL execution failed: {subject}") from error
        except (SQLAlchemyError, ImportError, ValueError) as error:
            logger.error("GENERAL ERROR executing SQL command: %s", subject)
            logger.error("Exception: %s", error)
            raise SqlExecutionError(f"SQL execution failed: {subject}") from error


def provider_errors(error: DBAPIError) -> list[tuple[str, str]]:
    """Split a driver exception into (code, message) diagnostic records.

    pyodbc reports ``(sqlstate, "rec1; rec2")`` with the native error number
    in parentheses inside each record; pymssql reports ``(number, bytes)``;
    sqlite3 exposes ``sqlite_errorcode``.
    """

    original = error.orig
    args = getattr(original, "args", ())
    if len(args) < 2:
        code = getattr(original, "sqlite_errorcode", None)
        if code is None:
            code = type(original).__name__
        return [(str(code), str(original))]

    code, message = args[0], args[1]
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    if isinstance(code, int):
        return [(str(code), str(message))]

    records = [part.strip() for part in str(message).split("; [")]
    parsed: list[tuple[str, str]] = []
    for index, record in enumerate(records):
        if index > 0:
            record = f"[{record}"
        native = _NATIVE_ERROR_CODE.search(record)
        parsed.append((native.group(1) if native else str(code), record))
    return parsed
