"""Parse the flat command line into task descriptors.

Every token ending in an executable suffix opens a task. Tokens that follow
it, up to the next executable, are either supervisor options or passthrough
arguments for the child process::

    a.exe -Interval 5 b.exe --verbose -ConnectionString "X" -RunSqlCommand "DELETE FROM t"

Supervisor options are matched case-insensitively:

- ``-Interval <minutes>`` / ``-Interval<minutes>``: repeat every N minutes.
  A missing or non-integer value leaves the tokens as passthrough arguments.
- ``-ConnectionString <value>``: connection used by the steps declared after it.
- ``-RunSqlCommand <text>``: run SQL text after each process exit.
- ``-RunStoredProcedure <name>``: start a named job after each process exit
  and wait for it to finish.

A step declared before any connection string, or a blank connection string,
is a configuration error.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from batch_runner.supervisor.models import JobTask, PlainTask, RunCommand, RunJob, Step, Task

logger = logging.getLogger(__name__)

INTERVAL_OPTION = "-interval"
CONNECTION_STRING_OPTION = "-connectionstring"
RUN_SQL_COMMAND_OPTION = "-runsqlcommand"
RUN_STORED_PROCEDURE_OPTION = "-runstoredprocedure"

_INTERVAL_VALUE = re.compile(r"[0-9]+")


class TaskConfigurationError(ValueError):
    """Command line describes tasks that cannot be run."""


@dataclass(slots=True)
class _TaskBuilder:
    path: str
    argument_list: list[str] = field(default_factory=list)
    interval: int | None = None
    connection: str | None = None
    steps: list[Step] = field(default_factory=list)

    def build(self) -> Task:
        if self.steps and self.connection and self.connection.strip():
            return JobTask(
                path=self.path,
                argument_list=tuple(self.argument_list),
                interval=self.interval,
                connection=self.connection,
                steps=tuple(self.steps),
            )
        return PlainTask(
            path=self.path,
            argument_list=tuple(self.argument_list),
            interval=self.interval,
        )

    def require_connection(self, option: str) -> str:
        if self.connection is None or not self.connection.strip():
            raise TaskConfigurationError(
                f"You must specify -ConnectionString before {option} (task {self.path}).",
            )
        return self.connection


def parse_tasks(
    argv: Sequence[str],
    *,
    executable_suffixes: Sequence[str] = (".exe",),
) -> list[Task]:
    """Split ``argv`` into one task per executable token, in order."""

    suffixes = tuple(suffix.lower() for suffix in executable_suffixes)
    tasks: list[Task] = []
    index = 0

    while index < len(argv):
        token = argv[index]
        if not _is_executable(token, suffixes):
            logger.warning("Ignoring argument before the first executable: %s", token)
            index += 1
            continue

        builder = _TaskBuilder(path=token)
        index += 1
        while index < len(argv) and not _is_executable(argv[index], suffixes):
            index = _consume(builder, argv, index, suffixes)
        tasks.append(builder.build())

    return tasks


def _consume(
    builder: _TaskBuilder,
    argv: Sequence[str],
    index: int,
    suffixes: tuple[str, ...],
) -> int:
    """Apply the token at ``index`` to ``builder`` and return the next index."""

    token = argv[index]
    option = token.lower()
    value = _value_after(argv, index, suffixes)

    interval = _parse_interval(token, value)
    if interval is not None:
        builder.interval, consumed = interval
        return index + consumed

    if value is not None:
        if option == CONNECTION_STRING_OPTION:
            if not value.strip():
                raise TaskConfigurationError(
                    f"-ConnectionString must not be blank (task {builder.path}).",
                )
            builder.connection = value
            return index + 2
        if option == RUN_SQL_COMMAND_OPTION:
            connection = builder.require_connection("-RunSqlCommand")
            builder.steps.append(RunCommand(text=value, connection=connection))
            return index + 2
        if option == RUN_STORED_PROCEDURE_OPTION:
            connection = builder.require_connection("-RunStoredProcedure")
            builder.steps.append(RunJob(name=value, connection=connection))
            return index + 2

    builder.argument_list.append(token)
    return index + 1


def _parse_interval(token: str, value: str | None) -> tuple[int, int] | None:
    """Return (minutes, tokens consumed) or None when not a valid interval."""

    if not token.lower().startswith(INTERVAL_OPTION):
        return None
    if len(token) == len(INTERVAL_OPTION):
        raw, consumed = value, 2
    else:
        raw, consumed = token[len(INTERVAL_OPTION) :], 1
    if raw is None or not _INTERVAL_VALUE.fullmatch(raw):
        return None
    return int(raw), consumed


def _value_after(argv: Sequence[str], index: int, suffixes: tuple[str, ...]) -> str | None:
    if index + 1 >= len(argv):
        return None
    candidate = argv[index + 1]
    if _is_executable(candidate, suffixes):
        return None
    return candidate


def _is_executable(token: str, suffixes: tuple[str, ...]) -> bool:
    return token.lower().endswith(suffixes)
