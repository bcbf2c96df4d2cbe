"""CLI entrypoint for batch-runner."""

from __future__ import annotations

import logging
from pathlib import Path

import rich_click as click

from batch_runner import __version__
from batch_runner.config import Settings
from batch_runner.database import SqlStepExecutor
from batch_runner.logging_setup import setup_logging
from batch_runner.supervisor import Supervisor, TaskConfigurationError, parse_tasks

click.rich_click.USE_MARKDOWN = True
logger = logging.getLogger(__name__)

_CONTEXT_SETTINGS = {
    "ignore_unknown_options": True,
    "allow_interspersed_args": False,
}


@click.command(context_settings=_CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="batch-runner")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Log file path. Defaults to BATCH_RUNNER_LOG_PATH or BatchRunner.log beside the script.",
)
@click.argument("task_args", nargs=-1, type=click.UNPROCESSED)
def batch_runner(log_file: Path | None, task_args: tuple[str, ...]) -> None:
    """Run executables, optionally on an interval, each followed by database steps.

    `batch-runner a.exe -Interval 5 b.exe --flag -ConnectionString "..." -RunSqlCommand "..."`

    Per-executable options: `-Interval <minutes>`, `-ConnectionString <value>`,
    `-RunSqlCommand <sql>`, `-RunStoredProcedure <job name>`. Everything else is
    passed to the executable. Runs until interrupted.
    """

    try:
        settings = Settings.from_env(log_path=log_file)
        settings.validate()
    except ValueError as error:
        raise click.UsageError(str(error)) from error

    setup_logging(log_path=settings.log_path, level=settings.log_level)

    try:
        tasks = parse_tasks(task_args, executable_suffixes=settings.executable_suffixes)
    except TaskConfigurationError as error:
        logger.error("Configuration error: %s", error)
        raise click.UsageError(str(error)) from error
    if not tasks:
        suffixes = ", ".join(settings.executable_suffixes)
        raise click.UsageError(f"No executables given (expected arguments ending in {suffixes}).")

    logger.info("batch-runner %s supervising %d task(s)", __version__, len(tasks))

    supervisor = Supervisor(
        tasks=tasks,
        executor=SqlStepExecutor.from_settings(settings.sql),
    )
    supervisor.run()


if __name__ == "__main__":  # pragma: no cover
    batch_runner()
