"""Per-task run loop: process, dependent database steps, sleep, repeat."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol, assert_never

from batch_runner.supervisor.models import JobTask, PlainTask, RunCommand, RunJob, Step, Task
from batch_runner.supervisor.process import run_process
from batch_runner.supervisor.registry import ProcessRegistry, RegistrySealedError

logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60


class StepExecutor(Protocol):
    """Runs one database step, raising on failure."""

    def execute(self, step: Step) -> None:
        """Block until ``step`` has completed."""


class TaskLoop:
    """Drives one task through Starting, Running, Awaiting Steps and Sleeping.

    Nothing raised by the child process or by a database step escapes the
    loop: failures are logged and the loop carries on with the next state.
    Once ``stopping()`` reports a shutdown the loop runs no further steps
    and starts no further processes.
    """

    def __init__(
        self,
        task: Task,
        *,
        registry: ProcessRegistry,
        executor: StepExecutor,
        sleep: Callable[[float], None] = time.sleep,
        stopping: Callable[[], bool] = lambda: False,
    ) -> None:
        self.task = task
        self.registry = registry
        self.executor = executor
        self._sleep = sleep
        self._stopping = stopping

    def run(self) -> int:
        """Repeat the task until it has no interval or shutdown is requested.

        Returns the number of completed iterations.
        """

        iterations = 0
        while not self._stopping():
            self.run_once()
            iterations += 1
            interval = self.task.interval
            if interval is None or self._stopping():
                break
            logger.info(
                "Waiting %d minute(s) before next run of %s",
                interval,
                self.task.label,
            )
            self._sleep(interval * SECONDS_PER_MINUTE)
        return iterations

    def run_once(self) -> int | None:
        """One pass: run the process, then its database steps.

        Returns the exit code, or None when the process could not be run.
        """

        label = self.task.label
        logger.info("STARTING %s", label)

        exit_code: int | None = None
        try:
            exit_code = run_process(self.task, registry=self.registry)
        except RegistrySealedError:
            logger.info("Shutdown in progress; not starting %s", label)
            return None
        except Exception:  # noqa: BLE001
            logger.exception("EXCEPTION while running %s", label)
        else:
            logger.info("FINISHED %s with exit code %d", label, exit_code)
            if exit_code != 0:
                logger.warning("Non-zero exit code: %d", exit_code)

        if self._stopping():
            return exit_code
        try:
            self._run_steps()
        except Exception:  # noqa: BLE001
            logger.exception("EXCEPTION while running database steps for %s", label)
        return exit_code

    def _run_steps(self) -> None:
        task = self.task
        if isinstance(task, PlainTask):
            return
        if isinstance(task, JobTask):
            for step in task.steps:
                if self._stopping():
                    return
                self._run_step(step)
            return
        assert_never(task)

    def _run_step(self, step: Step) -> None:
        name = self.task.name
        if isinstance(step, RunCommand):
            logger.info("Executing SQL command %s: %s", name, step.text)
            self.executor.execute(step)
            logger.info("SQL command executed successfully %s", name)
        elif isinstance(step, RunJob):
            logger.info("Starting SQL job %s: %s", name, step.name)
            self.executor.execute(step)
            logger.info("SQL job %s completed %s", step.name, name)
        else:
            assert_never(step)
