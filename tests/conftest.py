"""Shared test fixtures."""

from __future__ import annotations

import logging
import sys

import pytest

from batch_runner.logging_setup import PACKAGE_LOGGER
from batch_runner.supervisor.models import PlainTask, Step
from batch_runner.supervisor.registry import ProcessRegistry


class RecordingExecutor:
    """Step executor double that records steps and fails on demand."""

    def __init__(self, *, fail_on: set[str] | None = None) -> None:
        self.executed: list[Step] = []
        self.fail_on = fail_on or set()

    def execute(self, step: Step) -> None:
        self.executed.append(step)
        key = getattr(step, "text", None) or getattr(step, "name", "")
        if key in self.fail_on:
            raise RuntimeError(f"step failed: {key}")


def _python_task(code: str, *, interval: int | None = None) -> PlainTask:
    return PlainTask(path=sys.executable, argument_list=("-c", code), interval=interval)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def registry() -> ProcessRegistry:
    return ProcessRegistry()


@pytest.fixture()
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture()
def make_executor():
    return RecordingExecutor


@pytest.fixture()
def python_task():
    """Build a task that runs inline Python code with the current interpreter."""

    return _python_task
