"""Start one run loop per task and park until shutdown."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence

from batch_runner.supervisor.loop import StepExecutor, TaskLoop
from batch_runner.supervisor.models import Task
from batch_runner.supervisor.registry import ProcessRegistry
from batch_runner.supervisor.shutdown import ShutdownCoordinator

logger = logging.getLogger(__name__)


class Supervisor:
    """Owns the shared registry and the fire-and-forget task threads."""

    def __init__(
        self,
        *,
        tasks: Sequence[Task],
        executor: StepExecutor,
        registry: ProcessRegistry | None = None,
        coordinator: ShutdownCoordinator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.tasks = tuple(tasks)
        self.executor = executor
        self.registry = registry if registry is not None else ProcessRegistry()
        self.coordinator = (
            coordinator if coordinator is not None else ShutdownCoordinator(self.registry)
        )
        self._sleep = sleep
        self.threads: list[threading.Thread] = []

    def start(self) -> list[threading.Thread]:
        """Launch a daemon thread per task; loops are never joined or cancelled."""

        for number, task in enumerate(self.tasks, start=1):
            loop = TaskLoop(
                task,
                registry=self.registry,
                executor=self.executor,
                sleep=self._sleep,
                stopping=lambda: self.coordinator.requested,
            )
            thread = threading.Thread(
                target=loop.run,
                daemon=True,
                name=f"task-{number}-{task.name}",
            )
            thread.start()
            self.threads.append(thread)
        logger.info("All apps started.")
        return list(self.threads)

    def run(self) -> int:
        """Start every task, park until interrupted, then kill all process trees.

        Returns the number of process trees killed by the sweep.
        """

        with self.coordinator.signal_handlers():
            self.start()
            self.coordinator.wait()
            return self.coordinator.sweep()
