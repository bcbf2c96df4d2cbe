"""Task model, parsing, run loops and shutdown for supervised executables."""

from batch_runner.supervisor.loop import StepExecutor, TaskLoop
from batch_runner.supervisor.models import JobTask, PlainTask, RunCommand, RunJob, Step, Task
from batch_runner.supervisor.parser import TaskConfigurationError, parse_tasks
from batch_runner.supervisor.registry import ProcessRegistry, RegistrySealedError
from batch_runner.supervisor.runner import Supervisor
from batch_runner.supervisor.shutdown import ShutdownCoordinator

__all__ = [
    "JobTask",
    "PlainTask",
    "ProcessRegistry",
    "RegistrySealedError",
    "RunCommand",
    "RunJob",
    "ShutdownCoordinator",
    "Step",
    "StepExecutor",
    "Supervisor",
    "Task",
    "TaskConfigurationError",
    "TaskLoop",
    "parse_tasks",
]
