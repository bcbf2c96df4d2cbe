"""Typed task and database step descriptors."""

from __future__ import annotations

import ntpath
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RunCommand:
    """Execute arbitrary SQL text once the process has exited."""

    text: str
    connection: str


@dataclass(frozen=True, slots=True)
class RunJob:
    """Start a named server-side job and block until it is no longer running."""

    name: str
    connection: str


Step = RunCommand | RunJob


class _ExecutableIdentity:
    __slots__ = ()

    path: str
    argument_list: tuple[str, ...]

    @property
    def arguments(self) -> str:
        """Passthrough arguments joined the way they were given."""

        return " ".join(self.argument_list)

    @property
    def name(self) -> str:
        # ntpath splits on both separators
        return ntpath.basename(self.path)

    @property
    def label(self) -> str:
        return f"{self.name} {self.arguments}".strip()


@dataclass(frozen=True, slots=True)
class PlainTask(_ExecutableIdentity):
    """Executable run on its own, once or every `interval` minutes."""

    path: str
    argument_list: tuple[str, ...] = ()
    interval: int | None = None


@dataclass(frozen=True, slots=True)
class JobTask(_ExecutableIdentity):
    """Executable whose every run is followed by ordered database steps."""

    path: str
    argument_list: tuple[str, ...]
    interval: int | None
    connection: str
    steps: tuple[Step, ...]

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("JobTask requires at least one database step.")
        if not self.connection.strip():
            raise ValueError("JobTask requires a connection string.")


Task = PlainTask | JobTask
