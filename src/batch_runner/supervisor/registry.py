"""Shared, lock-guarded set of live child processes."""

from __future__ import annotations

import subprocess
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager


class RegistrySealedError(RuntimeError):
    """Raised when a process is spawned after the shutdown sweep began."""


class ProcessRegistry:
    """Processes that were started and not yet observed to exit.

    One coarse lock guards every read and write. Spawning happens inside the
    lock, so a process is never alive without being visible to the shutdown
    sweep.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._processes: list[subprocess.Popen[str]] = []
        self._sealed = False

    def spawn(self, start: Callable[[], subprocess.Popen[str]]) -> subprocess.Popen[str]:
        """Start a process with ``start()`` and register it atomically."""

        with self._lock:
            if self._sealed:
                raise RegistrySealedError("Shutdown in progress; refusing to start a process.")
            process = start()
            self._processes.append(process)
            return process

    def remove(self, process: subprocess.Popen[str]) -> None:
        with self._lock:
            try:
                self._processes.remove(process)
            except ValueError:
                pass

    def snapshot(self) -> list[subprocess.Popen[str]]:
        with self._lock:
            return list(self._processes)

    @contextmanager
    def sealed(self) -> Iterator[list[subprocess.Popen[str]]]:
        """Hold the lock, refuse further spawns and expose the live handles."""

        with self._lock:
            self._sealed = True
            yield list(self._processes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._processes)

    def __contains__(self, process: object) -> bool:
        with self._lock:
            return process in self._processes
