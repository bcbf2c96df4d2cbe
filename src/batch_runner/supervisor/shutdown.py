"""Interrupt handling: kill every tracked process tree, then let the program exit."""

from __future__ import annotations

import logging
import ntpath
import signal
import subprocess
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import psutil

from batch_runner.supervisor.registry import ProcessRegistry

logger = logging.getLogger(__name__)

KILL_WAIT_SECONDS = 5.0


def kill_process_tree(pid: int, *, wait_seconds: float = KILL_WAIT_SECONDS) -> None:
    """Forcefully kill ``pid`` and every process descended from it."""

    parent = psutil.Process(pid)
    children = parent.children(recursive=True)
    parent.kill()
    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            continue
    psutil.wait_procs([parent, *children], timeout=wait_seconds)


class ShutdownCoordinator:
    """Turns an interrupt signal into one sequential kill sweep.

    Signal handlers only record the request. The main thread observes it via
    ``wait()`` and runs ``sweep()``, which holds the registry lock for the
    whole sweep so no process can start or be reaped meanwhile.
    """

    def __init__(
        self,
        registry: ProcessRegistry,
        *,
        kill_tree: Callable[[int], None] = kill_process_tree,
        poll_seconds: float = 0.2,
    ) -> None:
        self.registry = registry
        self._kill_tree = kill_tree
        self._poll_seconds = poll_seconds
        self._requested = threading.Event()
        self.signal_name: str | None = None

    @property
    def requested(self) -> bool:
        return self._requested.is_set()

    def request(self, signal_name: str = "shutdown") -> None:
        if self._requested.is_set():
            return
        self.signal_name = signal_name
        self._requested.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until shutdown is requested; False if ``timeout`` elapsed first.

        Waits in short slices so signal handlers get to run on every platform.
        """

        remaining = timeout
        while True:
            slice_seconds = self._poll_seconds
            if remaining is not None:
                if remaining <= 0:
                    return self._requested.is_set()
                slice_seconds = min(slice_seconds, remaining)
                remaining -= slice_seconds
            if self._requested.wait(timeout=slice_seconds):
                return True

    def sweep(self) -> int:
        """Kill every live registered process tree; returns how many were killed."""

        logger.info(
            "%s received. Terminating all child processes...",
            self.signal_name or "Shutdown",
        )
        killed = 0
        with self.registry.sealed() as processes:
            for process in processes:
                name = _process_name(process)
                try:
                    if process.poll() is not None:
                        continue
                    self._kill_tree(process.pid)
                except Exception as error:  # noqa: BLE001
                    logger.error("Error killing process %s: %s", name, error)
                    continue
                killed += 1
                logger.info("Killed %s", name)
        return killed

    @contextmanager
    def signal_handlers(self) -> Iterator[None]:
        """Route SIGINT/SIGTERM to ``request`` while the block runs."""

        if not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            self.request(name)

        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
        except ValueError:
            # Signal handlers can only be installed in main thread.
            yield
            return

        try:
            yield
        finally:
            try:
                signal.signal(signal.SIGINT, original_sigint)
                signal.signal(signal.SIGTERM, original_sigterm)
            except ValueError:
                pass


def _process_name(process: subprocess.Popen[str]) -> str:
    args = process.args
    if isinstance(args, (list, tuple)) and args:
        head = str(args[0])
    else:
        head = str(args)
    return ntpath.basename(head)
