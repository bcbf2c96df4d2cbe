"""Child process launch and line-oriented output capture."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from typing import IO

from batch_runner.supervisor.models import Task
from batch_runner.supervisor.registry import ProcessRegistry

logger = logging.getLogger(__name__)

OUTPUT_TAG = "[OUTPUT]"
STDERR_TAG = "[STDERR]"


def build_run_args(task: Task) -> list[str]:
    """Argument vector for the child; no shell ever interprets it."""

    return [task.path, *task.argument_list]


def run_process(task: Task, *, registry: ProcessRegistry) -> int:
    """Run ``task`` to completion, forwarding its output, and return the exit code.

    The handle is registered while the process starts and deregistered as
    soon as ``wait()`` returns. Raises ``OSError`` when the executable cannot
    be started.
    """

    run_args = build_run_args(task)
    process = registry.spawn(
        lambda: subprocess.Popen(  # noqa: S603
            run_args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            creationflags=_no_window_flags(),
        ),
    )
    readers = [
        _start_reader(process.stdout, tag=OUTPUT_TAG, label=task.label),
        _start_reader(process.stderr, tag=STDERR_TAG, label=task.label),
    ]
    try:
        returncode = process.wait()
    finally:
        registry.remove(process)
    for reader in readers:
        reader.join()
    return returncode


def _start_reader(stream: IO[str] | None, *, tag: str, label: str) -> threading.Thread:
    thread = threading.Thread(
        target=_forward_lines,
        args=(stream, tag, label),
        daemon=True,
        name=f"{tag.strip('[]').lower()}-{label}",
    )
    thread.start()
    return thread


def _forward_lines(stream: IO[str] | None, tag: str, label: str) -> None:
    if stream is None:
        return
    try:
        for line in stream:
            text = line.rstrip("\r\n")
            if text.strip():
                logger.info("%s %s: %s", tag, label, text)
    finally:
        stream.close()


def _no_window_flags(os_name: str | None = None) -> int:
    if (os_name or os.name) == "nt":
        return getattr(subprocess, "CREATE_NO_WINDOW", 0)
    return 0
