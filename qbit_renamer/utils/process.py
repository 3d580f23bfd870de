"""
Runs external tools as subprocesses with an explicit argument vector.

Commands are never passed through a shell. Every run has a hard wall-clock
timeout, and processes still running at shutdown can be terminated through
the module-level registry.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import List, Set

from qbit_renamer.exceptions import ExternalToolError, OperationTimeoutError

log = logging.getLogger(__name__)

# Tracks active processes for graceful shutdown
_active_processes: Set[asyncio.subprocess.Process] = set()


@dataclass
class ProcessResult:
    """Exit status and separately captured output streams of a finished process."""

    returncode: int
    stdout: str
    stderr: str


def active_process_count() -> int:
    return len(_active_processes)


def terminate_all_processes() -> None:
    """Kills every tracked process that is still running."""
    if not _active_processes:
        return
    log.info(f"Terminating {len(_active_processes)} active process(es)...")
    for process in list(_active_processes):
        _kill(process)


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass


async def run_command(command: List[str], timeout: float) -> ProcessResult:
    """
    Executes a command and captures stdout and stderr separately.

    Args:
        command: The program followed by its arguments, one element each.
        timeout: Seconds to wait before the process is killed.

    Returns:
        A ProcessResult. A non-zero exit status is reported, not raised.

    Raises:
        ExternalToolError: If the program cannot be started.
        OperationTimeoutError: If the process runs longer than `timeout`.
    """
    program = os.path.basename(command[0])
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        log.error(f"Failed to start '{program}': {e}")
        raise ExternalToolError(f"Failed to execute {program}") from e

    _active_processes.add(process)
    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError as e:
        log.error(f"'{program}' exceeded its {timeout:g}s timeout and was killed.")
        _kill(process)
        await process.wait()
        raise OperationTimeoutError(
            f"{program} timed out after {timeout:g}s"
        ) from e
    except asyncio.CancelledError:
        log.warning(f"'{program}' was cancelled by the caller and was killed.")
        _kill(process)
        await process.wait()
        raise
    finally:
        _active_processes.discard(process)

    return ProcessResult(
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
