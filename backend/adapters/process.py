"""
Subprocess runner shared by the engine adapters.

Responsibilities:
- Spawn one external process with piped stdout/stderr
- Await completion without blocking the event loop
- Enforce an optional wall-clock timeout
- Kill and reap the process on timeout or task cancellation

Non-responsibilities:
- No interpretation of exit codes (adapters decide what a failure is)
- No temp-file management
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from adapters.errors import ProcessTimeoutError


@dataclass(frozen=True)
class ProcessResult:
    """Decoded outcome of one finished process."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def combined_output(self) -> str:
        """stdout followed by stderr."""
        return self.stdout + self.stderr


def library_path_env(lib_dir: Path, base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Copy of base (default: os.environ) with lib_dir prepended to LD_LIBRARY_PATH."""
    env = dict(os.environ if base is None else base)
    env["LD_LIBRARY_PATH"] = f"{lib_dir}:{env.get('LD_LIBRARY_PATH', '')}"
    return env


async def run_process(
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    timeout_s: float | None = None,
) -> ProcessResult:
    """
    Run argv to completion and capture its output.

    Raises:
        OSError: the executable could not be started.
        ProcessTimeoutError: timeout_s elapsed; the process was killed.
        asyncio.CancelledError: the awaiting task was cancelled; the process
            was killed before re-raising.
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env) if env is not None else None,
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
    except asyncio.TimeoutError as e:
        await _kill(proc)
        raise ProcessTimeoutError(
            f"{argv[0]} timed out after {timeout_s:g}s"
        ) from e
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    assert proc.returncode is not None
    return ProcessResult(
        returncode=proc.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill (if still running) and reap a process."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()
