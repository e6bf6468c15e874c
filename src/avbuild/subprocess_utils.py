"""Subprocess utilities for platform-safe process execution.

Wrappers around the subprocess module that apply platform-specific flags
(no console window flashing on Windows, no stdin inheritance) and capture
output in the shape the pipeline reports on failure.
"""

import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Union

logger = logging.getLogger(__name__)


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def _apply_defaults(kwargs: dict[str, Any]) -> dict[str, Any]:
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    # Child processes must not inherit the console input handle
    if "stdin" not in kwargs and "input" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return kwargs


def safe_run(cmd: List[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows (prevents console window)
    - stdin=DEVNULL unless 'stdin' (or 'input') is passed explicitly

    Args:
        cmd: Command and arguments (same as subprocess.run)
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run
    """
    return subprocess.run(cmd, **_apply_defaults(kwargs))


def safe_popen(cmd: List[str], **kwargs: Any) -> subprocess.Popen:
    """Execute subprocess.Popen with platform-specific flags.

    Same defaults as safe_run(), for cases that need the process handle
    (e.g. chaining one process's stdout into another's stdin).
    """
    return subprocess.Popen(cmd, **_apply_defaults(kwargs))


@dataclass(frozen=True)
class ProcessOutput:
    """Captured result of a finished external process.

    Attributes:
        args: Command line that was executed
        returncode: Exit status
        stdout: Decoded standard output
        stderr: Decoded standard error
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def combined(self) -> str:
        """stderr followed by stdout, the order diagnostics are read in."""
        return "\n".join(part for part in (self.stderr, self.stdout) if part)

    def lines(self) -> List[str]:
        """All output lines, stderr first."""
        return self.stderr.splitlines() + self.stdout.splitlines()

    def format_report(self) -> str:
        """Full diagnostic report with labelled sections."""
        return f"* command: {' '.join(self.args)}\n* stderr:\n{self.stderr}\n\n* stdout:\n{self.stdout}"


def run_captured(
    cmd: List[str],
    cwd: Optional[Union[str, Path]] = None,
    input_bytes: Optional[bytes] = None,
) -> ProcessOutput:
    """Run a command to completion and capture its output.

    Blocks until the process exits; there is no timeout. Output is decoded
    as UTF-8 with replacement so a stray byte never hides the diagnostic.

    Args:
        cmd: Command and arguments
        cwd: Working directory for the child process
        input_bytes: Optional bytes fed to the child's stdin

    Returns:
        ProcessOutput with exit status and decoded output

    Raises:
        FileNotFoundError: If the executable does not exist
    """
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)
    if input_bytes is None:
        result = safe_run(cmd, cwd=cwd, capture_output=True)
    else:
        result = safe_run(cmd, cwd=cwd, capture_output=True, input=input_bytes)
    output = ProcessOutput(
        args=tuple(str(arg) for arg in cmd),
        returncode=result.returncode,
        stdout=(result.stdout or b"").decode("utf-8", errors="replace"),
        stderr=(result.stderr or b"").decode("utf-8", errors="replace"),
    )
    logger.debug("%s exited with %d", cmd[0], output.returncode)
    return output
