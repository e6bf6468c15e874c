"""
Console output for the avbuild pipeline.

Every console line starts with the time elapsed since the run began
(MM:SS.cc), which makes it obvious whether a slow run spent its time in
extraction, in make or in header parsing:

    00:00.02 avbuild v0.3.0
    00:00.02 PROFILE=debug OPT_LEVEL=0 PLATFORM=linux
    00:00.03 [1/6] Provisioning FFmpeg source...
    00:04.51       Extracted FFmpeg-FFmpeg-2722fc2.tar.xz -> /out/FFmpeg-FFmpeg-2722fc2
    00:04.52 [2/6] Building native libraries...

Link directives are a separate channel: emit_directive() writes them bare,
one per line, to the directive stream (stdout unless redirected) so the
outer build system can parse them.
"""

import sys
import time
from dataclasses import dataclass, field
from types import TracebackType
from typing import Optional, TextIO


@dataclass
class _Console:
    start: Optional[float] = None
    stream: TextIO = field(default_factory=lambda: sys.stdout)
    directives: TextIO = field(default_factory=lambda: sys.stdout)
    verbose: bool = True


_console = _Console()


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """Start the elapsed-time clock, optionally switching the console stream.

    The first log call starts the clock implicitly if this was never called.
    """
    _console.start = time.time()
    if output_stream is not None:
        _console.stream = output_stream


def set_verbose(verbose: bool) -> None:
    """When False, messages logged with verbose_only=True are dropped."""
    _console.verbose = verbose


def set_directive_stream(stream: TextIO) -> None:
    _console.directives = stream


def get_elapsed() -> float:
    """Seconds since init_timer()."""
    if _console.start is None:
        init_timer()
    return time.time() - _console.start  # type: ignore[operator]


def format_timestamp() -> str:
    minutes, seconds = divmod(get_elapsed(), 60)
    return f"{int(minutes):02d}:{seconds:05.2f}"


def _enabled(verbose_only: bool) -> bool:
    return _console.verbose or not verbose_only


def _write(message: str) -> None:
    _console.stream.write(f"{format_timestamp()} {message}\n")
    _console.stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    if _enabled(verbose_only):
        _write(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """Pipeline phase banner: "[phase/total] message"."""
    if _enabled(verbose_only):
        _write(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """Indented line under the current phase banner."""
    if _enabled(verbose_only):
        _write(" " * indent + message)


def log_file(label: str, filename: str, cached: bool = False, verbose_only: bool = True) -> None:
    """One compiled source file, e.g. "      [cbits] defs.c"."""
    if _enabled(verbose_only):
        _write(f"      [{label}] {filename}{' (cached)' if cached else ''}")


def log_header(title: str, version: str) -> None:
    _write(f"{title} v{version}")


def log_build_complete(build_time: float, verbose_only: bool = False) -> None:
    if _enabled(verbose_only):
        _write(f"Build time: {build_time:.2f}s")


def log_error(message: str) -> None:
    _write(f"ERROR: {message}")


def log_warning(message: str) -> None:
    _write(f"WARNING: {message}")


def emit_directive(line: str) -> None:
    """Write one link directive line, without timestamp."""
    _console.directives.write(line + "\n")
    _console.directives.flush()


class TimedLogger:
    """
    Phase banner on entry, "Done (N.NNs)" on clean exit.

    Usage:
        with TimedLogger("Building native libraries", phase=(2, 6)) as timer:
            driver.build(tree, flags)
            timer.detail("make finished")

    Nothing is logged on exit when the block raises; the error is reported
    by whoever handles it.
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.started = 0.0

    def __enter__(self) -> "TimedLogger":
        self.started = time.time()
        banner = f"{self.operation}..."
        if self.phase is None:
            log(banner, self.verbose_only)
        else:
            log_phase(self.phase[0], self.phase[1], banner, self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if exc_type is None:
            log_detail(f"Done ({time.time() - self.started:.2f}s)", verbose_only=self.verbose_only)

    def detail(self, message: str) -> None:
        log_detail(message, verbose_only=self.verbose_only)
