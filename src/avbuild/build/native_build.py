"""Native FFmpeg build driver.

Runs FFmpeg's configure script and then make inside the source tree.

Configure has exactly one automatic recovery: when the host lacks a usable
x86 assembler, configure fails with a recognizable message and is re-run
once with assembly disabled. No other failure is retried, and make is never
retried. Every failure surfaces the complete captured output.

State machine:
    NOT_STARTED -> CONFIGURING -> COMPILING -> DONE
                              \\-> CONFIGURING_RETRY -> COMPILING
    Any state -> FAILED (terminal)
"""

import logging
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

import psutil

from ..environment import EnvironmentProbe
from ..errors import CompilationError, ConfigurationError
from ..output import log_detail, log_warning
from ..packages import SourceTree
from ..subprocess_utils import ProcessOutput, run_captured

logger = logging.getLogger(__name__)

BASE_CONFIGURE_FLAGS = (
    "--disable-programs",
    "--disable-doc",
    "--disable-autodetect",
)

# Debug builds at opt-level 0 trade runtime speed for configure/compile time
FAST_ITERATION_FLAGS = (
    "--disable-optimizations",
    "--disable-debug",
    "--disable-stripping",
)

ASSEMBLER_MISSING_SIGNATURE = "nasm/yasm not found or too old"
DISABLE_ASSEMBLER_FLAG = "--disable-x86asm"

Runner = Callable[..., ProcessOutput]


class NativeBuildState(Enum):
    NOT_STARTED = "not_started"
    CONFIGURING = "configuring"
    CONFIGURING_RETRY = "configuring_retry"
    COMPILING = "compiling"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: Dict[NativeBuildState, FrozenSet[NativeBuildState]] = {
    NativeBuildState.NOT_STARTED: frozenset({NativeBuildState.CONFIGURING}),
    NativeBuildState.CONFIGURING: frozenset(
        {NativeBuildState.COMPILING, NativeBuildState.CONFIGURING_RETRY, NativeBuildState.FAILED}
    ),
    NativeBuildState.CONFIGURING_RETRY: frozenset({NativeBuildState.COMPILING, NativeBuildState.FAILED}),
    NativeBuildState.COMPILING: frozenset({NativeBuildState.DONE, NativeBuildState.FAILED}),
    NativeBuildState.DONE: frozenset(),
    NativeBuildState.FAILED: frozenset(),
}


def configure_flags(probe: EnvironmentProbe) -> List[str]:
    """Configure flags for the captured environment."""
    flags = list(BASE_CONFIGURE_FLAGS)
    if probe.is_debug() and probe.opt_level_equals(0):
        flags.extend(FAST_ITERATION_FLAGS)
    return flags


def default_parallelism() -> int:
    """Logical core count of the host, used as the make -j hint."""
    return psutil.cpu_count(logical=True) or 1


def has_assembler_signature(result: ProcessOutput) -> bool:
    return any(ASSEMBLER_MISSING_SIGNATURE in line for line in result.lines())


class NativeBuildDriver:
    """Configures and compiles FFmpeg in place inside the source tree."""

    def __init__(self, runner: Optional[Runner] = None):
        """
        Args:
            runner: Process runner with the signature of run_captured
                (injectable for tests)
        """
        self.runner = runner or run_captured
        self.state = NativeBuildState.NOT_STARTED
        self.history: List[NativeBuildState] = [self.state]

    def _transition(self, new_state: NativeBuildState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise CompilationError(f"invalid native build transition {self.state.value} -> {new_state.value}")
        logger.debug("Native build: %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    def _invoke(self, cmd: List[str], error_cls: type, **kwargs) -> ProcessOutput:
        try:
            return self.runner(cmd, **kwargs)
        except FileNotFoundError as e:
            self._transition(NativeBuildState.FAILED)
            raise error_cls(f"{cmd[0]} could not be started: {e}")

    def _run_configure(self, source_tree: SourceTree, flags: List[str]) -> ProcessOutput:
        return self._invoke(["sh", "./configure", *flags], ConfigurationError, cwd=source_tree.root)

    def configure(self, source_tree: SourceTree, base_flags: List[str]) -> ProcessOutput:
        """Run FFmpeg's configure script, retrying once without assembly if needed.

        Args:
            source_tree: Extracted FFmpeg source tree
            base_flags: Flags from configure_flags()

        Returns:
            Output of the successful configure run

        Raises:
            ConfigurationError: On any failure other than the assembler
                signature, or when the retry also fails. Carries the output
                of the most recent attempt.
        """
        self._transition(NativeBuildState.CONFIGURING)
        flags = list(base_flags)
        log_detail(f"./configure {' '.join(flags)}", verbose_only=True)
        result = self._run_configure(source_tree, flags)
        if result.success:
            return result

        if not has_assembler_signature(result):
            self._transition(NativeBuildState.FAILED)
            raise ConfigurationError("configure failed", output=result.combined)

        log_warning(f"configure: {ASSEMBLER_MISSING_SIGNATURE}; retrying with {DISABLE_ASSEMBLER_FLAG}")
        self._transition(NativeBuildState.CONFIGURING_RETRY)
        flags.append(DISABLE_ASSEMBLER_FLAG)
        result = self._run_configure(source_tree, flags)
        if not result.success:
            self._transition(NativeBuildState.FAILED)
            raise ConfigurationError(f"configure failed (with {DISABLE_ASSEMBLER_FLAG})", output=result.combined)
        return result

    def compile(self, source_tree: SourceTree, parallelism: int) -> ProcessOutput:
        """Run make with a -j hint.

        Raises:
            CompilationError: On non-zero exit, with stderr and stdout verbatim
        """
        self._transition(NativeBuildState.COMPILING)
        cmd = ["make", "-C", str(source_tree.root), "-f", "Makefile", f"-j{parallelism}"]
        log_detail(" ".join(cmd), verbose_only=True)
        result = self._invoke(cmd, CompilationError)
        if not result.success:
            self._transition(NativeBuildState.FAILED)
            raise CompilationError("make failed", output=result.format_report())
        self._transition(NativeBuildState.DONE)
        return result

    def build(self, source_tree: SourceTree, base_flags: List[str], parallelism: Optional[int] = None) -> None:
        """Configure then compile; either step failing is fatal."""
        self.configure(source_tree, base_flags)
        self.compile(source_tree, parallelism or default_parallelism())
