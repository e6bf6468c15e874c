"""Glue (shim) compilation.

Compiles the small C sources that expose FFmpeg macros and helpers through
a stable C surface, then archives them into one static library. Runs on
every invocation; it is cheap next to the FFmpeg build and has no gate.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..errors import ShimCompilationError
from ..output import log_file
from ..packages import SourceTree
from ..subprocess_utils import ProcessOutput, run_captured

logger = logging.getLogger(__name__)

Runner = Callable[..., ProcessOutput]


class ShimCompiler:
    """Compiles glue sources against the FFmpeg headers into lib<name>.a."""

    def __init__(self, cc: str = "cc", ar: str = "ar", runner: Optional[Runner] = None):
        self.cc = cc
        self.ar = ar
        self.runner = runner or run_captured

    def _run(self, cmd: List[str], what: str) -> None:
        try:
            result = self.runner(cmd)
        except FileNotFoundError as e:
            raise ShimCompilationError(f"{cmd[0]} could not be started: {e}")
        if not result.success:
            raise ShimCompilationError(f"{what} failed", output=result.format_report())

    def compile(self, sources: Sequence[Path], source_tree: SourceTree, out_dir: Path, name: str = "cbits") -> Path:
        """Compile sources and archive them.

        Args:
            sources: Glue C source files
            source_tree: FFmpeg source tree used as the include root
            out_dir: Directory receiving object files and the archive
            name: Library name; the archive is lib<name>.a

        Returns:
            Path to the static archive

        Raises:
            ShimCompilationError: If a source is missing or a tool fails
        """
        if not sources:
            raise ShimCompilationError("no shim sources given")

        obj_dir = out_dir / f"{name}-obj"
        obj_dir.mkdir(parents=True, exist_ok=True)

        objects = []
        for source in sources:
            if not source.is_file():
                raise ShimCompilationError(f"shim source not found: {source}")
            obj = obj_dir / f"{source.stem}.o"
            cmd = [self.cc, "-c", "-fPIC", "-O2", f"-I{source_tree.root}", str(source), "-o", str(obj)]
            log_file(name, source.name)
            self._run(cmd, f"compiling {source.name}")
            objects.append(obj)

        archive = out_dir / f"lib{name}.a"
        if archive.exists():
            # ar rcs would keep members from a previous run
            archive.unlink()
        self._run([self.ar, "rcs", str(archive), *[str(o) for o in objects]], f"archiving lib{name}.a")
        logger.debug("Created %s from %d objects", archive, len(objects))
        return archive
