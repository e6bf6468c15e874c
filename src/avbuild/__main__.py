"""
Command-line entry point.

Invoked by the outer build system with OUT_DIR, PROFILE and friends in the
environment. Progress goes to stderr; on success the link directives are
printed to stdout, one per line, for the outer build system to consume.

    OUT_DIR=target/ffmpeg PROFILE=debug OPT_LEVEL=0 avbuild path/to/project
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .build import BuildOrchestrator, ProjectLayout
from .environment import BuildEnvironment, EnvironmentProbe
from .errors import BuildEnvironmentError
from .output import emit_directive, init_timer, log, log_error, log_header, set_verbose


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="avbuild",
        description="Build FFmpeg from the bundled archive and emit link directives",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"avbuild {__version__}",
    )
    parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Host project directory holding archive/, headers and cbits/ (default: current directory)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print phase banners, warnings and errors",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the extraction progress bar",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the pipeline; returns the process exit code."""
    args = parse_args(argv)

    init_timer(sys.stderr)
    set_verbose(not args.quiet)
    log_header("avbuild", __version__)

    try:
        environment = BuildEnvironment.from_environ(os.environ)
    except BuildEnvironmentError as e:
        log_error(str(e))
        return 1
    log(EnvironmentProbe(environment).banner())

    layout = ProjectLayout(project_dir=args.project_dir.resolve())
    orchestrator = BuildOrchestrator(environment, layout, show_progress=not args.no_progress)
    result = orchestrator.build()

    if not result.success or result.link_plan is None:
        log_error(result.message)
        return 1

    for line in result.link_plan.render_lines():
        emit_directive(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
