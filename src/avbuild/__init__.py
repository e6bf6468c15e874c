"""avbuild - build-time pipeline for FFmpeg bindings.

Provisions the FFmpeg source tree from a bundled archive, builds the static
libraries, generates cffi-compatible declarations from the public headers,
compiles a small glue shim and emits link directives for the outer build
system.

Example:
    >>> import os
    >>> from pathlib import Path
    >>> from avbuild.build import BuildOrchestrator, ProjectLayout
    >>> from avbuild.environment import BuildEnvironment
    >>>
    >>> env = BuildEnvironment.from_environ(os.environ)
    >>> result = BuildOrchestrator(env, ProjectLayout(project_dir=Path("."))).build()
    >>> if result.success:
    ...     print(result.link_plan.to_build_kwargs())
"""

__version__ = "0.3.0"
