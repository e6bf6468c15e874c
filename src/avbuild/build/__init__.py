"""
Build components for avbuild.

This package provides:
- Caching gates (build_plan)
- Native FFmpeg configure/make driver
- Link directive planning
- Glue shim compilation
- Build orchestration
"""

from .artifacts import COMPONENT_SEARCH_DIRS, FFMPEG_ARTIFACTS, Artifact, ArtifactSet
from .build_context import ProjectLayout
from .build_plan import BuildPlan, build_gate, codegen_gate, compute_build_plan
from .link_planner import DirectiveKind, LinkDirective, LinkPlan, plan_links
from .native_build import NativeBuildDriver, NativeBuildState, configure_flags
from .orchestrator import BuildOrchestrator, BuildResult
from .shim_compiler import ShimCompiler

__all__ = [
    "COMPONENT_SEARCH_DIRS",
    "FFMPEG_ARTIFACTS",
    "Artifact",
    "ArtifactSet",
    "ProjectLayout",
    "BuildPlan",
    "build_gate",
    "codegen_gate",
    "compute_build_plan",
    "DirectiveKind",
    "LinkDirective",
    "LinkPlan",
    "plan_links",
    "NativeBuildDriver",
    "NativeBuildState",
    "configure_flags",
    "BuildOrchestrator",
    "BuildResult",
    "ShimCompiler",
]
