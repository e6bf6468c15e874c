"""Caching gates for the pipeline.

Design:
    The plan is recomputed from scratch on every invocation from three
    inputs: the captured environment, a handful of filesystem probes, and the
    developer override flags. Nothing is persisted between runs.

    Both gates are presence-based. The native gate looks only at the final
    static archives, never at source timestamps or intermediate objects; the
    codegen gate looks only at whether the binding file exists. Release
    builds bypass the native gate unconditionally.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from ..environment import EnvironmentProbe
from ..platform_configs import PlatformProfile
from .artifacts import ArtifactSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildPlan:
    """Which pipeline steps this invocation skips."""

    skip_extract: bool
    skip_native_build: bool
    skip_codegen: bool

    def describe(self) -> str:
        def word(skip: bool) -> str:
            return "skip" if skip else "run"

        return f"extract={word(self.skip_extract)} native={word(self.skip_native_build)} codegen={word(self.skip_codegen)}"


def build_gate(artifact_set: ArtifactSet, source_root: Path, probe: EnvironmentProbe, force_rebuild: bool) -> bool:
    """Decide whether the native build can be skipped.

    Returns:
        True (skip) iff every artifact exists, the profile is not release,
        and no forced rebuild was requested
    """
    if force_rebuild:
        return False
    if probe.is_release():
        return False
    return artifact_set.all_present(source_root)


def codegen_gate(bindings_path: Path, force_regenerate: bool) -> bool:
    """Decide whether binding generation can be skipped.

    Returns:
        True (skip) iff the binding file exists and regeneration is not forced
    """
    if force_regenerate:
        return False
    return bindings_path.exists()


def compute_build_plan(
    artifact_set: ArtifactSet,
    source_root: Path,
    bindings_path: Path,
    probe: EnvironmentProbe,
    platform_profile: PlatformProfile,
) -> BuildPlan:
    """Derive the BuildPlan for this invocation.

    Platforms that link against a prebuilt tree (native_build disabled in
    their profile) never run the native build. Extraction is skipped only
    when the native build is skipped and the source tree already exists.
    """
    if platform_profile.native_build:
        skip_native = build_gate(artifact_set, source_root, probe, probe.force_native_rebuild())
    else:
        skip_native = True

    skip_extract = source_root.exists() and skip_native
    skip_codegen = codegen_gate(bindings_path, probe.force_codegen())

    plan = BuildPlan(skip_extract=skip_extract, skip_native_build=skip_native, skip_codegen=skip_codegen)
    logger.debug("Build plan: %s", plan.describe())
    return plan
