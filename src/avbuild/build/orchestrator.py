"""
FFmpeg build orchestration.

Runs the pipeline in six phases:

    [1/6] provision the FFmpeg source tree from the bundled archive
    [2/6] configure and compile FFmpeg (gated on existing static archives)
    [3/6] plan link directives
    [4/6] generate bindings from the header manifest (gated on the output file)
    [5/6] compile the glue shim
    [6/6] write the link directives

Phase functions raise PipelineError subclasses; build() turns them into a
failed BuildResult. Directives are only handed out on success.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..codegen import BindingGenerator, MacroFilter, NameFilter, load_manifest, resolve
from ..environment import BuildEnvironment, EnvironmentProbe
from ..errors import CompilationError, ExtractionError, PipelineError
from ..output import TimedLogger, log_build_complete, log_detail, log_phase
from ..packages import SourceTree, ensure_source, get_extractor, install_vendored_files, locate_archive
from ..platform_configs import PlatformProfile, load_profile
from .artifacts import FFMPEG_ARTIFACTS, ArtifactSet
from .build_context import ProjectLayout
from .build_plan import BuildPlan, compute_build_plan
from .link_planner import LinkPlan, plan_links
from .native_build import NativeBuildDriver, configure_flags
from .shim_compiler import ShimCompiler

logger = logging.getLogger(__name__)

TOTAL_PHASES = 6


@dataclass
class BuildResult:
    """Outcome of one pipeline run."""

    success: bool
    link_plan: Optional[LinkPlan]
    bindings_path: Optional[Path]
    shim_path: Optional[Path]
    build_time: float
    message: str
    build_plan: Optional[BuildPlan] = None


class BuildOrchestrator:
    """
    Drives the FFmpeg pipeline for one invocation.

    Collaborators are created from the environment unless injected, which
    is how tests substitute fake process runners and generators.
    """

    def __init__(
        self,
        environment: BuildEnvironment,
        layout: ProjectLayout,
        platform_profile: Optional[PlatformProfile] = None,
        driver: Optional[NativeBuildDriver] = None,
        generator: Optional[BindingGenerator] = None,
        shim_compiler: Optional[ShimCompiler] = None,
        artifact_set: ArtifactSet = FFMPEG_ARTIFACTS,
        name_filter: Optional[NameFilter] = None,
        macro_filter: Optional[MacroFilter] = None,
        show_progress: bool = True,
    ):
        """
        Args:
            environment: Captured build environment
            layout: Host project inputs and output names
            platform_profile: Resolved platform profile (loaded for environment.platform when omitted)
            driver: Native build driver
            generator: Binding generator
            shim_compiler: Glue shim compiler
            artifact_set: Static archives the native build must produce
            name_filter: Allow-list for generated declarations
            macro_filter: Macros never emitted
            show_progress: Show a progress bar during extraction
        """
        self.environment = environment
        self.probe = EnvironmentProbe(environment)
        self.layout = layout
        self.platform_profile = platform_profile
        cc = self.probe.override_value("CC") or "cc"
        ar = self.probe.override_value("AR") or "ar"
        self.driver = driver or NativeBuildDriver()
        self.generator = generator or BindingGenerator(cc=cc)
        self.shim_compiler = shim_compiler or ShimCompiler(cc=cc, ar=ar)
        self.artifact_set = artifact_set
        self.name_filter = name_filter or NameFilter()
        self.macro_filter = macro_filter or MacroFilter()
        self.show_progress = show_progress

    def build(self) -> BuildResult:
        """Run every phase.

        Returns:
            BuildResult; on failure success is False, link_plan is None and
            message holds the error with its captured output
        """
        start_time = time.time()
        try:
            return self._build(start_time)
        except PipelineError as e:
            logger.debug("Pipeline failed: %s", type(e).__name__)
            return BuildResult(
                success=False,
                link_plan=None,
                bindings_path=None,
                shim_path=None,
                build_time=time.time() - start_time,
                message=str(e),
            )

    def _build(self, start_time: float) -> BuildResult:
        out_dir = self.probe.output_directory()
        out_dir.mkdir(parents=True, exist_ok=True)
        # A failed run must not leave the previous run's directives behind.
        self.layout.directives_path(out_dir).unlink(missing_ok=True)

        if self.platform_profile is None:
            self.platform_profile = load_profile(self.environment.platform, self.environment.overrides)
        profile = self.platform_profile

        tree = SourceTree(self.layout.source_root(out_dir))
        bindings_path = self.layout.bindings_path(out_dir)
        plan = compute_build_plan(self.artifact_set, tree.root, bindings_path, self.probe, profile)
        log_detail(f"Plan: {plan.describe()}", verbose_only=True)

        self._provision(tree, out_dir, plan, profile)
        self._native_build(tree, plan, profile)

        log_phase(3, TOTAL_PHASES, "Planning link directives...")
        link_plan = plan_links(tree, self.artifact_set, profile)

        self._generate_bindings(tree, bindings_path, plan, profile)
        link_plan.add_rerun_if_changed(self.layout.manifest_path)

        with TimedLogger("Compiling glue shim", phase=(5, TOTAL_PHASES)):
            shim_path = self.shim_compiler.compile(self.layout.shim_paths, tree, out_dir, self.layout.shim_name)
        link_plan.add_shim(shim_path)

        log_phase(6, TOTAL_PHASES, "Writing link directives...")
        directives_path = link_plan.write_json(self.layout.directives_path(out_dir))
        log_detail(f"{len(link_plan.directives)} directives -> {directives_path}", verbose_only=True)

        build_time = time.time() - start_time
        log_build_complete(build_time)
        return BuildResult(
            success=True,
            link_plan=link_plan,
            bindings_path=bindings_path,
            shim_path=shim_path,
            build_time=build_time,
            message="Build successful",
            build_plan=plan,
        )

    def _provision(self, tree: SourceTree, out_dir: Path, plan: BuildPlan, profile: PlatformProfile) -> None:
        log_phase(1, TOTAL_PHASES, "Provisioning FFmpeg source...")
        if plan.skip_extract:
            log_detail(f"Source tree present: {tree.root}")
        else:
            archive = locate_archive(self.layout.archive_path, self.layout.source_dir_name)
            extractor = get_extractor(profile.extractor, show_progress=self.show_progress)
            log_detail(f"Extracting {archive.name}")
            # A native build is about to run, so refresh the tree even when it exists
            ensure_source(archive, out_dir, self.layout.source_dir_name, force=True, extractor=extractor)

        if not tree.exists():
            raise ExtractionError(f"FFmpeg source tree missing after provisioning: {tree.root}")

        install_vendored_files(tree, profile.vendored_files)

    def _native_build(self, tree: SourceTree, plan: BuildPlan, profile: PlatformProfile) -> None:
        if plan.skip_native_build:
            log_phase(2, TOTAL_PHASES, "Building native libraries...")
            if profile.native_build:
                log_detail("Static libraries present, native build skipped")
            else:
                log_detail(f"Prebuilt libraries on {profile.name}, native build skipped")
            return

        with TimedLogger("Building native libraries", phase=(2, TOTAL_PHASES)):
            self.driver.build(tree, configure_flags(self.probe))

        missing = self.artifact_set.missing(tree.root)
        if missing:
            names = ", ".join(str(a.relative_path) for a in missing)
            raise CompilationError(f"make succeeded but static libraries are missing: {names}")

    def _generate_bindings(self, tree: SourceTree, bindings_path: Path, plan: BuildPlan, profile: PlatformProfile) -> None:
        if plan.skip_codegen:
            log_phase(4, TOTAL_PHASES, "Generating bindings...")
            log_detail(f"Bindings present: {bindings_path.name}")
            return

        with TimedLogger("Generating bindings", phase=(4, TOTAL_PHASES)) as timer:
            manifest = load_manifest(self.layout.manifest_path)
            headers = resolve(manifest, tree.root)
            timer.detail(f"{len(headers)} headers from {manifest.path.name}")
            self.generator.generate(
                headers,
                [tree.root],
                self.name_filter,
                self.macro_filter,
                bindings_path,
                profile.clang_args_for(tree.root),
            )
