"""Build environment capture.

The process environment is read exactly once, at startup, into an immutable
BuildEnvironment. Every component receives that value (or an
EnvironmentProbe wrapping it) explicitly, so tests can drive the pipeline
with synthetic configurations instead of patching os.environ.

Recognized variables:
    OUT_DIR    (required) output directory for the source tree and artifacts
    PROFILE    (required) "release" or "debug"
    OPT_LEVEL  optimization level as exported by the outer toolchain
    TARGET     target triple; the platform key is derived from it
    FFDEV1     "1" forces a native rebuild
    FFDEV2     "2" forces binding regeneration
"""

import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import BuildEnvironmentError

OUT_DIR_VAR = "OUT_DIR"
PROFILE_VAR = "PROFILE"
OPT_LEVEL_VAR = "OPT_LEVEL"
TARGET_VAR = "TARGET"

FORCE_NATIVE_REBUILD = ("FFDEV1", "1")
FORCE_CODEGEN = ("FFDEV2", "2")

# Override variables snapshotted alongside the required ones
OVERRIDE_VARS = (FORCE_NATIVE_REBUILD[0], FORCE_CODEGEN[0], "CC", "AR", "VCPKG_ROOT")


class BuildProfile(Enum):
    """Build profile enum for type-safe profile selection."""

    RELEASE = "release"
    DEBUG = "debug"

    def __str__(self) -> str:
        return self.value


def platform_from_target(target: Optional[str]) -> str:
    """Map a target triple (or sys.platform when absent) to a platform key.

    Args:
        target: Target triple such as "x86_64-unknown-linux-gnu", or None

    Returns:
        One of "linux", "darwin", "windows", or the raw host platform string
    """
    value = (target or sys.platform).lower()
    if "windows" in value or value.startswith("win32") or "mingw" in value:
        return "windows"
    if "darwin" in value or "apple" in value:
        return "darwin"
    if "linux" in value:
        return "linux"
    return value


@dataclass(frozen=True)
class BuildEnvironment:
    """Immutable snapshot of the build configuration.

    Attributes:
        platform: Platform key ("linux", "darwin", "windows")
        profile: Build profile
        opt_level: Optimization level string, None if not exported
        out_dir: Output directory
        overrides: Raw values of developer override variables that were set
    """

    platform: str
    profile: BuildProfile
    opt_level: Optional[str]
    out_dir: Path
    overrides: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.overrides, MappingProxyType):
            object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "BuildEnvironment":
        """Capture the build environment from a mapping of variables.

        Raises:
            BuildEnvironmentError: If OUT_DIR or PROFILE is missing, or
                PROFILE is not a known profile
        """
        out_dir = _require(environ, OUT_DIR_VAR)
        raw_profile = _require(environ, PROFILE_VAR)
        try:
            profile = BuildProfile(raw_profile.strip().lower())
        except ValueError:
            known = ", ".join(p.value for p in BuildProfile)
            raise BuildEnvironmentError(f"{PROFILE_VAR}={raw_profile!r} is not one of: {known}")

        return cls(
            platform=platform_from_target(environ.get(TARGET_VAR)),
            profile=profile,
            opt_level=environ.get(OPT_LEVEL_VAR),
            out_dir=Path(out_dir),
            overrides=MappingProxyType({name: environ[name] for name in OVERRIDE_VARS if name in environ}),
        )


def _require(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name)
    if value is None or not value.strip():
        raise BuildEnvironmentError(f"required environment variable {name} is not set")
    return value


class EnvironmentProbe:
    """Read-only queries over a captured BuildEnvironment."""

    def __init__(self, environment: BuildEnvironment):
        self.environment = environment

    def is_release(self) -> bool:
        return self.environment.profile is BuildProfile.RELEASE

    def is_debug(self) -> bool:
        return self.environment.profile is BuildProfile.DEBUG

    def opt_level_equals(self, level: int | str) -> bool:
        """True when OPT_LEVEL was exported and equals level (case-insensitive)."""
        if self.environment.opt_level is None:
            return False
        return self.environment.opt_level.strip().lower() == str(level).lower()

    def override_flag(self, name: str, expected: str) -> bool:
        """True when override variable name is set to expected (case-insensitive).

        An unset variable is never an error; it simply reads as False.
        """
        value = self.environment.overrides.get(name)
        if value is None:
            return False
        return value.lower() == expected.lower()

    def override_value(self, name: str) -> Optional[str]:
        return self.environment.overrides.get(name)

    def force_native_rebuild(self) -> bool:
        return self.override_flag(*FORCE_NATIVE_REBUILD)

    def force_codegen(self) -> bool:
        return self.override_flag(*FORCE_CODEGEN)

    def output_directory(self) -> Path:
        return self.environment.out_dir

    def banner(self) -> str:
        """Short one-line description for the console, e.g. PROFILE=debug OPT_LEVEL=0."""
        parts = [f"PROFILE={self.environment.profile}"]
        if self.environment.opt_level is not None:
            parts.append(f"OPT_LEVEL={self.environment.opt_level}")
        parts.append(f"PLATFORM={self.environment.platform}")
        return " ".join(parts)
