"""Link directive planning.

Directives tell the outer build system where the static libraries live and
which ones to link. They are collected into a LinkPlan and only written out
once the whole pipeline has succeeded, so a failed run never leaves the
outer build pointing at an incomplete native library.

Rendered form, one directive per line:
    avbuild:link-search=native=/out/FFmpeg-FFmpeg-2722fc2
    avbuild:link-lib=dylib=Bcrypt
    avbuild:link-lib=static=avcodec
    avbuild:rerun-if-changed=/project/headers
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from ..packages import SourceTree
from ..platform_configs import PlatformProfile
from .artifacts import COMPONENT_SEARCH_DIRS, ArtifactSet

DIRECTIVE_PREFIX = "avbuild:"


class DirectiveKind(Enum):
    SEARCH = "search"
    STATIC_LIB = "static-lib"
    DYLIB = "dylib"
    RERUN_IF_CHANGED = "rerun-if-changed"


@dataclass(frozen=True)
class LinkDirective:
    """One declaration for the outer build system."""

    kind: DirectiveKind
    value: str

    def render(self) -> str:
        if self.kind is DirectiveKind.SEARCH:
            return f"{DIRECTIVE_PREFIX}link-search=native={self.value}"
        if self.kind is DirectiveKind.STATIC_LIB:
            return f"{DIRECTIVE_PREFIX}link-lib=static={self.value}"
        if self.kind is DirectiveKind.DYLIB:
            return f"{DIRECTIVE_PREFIX}link-lib=dylib={self.value}"
        return f"{DIRECTIVE_PREFIX}rerun-if-changed={self.value}"


@dataclass
class LinkPlan:
    """Ordered collection of link directives."""

    directives: List[LinkDirective] = field(default_factory=list)

    def extend(self, directives: List[LinkDirective]) -> None:
        self.directives.extend(directives)

    def add_rerun_if_changed(self, path: Path) -> None:
        self.directives.append(LinkDirective(DirectiveKind.RERUN_IF_CHANGED, str(path)))

    def add_shim(self, archive: Path) -> None:
        """Link a shim archive (lib<name>.a) ahead of the FFmpeg libraries.

        The shim references FFmpeg symbols, so single-pass linkers need it
        first among the static libraries. Its directory joins the search paths.
        """
        name = archive.stem[3:] if archive.stem.startswith("lib") else archive.stem
        first_static = next(
            (i for i, d in enumerate(self.directives) if d.kind is DirectiveKind.STATIC_LIB),
            len(self.directives),
        )
        self.directives.insert(first_static, LinkDirective(DirectiveKind.STATIC_LIB, name))
        last_search = max((i for i, d in enumerate(self.directives) if d.kind is DirectiveKind.SEARCH), default=-1)
        self.directives.insert(last_search + 1, LinkDirective(DirectiveKind.SEARCH, str(archive.parent)))

    def of_kind(self, kind: DirectiveKind) -> List[str]:
        return [d.value for d in self.directives if d.kind is kind]

    def render_lines(self) -> List[str]:
        return [d.render() for d in self.directives]

    def to_build_kwargs(self) -> Dict[str, List[str]]:
        """Keyword arguments for an extension builder (cffi set_source, setuptools Extension).

        Static and system libraries are both listed in link order; search
        directories make the static archives resolvable by short name.
        """
        return {
            "library_dirs": self.of_kind(DirectiveKind.SEARCH),
            "libraries": self.of_kind(DirectiveKind.STATIC_LIB) + self.of_kind(DirectiveKind.DYLIB),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directives": [{"kind": d.kind.value, "value": d.value} for d in self.directives],
            **self.to_build_kwargs(),
            "rerun_if_changed": self.of_kind(DirectiveKind.RERUN_IF_CHANGED),
        }

    def write_json(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")
        return path


def emit_search_paths(source_tree: SourceTree, platform_profile: PlatformProfile) -> List[LinkDirective]:
    """Search directories: the source root, then component dirs or the platform's own roots."""
    directives = [LinkDirective(DirectiveKind.SEARCH, str(source_tree.root))]
    if platform_profile.search_roots:
        roots = list(platform_profile.search_roots)
    else:
        roots = [str(source_tree.join(subdir)) for subdir in COMPONENT_SEARCH_DIRS]
    directives.extend(LinkDirective(DirectiveKind.SEARCH, root) for root in roots)
    return directives


def emit_static_links(artifact_set: ArtifactSet) -> List[LinkDirective]:
    """One static link per artifact, in authored order."""
    return [LinkDirective(DirectiveKind.STATIC_LIB, artifact.name) for artifact in artifact_set]


def emit_system_libs(platform_profile: PlatformProfile) -> List[LinkDirective]:
    return [LinkDirective(DirectiveKind.DYLIB, lib) for lib in platform_profile.system_libs]


def plan_links(source_tree: SourceTree, artifact_set: ArtifactSet, platform_profile: PlatformProfile) -> LinkPlan:
    """Full link plan for a completed native build."""
    plan = LinkPlan()
    plan.extend(emit_search_paths(source_tree, platform_profile))
    plan.extend(emit_system_libs(platform_profile))
    plan.extend(emit_static_links(artifact_set))
    return plan
