"""
Type-safe platform profile model.

Each JSON file in this package describes one target platform: how the source
archive is unpacked, whether FFmpeg is built natively, where the linker
should look for static libraries, and which system libraries must be linked
in addition. Platform differences live in this table instead of in
conditionals spread across the pipeline.

String values may contain {PLACEHOLDER} references. Upper-case placeholders
(e.g. {VCPKG_ROOT}) are filled from the captured environment when the
profile is resolved; {source_root} is filled once the source tree is known.
"""

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

SOURCE_ROOT = "source_root"


def expand_placeholders(template: str, variables: Mapping[str, str]) -> str:
    """Substitute {NAME} placeholders; unknown names raise KeyError."""

    def _sub(match: "re.Match[str]") -> str:
        return variables[match.group(1)]

    return _PLACEHOLDER.sub(_sub, template)


@dataclass(frozen=True)
class VendoredFile:
    """A prebuilt file copied into the source tree after extraction."""

    source: str
    dest: str


@dataclass(frozen=True)
class PlatformProfile:
    """
    Platform-specific provisioning and link strategy.

    Attributes:
        name: Platform key ("linux", "darwin", "windows")
        description: Human-readable description
        extractor: Extraction strategy name ("tarfile", "tar", "7z")
        native_build: Whether FFmpeg is configured and built from source
        search_roots: Library search roots replacing the per-component subdirectories
        system_libs: Extra system libraries linked dynamically
        clang_args: Extra arguments for header parsing
        vendored_files: Files copied into the source tree after extraction
    """

    name: str
    description: str = ""
    extractor: str = "tarfile"
    native_build: bool = True
    search_roots: Tuple[str, ...] = ()
    system_libs: Tuple[str, ...] = ()
    clang_args: Tuple[str, ...] = ()
    vendored_files: Tuple[VendoredFile, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlatformProfile":
        """
        Parse a platform profile from its JSON dictionary.

        Raises:
            ValueError: If the name field is missing
        """
        try:
            name = data["name"]
        except KeyError as e:
            raise ValueError(f"Missing required field in platform profile: {e}")

        return cls(
            name=name,
            description=data.get("description", ""),
            extractor=data.get("extractor", "tarfile"),
            native_build=bool(data.get("native_build", True)),
            search_roots=tuple(data.get("search_roots", [])),
            system_libs=tuple(data.get("system_libs", [])),
            clang_args=tuple(data.get("clang_args", [])),
            vendored_files=tuple(VendoredFile(source=item["source"], dest=item["dest"]) for item in data.get("vendored_files", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "extractor": self.extractor,
            "native_build": self.native_build,
            "search_roots": list(self.search_roots),
            "system_libs": list(self.system_libs),
            "clang_args": list(self.clang_args),
            "vendored_files": [{"source": f.source, "dest": f.dest} for f in self.vendored_files],
        }

    def resolve(self, variables: Mapping[str, str]) -> "PlatformProfile":
        """
        Fill environment placeholders in search roots and vendored sources.

        {source_root} references are kept for later expansion.

        Raises:
            KeyError: If a referenced variable is not in variables
        """
        scope = {**variables, SOURCE_ROOT: "{" + SOURCE_ROOT + "}"}
        return replace(
            self,
            search_roots=tuple(expand_placeholders(root, scope) for root in self.search_roots),
            vendored_files=tuple(VendoredFile(source=expand_placeholders(f.source, scope), dest=f.dest) for f in self.vendored_files),
        )

    def clang_args_for(self, source_root: Path) -> list[str]:
        """Extra clang arguments with {source_root} expanded."""
        scope = {SOURCE_ROOT: str(source_root)}
        return [expand_placeholders(arg, scope) for arg in self.clang_args]
