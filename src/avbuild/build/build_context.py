"""Build Context - host project layout.

ProjectLayout fixes where the host project keeps the inputs this pipeline
consumes (bundled archive, header manifest, glue sources) and what the
generated outputs are called. Paths are relative to project_dir.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

FFMPEG_SOURCE_DIR = "FFmpeg-FFmpeg-2722fc2"


@dataclass(frozen=True)
class ProjectLayout:
    """Host project inputs and generated output names.

    Attributes:
        project_dir: Host project root
        archive: Bundled source archive
        source_dir_name: Top-level directory inside the archive
        manifest: Header manifest file
        shim_sources: Glue C sources compiled into the shim library
        shim_name: Shim library name (archive is lib<shim_name>.a)
        bindings_name: Generated binding file name inside the output directory
        directives_name: JSON copy of the link directives inside the output directory
    """

    project_dir: Path
    archive: str = f"archive/{FFMPEG_SOURCE_DIR}.tar.xz"
    source_dir_name: str = FFMPEG_SOURCE_DIR
    manifest: str = "headers"
    shim_sources: Tuple[str, ...] = ("cbits/defs.c", "cbits/img_utils.c")
    shim_name: str = "cbits"
    bindings_name: str = "bindings_ffmpeg.h"
    directives_name: str = "link_directives.json"

    @property
    def archive_path(self) -> Path:
        return self.project_dir / self.archive

    @property
    def manifest_path(self) -> Path:
        return self.project_dir / self.manifest

    @property
    def shim_paths(self) -> list[Path]:
        return [self.project_dir / source for source in self.shim_sources]

    def source_root(self, out_dir: Path) -> Path:
        return out_dir / self.source_dir_name

    def bindings_path(self, out_dir: Path) -> Path:
        return out_dir / self.bindings_name

    def directives_path(self, out_dir: Path) -> Path:
        return out_dir / self.directives_name
