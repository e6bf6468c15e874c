"""Static library artifacts produced by the FFmpeg build.

The artifact order is the order libraries are handed to the linker. With
static archives that order decides symbol resolution, so it is authored
once here and never sorted anywhere else.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Tuple


@dataclass(frozen=True)
class Artifact:
    """One expected static library.

    Attributes:
        name: Short library name passed to the linker (e.g. "avcodec")
        relative_path: Archive path relative to the source tree root
    """

    name: str
    relative_path: str

    def path_in(self, source_root: Path) -> Path:
        return source_root / self.relative_path


@dataclass(frozen=True)
class ArtifactSet:
    """Ordered, fixed list of artifacts the native build must produce."""

    artifacts: Tuple[Artifact, ...]

    @classmethod
    def from_pairs(cls, pairs: List[Tuple[str, str]]) -> "ArtifactSet":
        return cls(tuple(Artifact(name, rel) for name, rel in pairs))

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.artifacts)

    def __len__(self) -> int:
        return len(self.artifacts)

    def names(self) -> List[str]:
        return [a.name for a in self.artifacts]

    def missing(self, source_root: Path) -> List[Artifact]:
        """Artifacts whose archive file does not exist under source_root."""
        return [a for a in self.artifacts if not a.path_in(source_root).exists()]

    def all_present(self, source_root: Path) -> bool:
        return not self.missing(source_root)


FFMPEG_ARTIFACTS = ArtifactSet.from_pairs(
    [
        ("avcodec", "libavcodec/libavcodec.a"),
        ("avdevice", "libavdevice/libavdevice.a"),
        ("avfilter", "libavfilter/libavfilter.a"),
        ("avformat", "libavformat/libavformat.a"),
        ("avutil", "libavutil/libavutil.a"),
        ("swresample", "libswresample/libswresample.a"),
        ("swscale", "libswscale/libswscale.a"),
    ]
)

# Library search subdirectories of the source tree, one per FFmpeg component.
# Includes components that are not always built (avresample, postproc).
COMPONENT_SEARCH_DIRS: Tuple[str, ...] = (
    "libavcodec",
    "libavdevice",
    "libavfilter",
    "libavformat",
    "libavresample",
    "libavutil",
    "libpostproc",
    "libswresample",
    "libswscale",
)
