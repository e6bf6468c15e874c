"""Header manifest loading and resolution.

The manifest is a UTF-8 text file listing one header path per line,
relative to the FFmpeg source root, e.g.:

    libavcodec/avcodec.h
    libavformat/avformat.h

Both operations are all-or-nothing: one blank line rejects the whole
manifest, and resolution reports every missing header at once.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Tuple

from ..errors import ManifestError, MissingHeadersError


@dataclass(frozen=True)
class HeaderManifest:
    """Ordered header paths relative to the source root."""

    path: Path
    entries: Tuple[str, ...]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def load_manifest(path: Path) -> HeaderManifest:
    """Read and validate a header manifest.

    Raises:
        ManifestError: If the file cannot be read, is not UTF-8, is empty, or
            contains any blank or whitespace-only line
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ManifestError(f"header manifest not found: {path}")
    except UnicodeDecodeError as e:
        raise ManifestError(f"header manifest is not valid UTF-8: {path}: {e}")

    lines = text.splitlines()
    blank = [number for number, line in enumerate(lines, start=1) if not line.strip()]
    if blank:
        numbers = ", ".join(str(n) for n in blank)
        raise ManifestError(f"header manifest {path} has blank lines (line {numbers})")
    if not lines:
        raise ManifestError(f"header manifest {path} lists no headers")

    return HeaderManifest(path=path, entries=tuple(line.strip() for line in lines))


def resolve(manifest: HeaderManifest, source_root: Path) -> List[Path]:
    """Resolve every manifest entry against the source root.

    Returns:
        Absolute header paths in manifest order

    Raises:
        MissingHeadersError: Listing every entry that does not exist
    """
    resolved = []
    missing = []
    for entry in manifest:
        header = source_root / entry
        if header.is_file():
            resolved.append(header)
        else:
            missing.append(str(header))

    if missing:
        raise MissingHeadersError(missing)
    return resolved
