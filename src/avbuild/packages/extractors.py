"""Archive extraction strategies.

The bundled FFmpeg source ships as a compressed POSIX tar (gzip or xz). How
it gets unpacked depends on the platform, so each strategy is a small class
and the platform profile names the one to use:

    tarfile  - in-process, Python's tarfile module (gzip and xz both native)
    tar      - external tar tool with native xz support
    7z       - two-stage 7-Zip pipeline: decompress to stdout, untar from stdin
"""

import logging
import lzma
import subprocess
import tarfile
from pathlib import Path
from typing import Dict, Type

from tqdm import tqdm

from ..errors import ExtractionError, PlatformConfigError
from ..subprocess_utils import run_captured, safe_popen

logger = logging.getLogger(__name__)

# Extraction filters arrived in 3.10.12 and 3.11.4.
_HAS_DATA_FILTER = hasattr(tarfile, "data_filter")


class ArchiveExtractor:
    """Base class for extraction strategies."""

    name = ""

    def __init__(self, show_progress: bool = True):
        self.show_progress = show_progress

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        """Unpack archive_path into dest_dir.

        Raises:
            ExtractionError: If the archive cannot be read or unpacked
        """
        raise NotImplementedError


class TarfileExtractor(ArchiveExtractor):
    """Extract in-process with tarfile; compression is detected transparently."""

    name = "tarfile"

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        if not _HAS_DATA_FILTER:
            raise ExtractionError(
                "this Python's tarfile has no extraction filters; upgrade Python or use the 'tar' extractor"
            )
        try:
            with tarfile.open(archive_path, "r:*") as tar:
                members = tar.getmembers()
                with tqdm(
                    total=len(members),
                    desc=f"Extracting {archive_path.name}",
                    unit="file",
                    ncols=80,
                    leave=False,
                    disable=not self.show_progress,
                ) as pbar:
                    for member in members:
                        tar.extract(member, dest_dir, filter="data")
                        pbar.update(1)
        except (tarfile.TarError, lzma.LZMAError, EOFError, OSError) as e:
            raise ExtractionError(f"failed to unpack {archive_path} into {dest_dir}: {e}")


class TarCommandExtractor(ArchiveExtractor):
    """Extract with the system tar tool."""

    name = "tar"

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        try:
            result = run_captured(["tar", "-xf", str(archive_path), "-C", str(dest_dir)])
        except FileNotFoundError:
            raise ExtractionError("tar executable not found on PATH")
        if not result.success:
            raise ExtractionError(f"tar failed to unpack {archive_path}", output=result.format_report())


class SevenZipExtractor(ArchiveExtractor):
    """Extract with 7-Zip in two stages, piping the decompressed tar stream."""

    name = "7z"

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        decompress_cmd = ["7z", "x", "-so", str(archive_path)]
        untar_cmd = ["7z", "x", "-si", "-ttar", f"-o{dest_dir}"]
        logger.debug("Running %s | %s", " ".join(decompress_cmd), " ".join(untar_cmd))

        try:
            decompress = safe_popen(decompress_cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except FileNotFoundError:
            raise ExtractionError("7z executable not found on PATH")

        try:
            untar = safe_popen(untar_cmd, stdin=decompress.stdout, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except FileNotFoundError:
            decompress.kill()
            decompress.wait()
            raise ExtractionError("7z executable not found on PATH")

        # Only the second stage holds the read end now
        if decompress.stdout is not None:
            decompress.stdout.close()
        untar_out, untar_err = untar.communicate()
        decompress_err = decompress.stderr.read() if decompress.stderr is not None else b""
        decompress.wait()

        if decompress.returncode != 0:
            raise ExtractionError(
                f"7z failed to decompress {archive_path}",
                output=decompress_err.decode("utf-8", errors="replace"),
            )
        if untar.returncode != 0:
            output = "\n".join(
                part.decode("utf-8", errors="replace") for part in (untar_err, untar_out) if part
            )
            raise ExtractionError(f"7z failed to unpack tar stream of {archive_path}", output=output)


EXTRACTORS: Dict[str, Type[ArchiveExtractor]] = {
    TarfileExtractor.name: TarfileExtractor,
    TarCommandExtractor.name: TarCommandExtractor,
    SevenZipExtractor.name: SevenZipExtractor,
}


def get_extractor(name: str, show_progress: bool = True) -> ArchiveExtractor:
    """Instantiate the extraction strategy registered under name.

    Raises:
        PlatformConfigError: If no strategy has that name
    """
    try:
        return EXTRACTORS[name](show_progress=show_progress)
    except KeyError:
        raise PlatformConfigError(f"Unknown extractor {name!r}. Available: {sorted(EXTRACTORS)}")
