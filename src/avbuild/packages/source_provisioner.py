"""FFmpeg source provisioning.

Ensures the FFmpeg source tree exists under the output directory, unpacking
the bundled archive when it is missing or when a rebuild is forced.

The archive is unpacked into a private staging directory first so the
top-level directory can be verified in isolation (the output directory holds
other build products). The verified tree is then merged into place file by
file: an existing tree is updated in place, never deleted, so object files
left by an earlier native build survive re-extraction.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from ..errors import ExtractionError
from ..output import log_detail
from ..platform_configs.platform_profile_model import VendoredFile
from .extractors import ArchiveExtractor, TarfileExtractor

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".avbuild-extract"


@dataclass(frozen=True)
class SourceTree:
    """The extracted FFmpeg source directory."""

    root: Path

    def join(self, relative: str) -> Path:
        return self.root / relative

    def exists(self) -> bool:
        return self.root.is_dir()


def detect_source_root(extract_dir: Path) -> Path:
    """Return the single top-level directory produced by an extraction.

    Args:
        extract_dir: Directory the archive was unpacked into

    Returns:
        Path to the only directory directly inside extract_dir

    Raises:
        ExtractionError: If there is no top-level directory, or more than one
    """
    directories = [entry for entry in extract_dir.iterdir() if entry.is_dir()]
    if len(directories) == 1:
        return directories[0]
    if not directories:
        raise ExtractionError(f"archive produced no top-level directory in {extract_dir}")
    names = ", ".join(sorted(d.name for d in directories))
    raise ExtractionError(f"archive produced {len(directories)} top-level directories ({names}), expected exactly one")


def ensure_source(
    archive_path: Path,
    dest_dir: Path,
    expected_dir_name: str,
    force: bool = False,
    extractor: Optional[ArchiveExtractor] = None,
) -> SourceTree:
    """Make sure the source tree exists at dest_dir/expected_dir_name.

    Args:
        archive_path: Bundled gzip- or xz-compressed tarball
        dest_dir: Output directory that holds the source tree
        expected_dir_name: Top-level directory name the archive must contain
        force: Re-extract even if the tree already exists
        extractor: Extraction strategy (defaults to in-process tarfile)

    Returns:
        SourceTree rooted at dest_dir/expected_dir_name

    Raises:
        ExtractionError: If the archive is missing, cannot be unpacked, or
            does not contain exactly the expected top-level directory
    """
    tree = SourceTree(dest_dir / expected_dir_name)
    if tree.exists() and not force:
        logger.debug("Source tree present at %s, skipping extraction", tree.root)
        return tree

    if not archive_path.is_file():
        raise ExtractionError(f"source archive not found: {archive_path}")

    extractor = extractor or TarfileExtractor()
    staging = dest_dir / STAGING_DIR_NAME
    if staging.exists():
        shutil.rmtree(staging)
    staging.mkdir(parents=True)

    try:
        extractor.extract(archive_path, staging)
        extracted_root = detect_source_root(staging)
        if extracted_root.name != expected_dir_name:
            raise ExtractionError(f"archive top-level directory is {extracted_root.name!r}, expected {expected_dir_name!r}")
        _merge_tree(extracted_root, tree.root)
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)

    if not tree.exists():
        raise ExtractionError(f"source tree missing after extraction: {tree.root}")

    log_detail(f"Extracted {archive_path.name} -> {tree.root}")
    return tree


def _merge_tree(src: Path, dest: Path) -> None:
    """Move every file of src into dest, replacing files that already exist."""
    try:
        shutil.copytree(src, dest, copy_function=shutil.move, dirs_exist_ok=True)
    except (shutil.Error, OSError) as e:
        raise ExtractionError(f"failed to move extracted tree into {dest}: {e}")


def install_vendored_files(tree: SourceTree, files: Iterable[VendoredFile]) -> List[Path]:
    """Copy prebuilt files (generated config headers) into the source tree.

    Raises:
        ExtractionError: If a vendored source file does not exist
    """
    installed = []
    for item in files:
        source = Path(item.source)
        dest = tree.join(item.dest)
        if not source.is_file():
            raise ExtractionError(f"vendored file not found: {source}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)
        log_detail(f"Installed {item.dest} from {source}", verbose_only=True)
        installed.append(dest)
    return installed


def _creation_time(path: Path) -> Optional[float]:
    try:
        st = path.stat()
    except OSError:
        return None
    # st_birthtime is not exposed on every platform; fall back to st_ctime
    return getattr(st, "st_birthtime", st.st_ctime)


def newest_by_creation(paths: Sequence[Path]) -> Optional[Path]:
    """Return the path with the strictly latest creation timestamp.

    Paths whose timestamp cannot be read are ignored. Ties keep the entry
    seen first.

    Returns:
        The newest path, or None for an empty input or when no timestamp is readable
    """
    newest: Optional[Path] = None
    newest_time = 0.0
    for path in paths:
        created = _creation_time(path)
        if created is None:
            continue
        if newest is None or created > newest_time:
            newest = path
            newest_time = created
    return newest


def list_with_prefix(directory: Path, prefix: str) -> List[Path]:
    """List entries of directory whose file name starts with prefix.

    Matching is case-sensitive. Entries whose names are not valid text are
    skipped. Order is the filesystem's enumeration order.
    """
    matches = []
    with os.scandir(directory) as entries:
        for entry in entries:
            name = entry.name
            try:
                name.encode("utf-8")
            except UnicodeEncodeError:
                logger.debug("Skipping undecodable entry in %s", directory)
                continue
            if name.startswith(prefix):
                matches.append(Path(entry.path))
    return matches


def locate_archive(preferred: Path, name_prefix: str) -> Path:
    """Find the bundled source archive.

    The preferred path is used when it exists. Otherwise the newest file in
    the same directory whose name starts with name_prefix is used, so the
    archive may be shipped as either .tar.xz or .tar.gz.

    Raises:
        ExtractionError: If no candidate archive exists
    """
    if preferred.is_file():
        return preferred
    archive_dir = preferred.parent
    if archive_dir.is_dir():
        candidates = [p for p in list_with_prefix(archive_dir, name_prefix) if p.is_file()]
        newest = newest_by_creation(candidates)
        if newest is not None:
            logger.debug("Using %s instead of missing %s", newest, preferred)
            return newest
    raise ExtractionError(f"source archive not found: {preferred}")
