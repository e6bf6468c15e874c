"""Source acquisition: bundled archive extraction and source tree helpers."""

from .extractors import (
    EXTRACTORS,
    ArchiveExtractor,
    SevenZipExtractor,
    TarCommandExtractor,
    TarfileExtractor,
    get_extractor,
)
from .source_provisioner import (
    SourceTree,
    detect_source_root,
    ensure_source,
    install_vendored_files,
    list_with_prefix,
    locate_archive,
    newest_by_creation,
)

__all__ = [
    "EXTRACTORS",
    "ArchiveExtractor",
    "SevenZipExtractor",
    "TarCommandExtractor",
    "TarfileExtractor",
    "get_extractor",
    "SourceTree",
    "detect_source_root",
    "ensure_source",
    "install_vendored_files",
    "list_with_prefix",
    "locate_archive",
    "newest_by_creation",
]
