"""Tests for FFmpeg source provisioning."""

import io
import os
import sys
import tarfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from avbuild.errors import ExtractionError
from avbuild.packages import (
    SourceTree,
    detect_source_root,
    ensure_source,
    install_vendored_files,
    list_with_prefix,
    locate_archive,
    newest_by_creation,
)
from avbuild.packages.source_provisioner import STAGING_DIR_NAME
from avbuild.platform_configs import VendoredFile


def _make_archive(path: Path, files: dict, mode: str = "w:gz") -> Path:
    """Write a tarball containing the given {member_name: text} files."""
    with tarfile.open(path, mode) as tar:
        for name, text in files.items():
            data = text.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture
def archive(tmp_path):
    return _make_archive(
        tmp_path / "lib-x.tar.gz",
        {"lib-x/configure": "#!/bin/sh\n", "lib-x/libavutil/avutil.h": "/* v2 */\n"},
    )


class TestDetectSourceRoot:
    def test_single_directory(self, tmp_path):
        (tmp_path / "lib-x").mkdir()
        (tmp_path / "README").write_text("loose file")
        assert detect_source_root(tmp_path) == tmp_path / "lib-x"

    def test_no_directory(self, tmp_path):
        with pytest.raises(ExtractionError, match="no top-level directory"):
            detect_source_root(tmp_path)

    def test_several_directories(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        with pytest.raises(ExtractionError, match="2 top-level directories"):
            detect_source_root(tmp_path)


class TestEnsureSource:
    def test_extracts_into_expected_directory(self, tmp_path, archive):
        out = tmp_path / "out"
        out.mkdir()

        tree = ensure_source(archive, out, "lib-x")

        assert tree == SourceTree(out / "lib-x")
        assert (out / "lib-x" / "configure").read_text() == "#!/bin/sh\n"
        assert not (out / STAGING_DIR_NAME).exists()

    def test_xz_archive(self, tmp_path):
        xz = _make_archive(tmp_path / "lib-x.tar.xz", {"lib-x/configure": "x"}, mode="w:xz")
        out = tmp_path / "out"
        out.mkdir()
        ensure_source(xz, out, "lib-x")
        assert (out / "lib-x" / "configure").exists()

    def test_existing_tree_is_not_extracted_again(self, tmp_path, archive):
        out = tmp_path / "out"
        (out / "lib-x").mkdir(parents=True)
        extractor = MagicMock()

        ensure_source(archive, out, "lib-x", extractor=extractor)

        extractor.extract.assert_not_called()

    def test_force_merges_over_existing_tree(self, tmp_path, archive):
        out = tmp_path / "out"
        (out / "lib-x" / "libavutil").mkdir(parents=True)
        (out / "lib-x" / "libavutil" / "avutil.h").write_text("/* v1 */\n")
        (out / "lib-x" / "libavutil" / "libavutil.a").write_text("built earlier")

        ensure_source(archive, out, "lib-x", force=True)

        assert (out / "lib-x" / "libavutil" / "avutil.h").read_text() == "/* v2 */\n"
        assert (out / "lib-x" / "libavutil" / "libavutil.a").read_text() == "built earlier"

    def test_unexpected_top_level_name(self, tmp_path, archive):
        out = tmp_path / "out"
        out.mkdir()
        with pytest.raises(ExtractionError, match="expected 'FFmpeg'"):
            ensure_source(archive, out, "FFmpeg")
        assert not (out / STAGING_DIR_NAME).exists()
        assert not (out / "lib-x").exists()

    def test_several_top_level_directories(self, tmp_path):
        bad = _make_archive(tmp_path / "two.tar.gz", {"a/x": "1", "b/y": "2"})
        out = tmp_path / "out"
        out.mkdir()
        with pytest.raises(ExtractionError, match="top-level directories"):
            ensure_source(bad, out, "a")

    def test_corrupt_archive(self, tmp_path):
        bad = tmp_path / "lib-x.tar.xz"
        bad.write_bytes(b"\xfd7zXZ\x00 definitely not xz")
        out = tmp_path / "out"
        out.mkdir()
        with pytest.raises(ExtractionError, match="failed to unpack"):
            ensure_source(bad, out, "lib-x")
        assert not (out / STAGING_DIR_NAME).exists()

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ExtractionError, match="not found"):
            ensure_source(tmp_path / "nope.tar.xz", tmp_path, "lib-x")


class TestInstallVendoredFiles:
    def test_copies_into_tree(self, tmp_path):
        tree = SourceTree(tmp_path / "src")
        tree.root.mkdir()
        config = tmp_path / "vcpkg" / "config.h"
        config.parent.mkdir()
        config.write_text("#define CONFIG_X 1\n")

        installed = install_vendored_files(tree, [VendoredFile(source=str(config), dest="libavutil/avconfig.h")])

        assert installed == [tree.root / "libavutil" / "avconfig.h"]
        assert installed[0].read_text() == "#define CONFIG_X 1\n"

    def test_missing_source(self, tmp_path):
        tree = SourceTree(tmp_path)
        with pytest.raises(ExtractionError, match="vendored file not found"):
            install_vendored_files(tree, [VendoredFile(source=str(tmp_path / "nope.h"), dest="config.h")])


class TestNewestByCreation:
    def _run(self, times):
        """times maps path name -> creation time, None for unreadable."""
        paths = [Path(name) for name in times]
        with patch(
            "avbuild.packages.source_provisioner._creation_time",
            side_effect=lambda p: times[p.name],
        ):
            return newest_by_creation(paths)

    def test_empty(self):
        assert newest_by_creation([]) is None

    def test_single_input(self):
        assert self._run({"only": 1.0}) == Path("only")

    def test_latest_wins(self):
        assert self._run({"a": 10.0, "b": 30.0, "c": 20.0}) == Path("b")

    def test_ties_keep_first_seen(self):
        assert self._run({"a": 10.0, "b": 10.0}) == Path("a")

    def test_unreadable_entries_are_skipped(self):
        assert self._run({"a": None, "b": 5.0, "c": None}) == Path("b")

    def test_all_unreadable(self):
        assert self._run({"a": None, "b": None}) is None

    def test_nonexistent_path_is_skipped(self, tmp_path):
        real = tmp_path / "real"
        real.write_text("x")
        assert newest_by_creation([tmp_path / "missing", real]) == real


class TestListWithPrefix:
    def test_matches_prefix_case_sensitively(self, tmp_path):
        for name in ("lib-x.tar.xz", "lib-y", "LIB-z", "other"):
            (tmp_path / name).write_text("")
        names = sorted(p.name for p in list_with_prefix(tmp_path, "lib-"))
        assert names == ["lib-x.tar.xz", "lib-y"]

    def test_no_matches(self, tmp_path):
        (tmp_path / "other").write_text("")
        assert list_with_prefix(tmp_path, "lib-") == []

    @pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names")
    def test_skips_undecodable_names(self, tmp_path):
        (tmp_path / "lib-ok").write_text("")
        with open(os.path.join(os.fsencode(tmp_path), b"lib-\xff"), "w"):
            pass
        assert [p.name for p in list_with_prefix(tmp_path, "lib-")] == ["lib-ok"]


class TestLocateArchive:
    def test_preferred_exists(self, tmp_path, archive):
        assert locate_archive(archive, "lib-x") == archive

    def test_falls_back_to_prefix_match(self, tmp_path, archive):
        assert locate_archive(tmp_path / "lib-x.tar.xz", "lib-x") == archive

    def test_nothing_found(self, tmp_path):
        with pytest.raises(ExtractionError, match="not found"):
            locate_archive(tmp_path / "FFmpeg.tar.xz", "FFmpeg")
