"""Tests for header manifest loading and resolution."""

import pytest

from avbuild.codegen import load_manifest, resolve
from avbuild.errors import ManifestError, MissingHeadersError


def write(tmp_path, text):
    path = tmp_path / "headers"
    path.write_text(text, encoding="utf-8")
    return path


def test_loads_entries_in_order(tmp_path):
    manifest = load_manifest(write(tmp_path, "libavutil/avutil.h\nlibavcodec/avcodec.h\n"))
    assert manifest.entries == ("libavutil/avutil.h", "libavcodec/avcodec.h")
    assert len(manifest) == 2


def test_entries_are_trimmed(tmp_path):
    manifest = load_manifest(write(tmp_path, "  libavutil/avutil.h \r\n"))
    assert list(manifest) == ["libavutil/avutil.h"]


def test_blank_lines_are_all_reported(tmp_path):
    with pytest.raises(ManifestError, match=r"line 2, 4"):
        load_manifest(write(tmp_path, "a.h\n\nb.h\n   \nc.h\n"))


def test_empty_file(tmp_path):
    with pytest.raises(ManifestError, match="lists no headers"):
        load_manifest(write(tmp_path, ""))


def test_missing_file(tmp_path):
    with pytest.raises(ManifestError, match="not found"):
        load_manifest(tmp_path / "headers")


def test_not_utf8(tmp_path):
    path = tmp_path / "headers"
    path.write_bytes(b"libavutil/\xff.h\n")
    with pytest.raises(ManifestError, match="UTF-8"):
        load_manifest(path)


class TestResolve:
    def test_all_present(self, tmp_path):
        (tmp_path / "libavutil").mkdir()
        (tmp_path / "libavutil" / "avutil.h").write_text("")
        manifest = load_manifest(write(tmp_path, "libavutil/avutil.h\n"))
        assert resolve(manifest, tmp_path) == [tmp_path / "libavutil" / "avutil.h"]

    def test_every_missing_header_is_listed(self, tmp_path):
        (tmp_path / "present.h").write_text("")
        manifest = load_manifest(write(tmp_path, "missing1.h\npresent.h\nsub/missing2.h\n"))

        with pytest.raises(MissingHeadersError) as exc_info:
            resolve(manifest, tmp_path)

        assert exc_info.value.missing == [str(tmp_path / "missing1.h"), str(tmp_path / "sub" / "missing2.h")]
        assert "missing1.h" in str(exc_info.value)
        assert "missing2.h" in str(exc_info.value)
