"""Tests for glue shim compilation."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from avbuild.build import ShimCompiler
from avbuild.errors import ShimCompilationError
from avbuild.packages import SourceTree
from avbuild.subprocess_utils import ProcessOutput


def ok():
    return ProcessOutput(args=("cc",), returncode=0, stdout="", stderr="")


@pytest.fixture
def sources(tmp_path):
    cbits = tmp_path / "cbits"
    cbits.mkdir()
    paths = [cbits / "defs.c", cbits / "img_utils.c"]
    for path in paths:
        path.write_text("int x;\n")
    return paths


def test_compiles_each_source_then_archives(tmp_path, sources):
    runner = MagicMock(return_value=ok())
    tree = SourceTree(tmp_path / "FFmpeg")
    out = tmp_path / "out"

    archive = ShimCompiler(cc="clang", ar="llvm-ar", runner=runner).compile(sources, tree, out)

    assert archive == out / "libcbits.a"
    commands = [c[0][0] for c in runner.call_args_list]
    assert len(commands) == 3
    assert commands[0] == [
        "clang",
        "-c",
        "-fPIC",
        "-O2",
        f"-I{tree.root}",
        str(sources[0]),
        "-o",
        str(out / "cbits-obj" / "defs.o"),
    ]
    assert commands[1][-1] == str(out / "cbits-obj" / "img_utils.o")
    assert commands[2] == [
        "llvm-ar",
        "rcs",
        str(archive),
        str(out / "cbits-obj" / "defs.o"),
        str(out / "cbits-obj" / "img_utils.o"),
    ]


def test_stale_archive_is_replaced(tmp_path, sources):
    out = tmp_path / "out"
    out.mkdir()
    stale = out / "libcbits.a"
    stale.write_text("old members")

    ShimCompiler(runner=MagicMock(return_value=ok())).compile(sources, SourceTree(tmp_path), out)

    assert not stale.exists()


def test_compiler_failure(tmp_path, sources):
    runner = MagicMock(return_value=ProcessOutput(args=("cc",), returncode=1, stdout="", stderr="defs.c:3: error: unknown type"))
    with pytest.raises(ShimCompilationError, match="compiling defs.c") as exc_info:
        ShimCompiler(runner=runner).compile(sources, SourceTree(tmp_path), tmp_path / "out")
    assert "unknown type" in exc_info.value.output
    runner.assert_called_once()


def test_archiver_failure(tmp_path, sources):
    runner = MagicMock(side_effect=[ok(), ok(), ProcessOutput(args=("ar",), returncode=1, stdout="", stderr="ar: bad")])
    with pytest.raises(ShimCompilationError, match="archiving libcbits.a"):
        ShimCompiler(runner=runner).compile(sources, SourceTree(tmp_path), tmp_path / "out")


def test_missing_compiler(tmp_path, sources):
    runner = MagicMock(side_effect=FileNotFoundError("cc"))
    with pytest.raises(ShimCompilationError, match="could not be started"):
        ShimCompiler(runner=runner).compile(sources, SourceTree(tmp_path), tmp_path / "out")


def test_missing_source(tmp_path):
    with pytest.raises(ShimCompilationError, match="not found"):
        ShimCompiler(runner=MagicMock()).compile([tmp_path / "nope.c"], SourceTree(tmp_path), tmp_path / "out")


def test_no_sources(tmp_path):
    with pytest.raises(ShimCompilationError, match="no shim sources"):
        ShimCompiler(runner=MagicMock()).compile([], SourceTree(tmp_path), tmp_path / "out")


def test_custom_name(tmp_path, sources):
    archive = ShimCompiler(runner=MagicMock(return_value=ok())).compile(
        sources, SourceTree(tmp_path), tmp_path / "out", name="glue"
    )
    assert archive == Path(tmp_path / "out" / "libglue.a")
