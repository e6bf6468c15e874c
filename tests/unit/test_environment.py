"""Tests for build environment capture and probing."""

from pathlib import Path

import pytest

from avbuild.environment import BuildEnvironment, BuildProfile, EnvironmentProbe, platform_from_target
from avbuild.errors import BuildEnvironmentError


def make_probe(**environ):
    base = {"OUT_DIR": "/tmp/out", "PROFILE": "debug"}
    base.update(environ)
    return EnvironmentProbe(BuildEnvironment.from_environ(base))


class TestFromEnviron:
    def test_captures_required_variables(self):
        env = BuildEnvironment.from_environ({"OUT_DIR": "/tmp/out", "PROFILE": "release", "TARGET": "x86_64-unknown-linux-gnu"})
        assert env.out_dir == Path("/tmp/out")
        assert env.profile is BuildProfile.RELEASE
        assert env.platform == "linux"
        assert env.opt_level is None

    @pytest.mark.parametrize("missing", ["OUT_DIR", "PROFILE"])
    def test_missing_required_variable(self, missing):
        environ = {"OUT_DIR": "/tmp/out", "PROFILE": "debug"}
        del environ[missing]
        with pytest.raises(BuildEnvironmentError, match=missing):
            BuildEnvironment.from_environ(environ)

    def test_blank_out_dir_is_missing(self):
        with pytest.raises(BuildEnvironmentError, match="OUT_DIR"):
            BuildEnvironment.from_environ({"OUT_DIR": "  ", "PROFILE": "debug"})

    def test_profile_is_case_insensitive(self):
        env = BuildEnvironment.from_environ({"OUT_DIR": "/o", "PROFILE": "Release"})
        assert env.profile is BuildProfile.RELEASE

    def test_unknown_profile(self):
        with pytest.raises(BuildEnvironmentError, match="bench"):
            BuildEnvironment.from_environ({"OUT_DIR": "/o", "PROFILE": "bench"})

    def test_only_known_overrides_are_captured(self):
        env = BuildEnvironment.from_environ({"OUT_DIR": "/o", "PROFILE": "debug", "FFDEV1": "1", "HOME": "/root"})
        assert dict(env.overrides) == {"FFDEV1": "1"}

    def test_overrides_are_read_only(self):
        source = {"OUT_DIR": "/o", "PROFILE": "debug", "FFDEV2": "2"}
        env = BuildEnvironment.from_environ(source)
        source["FFDEV2"] = "0"

        with pytest.raises(TypeError):
            env.overrides["FFDEV2"] = "0"  # type: ignore[index]
        assert env.overrides["FFDEV2"] == "2"

    def test_direct_construction_copies_overrides(self):
        raw = {"FFDEV1": "1"}
        env = BuildEnvironment(platform="linux", profile=BuildProfile.DEBUG, opt_level=None, out_dir=Path("/o"), overrides=raw)
        raw["FFDEV1"] = "0"
        assert env.overrides["FFDEV1"] == "1"


@pytest.mark.parametrize(
    "target,expected",
    [
        ("x86_64-pc-windows-msvc", "windows"),
        ("x86_64-pc-windows-gnu", "windows"),
        ("aarch64-apple-darwin", "darwin"),
        ("x86_64-unknown-linux-gnu", "linux"),
        ("wasm32-unknown-unknown", "wasm32-unknown-unknown"),
    ],
)
def test_platform_from_target(target, expected):
    assert platform_from_target(target) == expected


class TestEnvironmentProbe:
    def test_profile_queries(self):
        probe = make_probe(PROFILE="debug")
        assert probe.is_debug()
        assert not probe.is_release()

    def test_opt_level_equals(self):
        probe = make_probe(OPT_LEVEL="0")
        assert probe.opt_level_equals(0)
        assert probe.opt_level_equals("0")
        assert not probe.opt_level_equals(3)

    def test_opt_level_unset_never_equals(self):
        assert not make_probe().opt_level_equals(0)

    def test_override_flag_missing_is_false(self):
        assert make_probe().override_flag("FFDEV1", "1") is False

    def test_override_flag_is_case_insensitive(self):
        probe = make_probe(FFDEV1="Yes")
        assert probe.override_flag("FFDEV1", "yes")
        assert not probe.override_flag("FFDEV1", "1")

    def test_force_flags(self):
        probe = make_probe(FFDEV1="1", FFDEV2="2")
        assert probe.force_native_rebuild()
        assert probe.force_codegen()

    def test_force_flags_need_exact_values(self):
        probe = make_probe(FFDEV1="2", FFDEV2="1")
        assert not probe.force_native_rebuild()
        assert not probe.force_codegen()

    def test_output_directory(self):
        assert make_probe(OUT_DIR="/work/out").output_directory() == Path("/work/out")

    def test_banner(self):
        banner = make_probe(OPT_LEVEL="0", TARGET="x86_64-unknown-linux-gnu").banner()
        assert banner == "PROFILE=debug OPT_LEVEL=0 PLATFORM=linux"
