"""Tests for declaration name filters."""

from avbuild.codegen import IGNORED_MACROS, MacroFilter, NameFilter


class TestNameFilter:
    def test_default_patterns(self):
        name_filter = NameFilter()
        assert name_filter.allows_function("av_frame_alloc")
        assert name_filter.allows_function("avcodec_open2")
        assert not name_filter.allows_function("sws_scale")
        assert name_filter.allows_type("AVFrame")
        assert not name_filter.allows_type("SwsContext")

    def test_match_is_anchored(self):
        name_filter = NameFilter()
        assert not name_filter.allows_function("my_av_helper")
        assert not name_filter.allows_type("MyAVThing")

    def test_match_is_case_sensitive(self):
        name_filter = NameFilter()
        assert not name_filter.allows_function("AV_frame")
        assert not name_filter.allows_type("avframe")

    def test_default_constants_are_ffmpeg_prefixed(self):
        name_filter = NameFilter()
        assert name_filter.allows_constant("FF_PROFILE_AAC_LOW")
        assert name_filter.allows_constant("LIBAVCODEC_VERSION_MAJOR")
        assert name_filter.allows_constant("SWS_BILINEAR")
        assert not name_filter.allows_constant("_POSIX_C_SOURCE")
        assert not name_filter.allows_constant("EAGAIN")

    def test_none_allows_every_constant(self):
        assert NameFilter(constant_pattern=None).allows_constant("EAGAIN")

    def test_constant_pattern(self):
        name_filter = NameFilter(constant_pattern="AV_.*")
        assert name_filter.allows_constant("AV_TIME_BASE")
        assert not name_filter.allows_constant("FF_PROFILE_AAC_LOW")

    def test_custom_patterns(self):
        name_filter = NameFilter(function_pattern="(av|sws)_.*", type_pattern="(AV|Sws).*")
        assert name_filter.allows_function("sws_scale")
        assert name_filter.allows_type("SwsContext")


class TestMacroFilter:
    def test_ignored_set(self):
        assert IGNORED_MACROS == {"FP_INFINITE", "FP_NAN", "FP_NORMAL", "FP_SUBNORMAL", "FP_ZERO", "IPPORT_RESERVED"}

    def test_allows(self):
        macro_filter = MacroFilter()
        assert not macro_filter.allows("FP_NAN")
        assert not macro_filter.allows("IPPORT_RESERVED")
        assert macro_filter.allows("AV_TIME_BASE")

    def test_custom_set(self):
        assert not MacroFilter(ignored=frozenset({"AV_X"})).allows("AV_X")
