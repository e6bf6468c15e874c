"""Binding generation: header manifest, declaration filters and libclang codegen."""

from .binding_generator import BindingGenerator, detect_system_include_paths, parse_integer_macro
from .filters import IGNORED_MACROS, MacroFilter, NameFilter
from .manifest import HeaderManifest, load_manifest, resolve

__all__ = [
    "BindingGenerator",
    "detect_system_include_paths",
    "parse_integer_macro",
    "IGNORED_MACROS",
    "MacroFilter",
    "NameFilter",
    "HeaderManifest",
    "load_manifest",
    "resolve",
]
