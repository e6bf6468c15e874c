"""Binding generation from FFmpeg headers.

Parses the manifest headers with libclang and writes one C declaration file
that cffi's cdef() accepts: integer macro constants, allow-listed struct,
union, enum and typedef declarations, and allow-listed function prototypes.

Declarations are rebuilt from libclang's type information rather than
copied from the source text, so attribute macros (attribute_deprecated,
av_warn_unused_result, ...) never leak into the output. Nested anonymous
members are emitted as "...;" which cffi treats as a partially known
struct, resolved when the extension is compiled.
"""

import itertools
import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from clang import cindex
from clang.cindex import CursorKind, TypeKind

from ..errors import CodegenError
from ..subprocess_utils import run_captured
from .filters import MacroFilter, NameFilter

logger = logging.getLogger(__name__)

_RECORD_KEYWORDS = {
    CursorKind.STRUCT_DECL: "struct",
    CursorKind.UNION_DECL: "union",
    CursorKind.ENUM_DECL: "enum",
}

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INTEGER_MACRO = re.compile(r"(-?)(0[xX][0-9a-fA-F]+|[0-9]+)[uUlL]*")

_PARSE_OPTIONS = (
    cindex.TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD | cindex.TranslationUnit.PARSE_SKIP_FUNCTION_BODIES
)


def declarator(type_spelling: str, name: str) -> str:
    """Combine a type spelling and a name into a C declarator.

    Handles function pointers ("int (*)(int)") and arrays ("char [8]"),
    where the name goes inside the type rather than after it.
    """
    if not name:
        return type_spelling
    if "(*)" in type_spelling:
        return type_spelling.replace("(*)", f"(*{name})", 1)
    if type_spelling.endswith("]") and "[" in type_spelling:
        index = type_spelling.index("[")
        return f"{type_spelling[:index].rstrip()} {name}{type_spelling[index:]}"
    if type_spelling.endswith("*"):
        return f"{type_spelling}{name}"
    return f"{type_spelling} {name}"


def parse_integer_macro(body: str) -> Optional[int]:
    """Value of a macro body that is a plain integer literal, else None.

    Accepts optional surrounding parentheses, a leading minus and C integer
    suffixes: "42", "(-1)", "0x10", "64ULL", "010".
    """
    stripped = body.strip()
    while stripped.startswith("(") and stripped.endswith(")"):
        stripped = stripped[1:-1].strip()
    match = _INTEGER_MACRO.fullmatch(stripped)
    if match is None:
        return None
    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        value = int(digits, 16)
    elif len(digits) > 1 and digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits, 10)
    return -value if sign else value


def detect_system_include_paths(cc: str = "cc") -> List[str]:
    """Ask the host C compiler for its system include directories.

    libclang from a wheel ships without a sysroot, so stdint.h and friends
    have to come from the host toolchain. Returns an empty list when the
    compiler is unavailable.
    """
    try:
        result = run_captured([cc, "-E", "-x", "c", "-", "-v"], input_bytes=b"")
    except FileNotFoundError:
        logger.debug("%s not found, no system include paths detected", cc)
        return []
    if not result.success:
        return []

    paths = []
    collecting = False
    for line in result.stderr.splitlines():
        if line.startswith("#include <...> search starts here:"):
            collecting = True
            continue
        if line.startswith("End of search list."):
            break
        if collecting:
            path = line.strip().replace(" (framework directory)", "")
            if path:
                paths.append(path)
    return paths


def _format_diagnostic(diagnostic: "cindex.Diagnostic") -> str:
    location = diagnostic.location
    where = f"{location.file}:{location.line}:{location.column}" if location.file else "<unknown>"
    return f"{where}: {diagnostic.spelling}"


def _record_tag(cursor: "cindex.Cursor") -> str:
    """Tag name of a struct, union or enum; empty for anonymous records.

    Newer libclang spells anonymous records as "struct (unnamed at ...)" or
    after their typedef, so the tag is confirmed against the source tokens.
    """
    name = cursor.spelling
    if _IDENTIFIER.fullmatch(name) is None:
        return ""
    head = [token.spelling for token in itertools.islice(cursor.get_tokens(), 3)]
    return name if name in head else ""


def _contains(outer: "cindex.Cursor", inner: "cindex.Cursor") -> bool:
    outer_start, outer_end = outer.extent.start, outer.extent.end
    inner_start, inner_end = inner.extent.start, inner.extent.end
    if outer_start.file is None or inner_start.file is None:
        return False
    return (
        outer_start.file.name == inner_start.file.name
        and outer_start.offset <= inner_start.offset
        and inner_end.offset <= outer_end.offset
    )


class _DeclarationCollector:
    """Accumulates filtered declarations across translation units.

    Headers include each other, so the same declaration is seen many times;
    only the first occurrence is kept.
    """

    def __init__(self, name_filter: NameFilter, macro_filter: MacroFilter):
        self.name_filter = name_filter
        self.macro_filter = macro_filter
        self.constants: Dict[str, int] = {}
        self.types: List[str] = []
        self.functions: List[str] = []
        self._seen: Set[Tuple[str, str]] = set()

    def _first(self, key: Tuple[str, str]) -> bool:
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def visit(self, tu: "cindex.TranslationUnit") -> None:
        for cursor in tu.cursor.get_children():
            kind = cursor.kind
            if kind == CursorKind.MACRO_DEFINITION:
                self._macro(cursor)
            elif kind == CursorKind.FUNCTION_DECL:
                self._function(cursor)
            elif kind in _RECORD_KEYWORDS:
                self._record(cursor)
            elif kind == CursorKind.TYPEDEF_DECL:
                self._typedef(cursor)

    def _macro(self, cursor: "cindex.Cursor") -> None:
        name = cursor.spelling
        if cursor.location.file is None:
            return  # compiler builtin
        if not self.macro_filter.allows(name) or not self.name_filter.allows_constant(name):
            return
        if name in self.constants:
            return
        tokens = [token.spelling for token in cursor.get_tokens()]
        value = parse_integer_macro("".join(tokens[1:]))
        if value is not None:
            self.constants[name] = value

    def _function(self, cursor: "cindex.Cursor") -> None:
        name = cursor.spelling
        if not self.name_filter.allows_function(name) or not self._first(("function", name)):
            return
        arguments = list(cursor.get_arguments())
        if any("va_list" in arg.type.spelling for arg in arguments):
            logger.debug("Skipping %s: va_list parameters cannot be declared to cffi", name)
            return
        params = [declarator(arg.type.spelling, arg.spelling) for arg in arguments]
        if cursor.type.kind == TypeKind.FUNCTIONPROTO and cursor.type.is_function_variadic():
            params.append("...")
        signature = f"{name}({', '.join(params) or 'void'})"
        self.functions.append(self._with_comment(cursor, declarator(cursor.result_type.spelling, signature) + ";"))

    def _record_body(self, cursor: "cindex.Cursor") -> str:
        lines = []
        if cursor.kind == CursorKind.ENUM_DECL:
            for child in cursor.get_children():
                if child.kind == CursorKind.ENUM_CONSTANT_DECL:
                    lines.append(f"    {child.spelling} = {child.enum_value},")
            return "\n".join(lines)

        for child in cursor.get_children():
            if child.kind != CursorKind.FIELD_DECL:
                continue
            type_spelling = child.type.spelling
            if not child.spelling or "(unnamed" in type_spelling or "(anonymous" in type_spelling:
                lines.append("    ...;")
                continue
            line = declarator(type_spelling, child.spelling)
            if child.is_bitfield():
                line += f" : {child.get_bitfield_width()}"
            lines.append(f"    {line};")
        return "\n".join(lines)

    def _record(self, cursor: "cindex.Cursor") -> None:
        name = _record_tag(cursor)
        keyword = _RECORD_KEYWORDS[cursor.kind]
        if not name or not self.name_filter.allows_type(name):
            return
        if not cursor.is_definition():
            if keyword != "enum" and self._first(("declare", f"{keyword} {name}")):
                self.types.append(f"{keyword} {name};")
            return
        if not self._first(("define", f"{keyword} {name}")):
            return
        body = self._record_body(cursor)
        self.types.append(self._with_comment(cursor, f"{keyword} {name} {{\n{body}\n}};"))

    def _typedef(self, cursor: "cindex.Cursor") -> None:
        name = cursor.spelling
        if not self.name_filter.allows_type(name) or not self._first(("typedef", name)):
            return
        underlying = cursor.underlying_typedef_type
        decl = underlying.get_declaration()
        keyword = _RECORD_KEYWORDS.get(decl.kind)

        if keyword and decl.is_definition() and _contains(cursor, decl):
            tag = _record_tag(decl)
            if not tag or self._first(("define", f"{keyword} {tag}")):
                head = f"{keyword} {tag} " if tag else f"{keyword} "
                body = self._record_body(decl)
                self.types.append(self._with_comment(cursor, f"typedef {head}{{\n{body}\n}} {name};"))
                return
            self.types.append(self._with_comment(cursor, f"typedef {keyword} {tag} {name};"))
            return

        self.types.append(self._with_comment(cursor, f"typedef {declarator(underlying.spelling, name)};"))

    @staticmethod
    def _with_comment(cursor: "cindex.Cursor", text: str) -> str:
        brief = cursor.brief_comment
        if brief:
            brief = brief.replace("*/", "* /")
            return f"/* {brief} */\n{text}"
        return text


class BindingGenerator:
    """Generates the binding file from resolved headers."""

    def __init__(self, index: Optional["cindex.Index"] = None, detect_include_paths: bool = True, cc: str = "cc"):
        """
        Args:
            index: libclang index (created lazily when omitted)
            detect_include_paths: Add the host compiler's system include dirs
            cc: Host C compiler queried for include dirs
        """
        self._index = index
        self.detect_include_paths = detect_include_paths
        self.cc = cc

    @property
    def index(self) -> "cindex.Index":
        if self._index is None:
            try:
                self._index = cindex.Index.create()
            except cindex.LibclangError as e:
                raise CodegenError(f"libclang could not be loaded: {e}")
        return self._index

    def clang_args(self, include_roots: Iterable[Path], extra_args: Sequence[str] = ()) -> List[str]:
        args = ["-x", "c"]
        args.extend(f"-I{root}" for root in include_roots)
        if self.detect_include_paths:
            args.extend(f"-isystem{path}" for path in detect_system_include_paths(self.cc))
        args.extend(extra_args)
        return args

    def _parse(self, header: Path, args: List[str]) -> "cindex.TranslationUnit":
        try:
            tu = self.index.parse(str(header), args=args, options=_PARSE_OPTIONS)
        except cindex.TranslationUnitLoadError as e:
            raise CodegenError(f"libclang failed to parse {header}: {e}")

        errors = [d for d in tu.diagnostics if d.severity >= cindex.Diagnostic.Error]
        if errors:
            raise CodegenError(
                f"{len(errors)} error(s) while parsing {header}",
                output="\n".join(_format_diagnostic(d) for d in errors),
            )
        return tu

    def generate(
        self,
        headers: Sequence[Path],
        include_roots: Sequence[Path],
        name_filter: NameFilter,
        macro_filter: MacroFilter,
        output_path: Path,
        extra_args: Sequence[str] = (),
    ) -> Path:
        """Parse headers and write the binding file.

        Args:
            headers: Resolved header paths, in manifest order
            include_roots: Directories passed as -I
            name_filter: Allow-list for functions, types and constants
            macro_filter: Macro names that are never emitted
            output_path: Binding file to write
            extra_args: Additional clang arguments (platform specific)

        Returns:
            output_path

        Raises:
            CodegenError: On libclang load failure or parse errors
        """
        args = self.clang_args(include_roots, extra_args)
        logger.debug("clang args: %s", " ".join(args))

        collector = _DeclarationCollector(name_filter, macro_filter)
        for header in headers:
            collector.visit(self._parse(header, args))

        text = render_bindings(collector, headers)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        # Presence of the output gates regeneration, so it appears complete or not at all
        tmp_path = output_path.with_name(output_path.name + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, output_path)
        logger.debug(
            "Wrote %s: %d constants, %d types, %d functions",
            output_path,
            len(collector.constants),
            len(collector.types),
            len(collector.functions),
        )
        return output_path


def render_bindings(collector: _DeclarationCollector, headers: Sequence[Path]) -> str:
    """Assemble the binding file text."""
    parts = [
        "/*",
        f" * FFmpeg declarations generated by avbuild from {len(headers)} header(s).",
        " * Do not edit. Delete this file or set FFDEV2=2 to regenerate.",
        " *",
    ]
    parts.extend(f" *   {header.name}" for header in headers)
    parts.append(" */")
    parts.append("")

    if collector.constants:
        parts.append("/* Constants */")
        parts.extend(f"#define {name} {value}" for name, value in collector.constants.items())
        parts.append("")
    if collector.types:
        parts.append("/* Types */")
        for declaration in collector.types:
            parts.append(declaration)
            parts.append("")
    if collector.functions:
        parts.append("/* Functions */")
        parts.extend(collector.functions)
        parts.append("")

    return "\n".join(parts)
