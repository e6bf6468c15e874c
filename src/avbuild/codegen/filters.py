"""Declaration filters for binding generation.

NameFilter decides which parsed declarations make it into the binding file.
MacroFilter suppresses macro names whose values collide with unrelated
constants pulled in through system headers (math.h classification macros,
netinet port numbers).
"""

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

IGNORED_MACROS: FrozenSet[str] = frozenset(
    {
        "FP_INFINITE",
        "FP_NAN",
        "FP_NORMAL",
        "FP_SUBNORMAL",
        "FP_ZERO",
        "IPPORT_RESERVED",
    }
)

# Version macros, AV_/FF_ constants and the swscale/swresample flags.
DEFAULT_CONSTANT_PATTERN = "(AV|FF_|LIBAV|LIBSW|LIBPOSTPROC|SWS_|SWR_).*"


@dataclass(frozen=True)
class NameFilter:
    """Allow-list of symbol names, matched against the whole name.

    Attributes:
        function_pattern: Regex for function names
        type_pattern: Regex for struct, union, enum and typedef names
        constant_pattern: Regex for macro constants; None allows every constant,
            including those from system headers
    """

    function_pattern: str = "av.*"
    type_pattern: str = "AV.*"
    constant_pattern: Optional[str] = DEFAULT_CONSTANT_PATTERN
    _compiled: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def _regex(self, pattern: str) -> "re.Pattern[str]":
        regex = self._compiled.get(pattern)
        if regex is None:
            regex = re.compile(pattern)
            self._compiled[pattern] = regex
        return regex

    def allows_function(self, name: str) -> bool:
        return self._regex(self.function_pattern).fullmatch(name) is not None

    def allows_type(self, name: str) -> bool:
        return self._regex(self.type_pattern).fullmatch(name) is not None

    def allows_constant(self, name: str) -> bool:
        if self.constant_pattern is None:
            return True
        return self._regex(self.constant_pattern).fullmatch(name) is not None


@dataclass(frozen=True)
class MacroFilter:
    """Macro names that are never emitted."""

    ignored: FrozenSet[str] = IGNORED_MACROS

    def allows(self, name: str) -> bool:
        return name not in self.ignored
