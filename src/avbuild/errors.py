"""Error taxonomy for the avbuild pipeline.

Every component raises a subclass of PipelineError. The orchestrator is the
only place that decides to abort; components never terminate the process.
Errors raised for a failed external process carry the full combined output
of that process, since it is the only actionable diagnostic available.
"""

from typing import List, Optional


class PipelineError(Exception):
    """Base class for all avbuild failures."""

    def __init__(self, message: str, output: Optional[str] = None):
        super().__init__(message)
        self.output = output

    def __str__(self) -> str:
        message = super().__str__()
        if self.output:
            return f"{message}\n{self.output}"
        return message


class BuildEnvironmentError(PipelineError):
    """Raised when a required environment variable is missing or invalid."""

    pass


class PlatformConfigError(PipelineError):
    """Raised when no platform profile exists for the target platform."""

    pass


class ExtractionError(PipelineError):
    """Raised when the source archive cannot be unpacked."""

    pass


class ConfigurationError(PipelineError):
    """Raised when the native configure step fails."""

    pass


class CompilationError(PipelineError):
    """Raised when the native make step fails."""

    pass


class ManifestError(PipelineError):
    """Raised when the header manifest is malformed."""

    pass


class MissingHeadersError(PipelineError):
    """Raised when one or more manifest entries do not resolve to a file."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        listing = "\n".join(f"  {path}" for path in self.missing)
        super().__init__(f"missing headers ({len(self.missing)}):\n{listing}")


class CodegenError(PipelineError):
    """Raised when header parsing or binding emission fails."""

    pass


class ShimCompilationError(PipelineError):
    """Raised when the glue sources fail to compile or archive."""

    pass
