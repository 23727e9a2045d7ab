"""Error hierarchy for the dependency analyzer.

Only caller contract violations and cancellation reach the caller. Per-file
problems are raised as ExtractionError inside the extraction stage and
downgraded to "file skipped" there.
"""

from __future__ import annotations


class DepGraphError(Exception):
    """Base error for the dependency analyzer.

    All depgraph-specific errors inherit from this.
    """

    pass


# =============================================================================
# Extraction Errors
# =============================================================================


class ExtractionError(DepGraphError):
    """A source file could not be scanned.

    Attributes:
        file_path: The file that was skipped
        reason: Human-readable error description

    Never propagated past the extraction stage - the file contributes
    zero mentions instead.
    """

    def __init__(self, file_path: str, reason: str) -> None:
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Skipping {file_path}: {reason}")


# =============================================================================
# Caller Contract Errors
# =============================================================================


class InvalidServicesError(DepGraphError):
    """The services list handed to the analyzer is missing or malformed.

    Attributes:
        reason: Human-readable error description
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid services input: {reason}")


class ConfigError(DepGraphError):
    """An analysis or scoring setting is out of range.

    Attributes:
        field_name: The offending setting
        reason: Human-readable error description
    """

    def __init__(self, field_name: str, reason: str) -> None:
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Invalid config {field_name}: {reason}")


# =============================================================================
# Run Control Errors
# =============================================================================


class AnalysisCancelledError(DepGraphError):
    """The run was cancelled or ran past its deadline.

    Attributes:
        reason: Why the run stopped

    No partial graph is produced when this is raised.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Analysis cancelled: {reason}")
