"""Error and diagnostics taxonomy.

Every failure raised by the codec or the session layer is a NetcommitError
subclass tagged with an ErrorKind and, where one is known, the attribute path
of the offending field. Callers turn them into Diagnostics entries; the
library never formats user-facing prose beyond the fixed summaries below.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Classification of a failure."""
    SESSION_OPEN_FAILED = "session_open_failed"
    PRE_CHECK_FAILED = "pre_check_failed"
    APPLY_FAILED = "apply_failed"
    COMMIT_FAILED = "commit_failed"
    LOCK_FAILED = "lock_failed"
    UNLOCK_WARNING = "unlock_warning"
    POST_CHECK_FAILED = "post_check_failed"
    DEPENDENCY_CONFLICT = "dependency_conflict"
    MUTUAL_EXCLUSION_CONFLICT = "mutual_exclusion_conflict"
    DUPLICATE_IDENTIFIER = "duplicate_identifier"
    PARSE_NUMERIC_FAILURE = "parse_numeric_failure"
    QUERY_FAILED = "query_failed"
    INVALID_LOAD_REQUEST = "invalid_load_request"


class Stage(str, Enum):
    """Transaction stage an error was raised from."""
    SERIALIZE = "serialize"
    OPEN = "open"
    LOCK = "lock"
    PRE_CHECK = "pre_check"
    APPLY = "apply"
    COMMIT = "commit"
    POST_CHECK = "post_check"
    UNLOCK = "unlock"
    QUERY = "query"
    PARSE = "parse"


# Fixed diagnostic summaries, one per kind
SUMMARIES = {
    ErrorKind.SESSION_OPEN_FAILED: "Start Session Error",
    ErrorKind.PRE_CHECK_FAILED: "Pre Check Error",
    ErrorKind.APPLY_FAILED: "Config Set Error",
    ErrorKind.COMMIT_FAILED: "Config Commit Error",
    ErrorKind.LOCK_FAILED: "Config Lock Error",
    ErrorKind.UNLOCK_WARNING: "Config Clear/Unlock Warning",
    ErrorKind.POST_CHECK_FAILED: "Post Check Error",
    ErrorKind.DEPENDENCY_CONFLICT: "Missing Configuration Error",
    ErrorKind.MUTUAL_EXCLUSION_CONFLICT: "Conflict Configuration Error",
    ErrorKind.DUPLICATE_IDENTIFIER: "Duplicate Configuration Error",
    ErrorKind.PARSE_NUMERIC_FAILURE: "Config Read Error",
    ErrorKind.QUERY_FAILED: "Config Read Error",
    ErrorKind.INVALID_LOAD_REQUEST: "Invalid Load Request",
}

COMMIT_WARNING_SUMMARY = "Config Commit Warning"
NOT_FOUND_SUMMARY = "Not Found Error"


class NetcommitError(Exception):
    """Base error for the codec and the session layer."""

    kind: ErrorKind = ErrorKind.APPLY_FAILED
    default_stage: Optional[Stage] = None

    def __init__(
        self,
        message: str,
        path: Any = None,
        stage: Optional[Stage] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = path
        self.stage = stage or self.default_stage

    @property
    def summary(self) -> str:
        return SUMMARIES[self.kind]

    def __str__(self) -> str:
        return self.message


class SessionOpenFailed(NetcommitError):
    """The underlying channel could not be established."""
    kind = ErrorKind.SESSION_OPEN_FAILED
    default_stage = Stage.OPEN


class LockFailed(NetcommitError):
    """The candidate configuration lock could not be acquired."""
    kind = ErrorKind.LOCK_FAILED
    default_stage = Stage.LOCK


class PreCheckFailed(NetcommitError):
    """Existence check before a creating operation contradicted intent."""
    kind = ErrorKind.PRE_CHECK_FAILED
    default_stage = Stage.PRE_CHECK


class ApplyFailed(NetcommitError):
    """Statement batch or load blob rejected by the candidate configuration."""
    kind = ErrorKind.APPLY_FAILED
    default_stage = Stage.APPLY


class CommitFailed(NetcommitError):
    """Candidate rejected at activation; running configuration unchanged."""
    kind = ErrorKind.COMMIT_FAILED
    default_stage = Stage.COMMIT

    def __init__(self, message: str, warnings: Optional[list[str]] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.warnings = list(warnings or [])


class PostCheckFailed(NetcommitError):
    """State did not match expectation after commit."""
    kind = ErrorKind.POST_CHECK_FAILED
    default_stage = Stage.POST_CHECK


class QueryFailed(NetcommitError):
    """A read query could not be executed."""
    kind = ErrorKind.QUERY_FAILED
    default_stage = Stage.QUERY


class InvalidLoadRequest(NetcommitError):
    """Load action and format are not a valid combination."""
    kind = ErrorKind.INVALID_LOAD_REQUEST
    default_stage = Stage.APPLY


class SerializeError(NetcommitError):
    """Field relationship violation found while serializing."""
    default_stage = Stage.SERIALIZE


class DependencyConflict(SerializeError):
    kind = ErrorKind.DEPENDENCY_CONFLICT


class MutualExclusionConflict(SerializeError):
    kind = ErrorKind.MUTUAL_EXCLUSION_CONFLICT


class DuplicateIdentifier(SerializeError):
    kind = ErrorKind.DUPLICATE_IDENTIFIER


class ParseNumericFailure(NetcommitError):
    """An integer was expected in device output but could not be parsed."""
    kind = ErrorKind.PARSE_NUMERIC_FAILURE
    default_stage = Stage.PARSE


# --- Diagnostics sink ---

class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single (path, summary, detail) entry."""
    severity: Severity
    summary: str
    detail: str
    path: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "summary": self.summary,
            "detail": self.detail,
            "path": self.path,
        }


@dataclass
class Diagnostics:
    """Ordered collection of errors and warnings for one operation."""
    entries: list[Diagnostic] = field(default_factory=list)

    def add_error(self, summary: str, detail: str, path: Any = None) -> None:
        self.entries.append(Diagnostic(
            Severity.ERROR, summary, detail, str(path) if path is not None else None
        ))

    def add_warning(self, summary: str, detail: str, path: Any = None) -> None:
        self.entries.append(Diagnostic(
            Severity.WARNING, summary, detail, str(path) if path is not None else None
        ))

    def add_warnings(self, summary: str, warnings: list[str]) -> None:
        for warning in warnings:
            self.add_warning(summary, warning)

    def add_exception(self, error: NetcommitError) -> None:
        """Attribute an error to its field path, or to the whole operation."""
        path = error.path if error.path is not None and str(error.path) else None
        self.add_error(error.summary, error.message, path)

    def has_error(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.entries)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.entries if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.entries if d.severity == Severity.WARNING]

    def to_list(self) -> list[dict]:
        return [d.to_dict() for d in self.entries]
