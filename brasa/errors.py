"""
Error taxonomy for queued work.

Each failure a job can hit carries an ErrorKind next to its human-readable
message. The kind is stored on the queue envelope so failed jobs can be
triaged without parsing messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Why a job attempt failed"""
    TRANSIENT = "transient"
    MALFORMED_OUTPUT = "malformed_output"
    MISSING_ENTITY = "missing_entity"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    UNSUPPORTED_KIND = "unsupported_kind"
    MAX_ATTEMPTS = "max_attempts"


class JobError(Exception):
    """Base class for errors raised while processing a queued job."""

    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class StoreError(JobError):
    """Raised when the queue store rejects a command or cannot be reached."""
    kind = ErrorKind.TRANSIENT


class MalformedOutputError(JobError):
    """Raised when a provider returns content that does not match the expected structure."""
    kind = ErrorKind.MALFORMED_OUTPUT


class MissingEntityError(JobError):
    """Raised when a site, page or section referenced by a job does not exist."""
    kind = ErrorKind.MISSING_ENTITY


class UnsupportedJobKindError(JobError):
    """Raised when no processor handles the payload (or provider capability) requested."""
    kind = ErrorKind.UNSUPPORTED_KIND


class ProviderConfigError(JobError):
    """Raised when a provider is unknown or its credentials are missing."""
    kind = ErrorKind.TRANSIENT


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception to an ErrorKind; unknown errors are treated as transient."""
    kind = getattr(error, "kind", None)
    if isinstance(kind, ErrorKind):
        return kind
    return ErrorKind.TRANSIENT


def error_message(error: BaseException) -> str:
    message = str(error)
    return message or error.__class__.__name__
