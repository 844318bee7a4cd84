"""
Exceptions raised by the policy document compiler.

Validation findings are data (see ValidationResult), never exceptions. The
classes here are for failures that stop an operation; each carries the HTTP
status the API layer answers with.
"""

from typing import Any


class PolicyCompilerError(Exception):
    """Base class. ``details`` is returned to API callers as-is."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ParseError(PolicyCompilerError):
    """
    A policy document could not be read into a PolicyModel.

    ``details`` holds the XML parser's line and column when the document is
    not well-formed, or the offending tag when the root is not <policies>.
    """

    status_code = 400


class ValidationError(PolicyCompilerError):
    """
    A request to the compiler is malformed: an unknown scope, an unknown
    wizard step id, an unrecognised policy model field.

    Not to be confused with ``pydantic.ValidationError``.
    """

    status_code = 400


class NotFoundError(PolicyCompilerError):
    status_code = 404


class AdapterError(PolicyCompilerError):
    """
    A cache/database or live gateway adapter failed.

    Detection absorbs these per source, so they only reach callers that use
    an adapter directly.
    """

    status_code = 502


class CompilerUnavailableError(PolicyCompilerError):
    """Neither the in-process compiler nor the remote one can serve the call."""

    status_code = 503


ERROR_STATUS_MAP: dict[type[PolicyCompilerError], int] = {
    error_class: error_class.status_code
    for error_class in (
        ParseError,
        ValidationError,
        NotFoundError,
        AdapterError,
        CompilerUnavailableError,
    )
}


def get_status_code(error: Exception) -> int:
    """HTTP status for ``error``; 500 for anything not listed in ERROR_STATUS_MAP."""
    for error_class in type(error).__mro__:
        if error_class in ERROR_STATUS_MAP:
            return ERROR_STATUS_MAP[error_class]
    return 500
