"""
Error taxonomy shared by every service in the core.

Callers branch on the class only: ``ValidationError`` for malformed input,
``NotFoundError`` for missing or out-of-scope entities, ``ConflictError``
for business-rule and concurrency conflicts and ``InternalError`` for
storage failures. ``context`` carries structured details for logging and is
never part of the message shown to an operator.
"""

from typing import Any


class PosCoreError(Exception):
    """Base exception for all order and payment core errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(PosCoreError):
    """Raised when input is malformed or violates a field rule."""

    pass


class NotFoundError(PosCoreError):
    """Raised when an entity is absent or outside the caller's outlet."""

    pass


class ConflictError(PosCoreError):
    """Raised when a business rule or a concurrent writer blocks the request."""

    pass


class InternalError(PosCoreError):
    """
    Raised when the transactional store fails.

    The message is always generic; the underlying exception is chained and
    logged but never exposed.
    """

    def __init__(self, **context: Any):
        super().__init__("internal error", **context)
