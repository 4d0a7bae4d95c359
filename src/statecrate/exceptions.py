"""Custom exception hierarchy for statecrate."""

from __future__ import annotations

from typing import Any


class CrateError(Exception):
    """Base exception for all statecrate errors."""


class DisposedError(CrateError):
    """The crate was used after cleanup().

    Raised by update() and get_state(), and used to reject queued updates
    that had not started when the crate was cleaned up.
    """


class UpdateTaskFailure(CrateError):
    """An update pass raised (a transformer or middleware failed).

    Only the future of the failing update receives this error. The original
    exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, payload: Any = None) -> None:
        self.payload = payload
        super().__init__(message)


class SelectorEvaluationFailure(CrateError):
    """A registered selector raised while being evaluated.

    Never escapes the selector registry: the failure is logged and the
    selector is treated as unchanged for that cycle.
    """

    def __init__(self, message: str, *, selector: Any = None) -> None:
        self.selector = selector
        super().__init__(message)


class MiddlewareSlowWarning(UserWarning):
    """Middleware took longer than the configured threshold to return."""
