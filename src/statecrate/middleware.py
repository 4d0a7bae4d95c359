"""Middleware — per-key interceptors that rewrite a proposed value before commit.

One interceptor per top-level key; registering again replaces it. The diff
engine only consults middleware at depth 0 of an update payload.
"""

from __future__ import annotations

import logging
import time
import warnings
from typing import Any, Callable

from statecrate.exceptions import MiddlewareSlowWarning

logger = logging.getLogger("statecrate.middleware")

Middleware = Callable[[Any, Any], Any]

DEFAULT_WARN_SECONDS = 0.2


class MiddlewareRegistry:
    """Single-slot-per-key interceptor table, owned by one Crate."""

    def __init__(self, *, warn_seconds: float = DEFAULT_WARN_SECONDS) -> None:
        self._methods: dict[str, Middleware] = {}
        self._warn_seconds = warn_seconds

    def register(self, key: str, middleware: Middleware) -> None:
        self._methods[key] = middleware

    def get(self, key: str) -> Middleware | None:
        return self._methods.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._methods

    def __len__(self) -> int:
        return len(self._methods)

    def run(self, key: str, old_value: Any, new_value: Any) -> Any:
        """Pass (old_value, new_value) through the key's middleware.

        Returns new_value untouched when no middleware is registered. Slow
        middleware is flagged after the fact, never interrupted.
        """
        method = self._methods.get(key)
        if method is None:
            return new_value

        started = time.perf_counter()
        result = method(old_value, new_value)
        elapsed = time.perf_counter() - started

        if elapsed > self._warn_seconds:
            message = (
                f"Middleware for {key!r} blocked for {elapsed:.3f}s; "
                "blocking inside middleware is not allowed."
            )
            logger.warning(message)
            warnings.warn(message, MiddlewareSlowWarning, stacklevel=2)

        return result
