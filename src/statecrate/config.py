"""Crate configuration for statecrate."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class CrateConfig:
    """Runtime knobs for a Crate.

    Parameters
    ----------
    middleware_warn_seconds : float
        Middleware calls slower than this emit ``MiddlewareSlowWarning``.
        Advisory only; the call is never interrupted. Defaults to 0.2.
    freeze_state : bool
        When true ``get_state()`` returns a read-only view
        (``MappingProxyType`` / ``tuple``). When false it returns a plain
        deep copy.
    """

    middleware_warn_seconds: float = 0.2
    freeze_state: bool = True

    @classmethod
    def from_env(cls, **overrides: Any) -> CrateConfig:
        """Create configuration from environment variables.

        Reads ``STATECRATE_MIDDLEWARE_WARN_SECONDS`` and
        ``STATECRATE_FREEZE_STATE``. Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        warn_env = env.get("STATECRATE_MIDDLEWARE_WARN_SECONDS")
        if warn_env is not None and "middleware_warn_seconds" not in overrides:
            config_kwargs["middleware_warn_seconds"] = float(warn_env)

        if "freeze_state" not in overrides:
            config_kwargs["freeze_state"] = _env_bool(env.get("STATECRATE_FREEZE_STATE"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
