"""statecrate: a small reactive state container with queued updates and minimal diffs."""

from importlib.metadata import version as _version

__version__ = _version("statecrate")

from statecrate.channel import Connection, EventChannel
from statecrate.config import CrateConfig
from statecrate.crate import Crate
from statecrate.diff import DiffEngine, DiffResult, reconcile_diff
from statecrate.exceptions import (
    CrateError,
    DisposedError,
    MiddlewareSlowWarning,
    SelectorEvaluationFailure,
    UpdateTaskFailure,
)
from statecrate.middleware import MiddlewareRegistry
from statecrate.selectors import SelectorRegistry
# textual NOT auto-imported; opt-in only

__all__ = [
    "Crate",
    "CrateConfig",
    "Connection",
    "EventChannel",
    "DiffEngine",
    "DiffResult",
    "reconcile_diff",
    "MiddlewareRegistry",
    "SelectorRegistry",
    "CrateError",
    "DisposedError",
    "UpdateTaskFailure",
    "SelectorEvaluationFailure",
    "MiddlewareSlowWarning",
]
