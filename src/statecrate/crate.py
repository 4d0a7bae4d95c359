"""Crate — a single state tree with queued updates, diffs and selector listeners.

A Crate owns one nested mapping. update() submits a partial payload; updates
run one at a time in call order. Each update produces a diff of only the
paths that changed, fires the diff and whole-state listeners when anything
changed, then re-checks every selector and fires those whose result moved.
cleanup() disposes the crate for good.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Callable, overload

from statecrate._queue import MutationQueue
from statecrate._values import deep_copy, freeze
from statecrate.channel import Connection, EventChannel
from statecrate.config import CrateConfig
from statecrate.diff import DiffEngine, reconcile_diff
from statecrate.exceptions import CrateError, DisposedError, UpdateTaskFailure
from statecrate.middleware import Middleware, MiddlewareRegistry
from statecrate.selectors import Selector, SelectorRegistry

logger = logging.getLogger("statecrate.crate")


class Crate:
    """Reactive state container over one nested mapping."""

    def __init__(self, state: Mapping[str, Any], *, config: CrateConfig | None = None) -> None:
        self._config = config if config is not None else CrateConfig()
        self._state: dict[str, Any] = dict(deep_copy(state))
        self._disposed = False

        self._middleware = MiddlewareRegistry(warn_seconds=self._config.middleware_warn_seconds)
        self._engine = DiffEngine(self._middleware)
        self._selectors = SelectorRegistry()
        self._queue = MutationQueue()

        self._update_channel = EventChannel()
        self._diff_channel = EventChannel()

    # --- Lifecycle ---

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def pending(self) -> int:
        """Updates queued but not yet started."""
        return self._queue.pending

    def cleanup(self) -> None:
        """Disconnect every listener. Later update()/get_state() calls raise DisposedError."""
        if self._disposed:
            return
        self._disposed = True
        self._update_channel.destroy_all()
        self._diff_channel.destroy_all()
        self._selectors.clear()
        logger.info("Crate cleaned up (%d queued updates will be rejected)", self._queue.pending)

    destroy = cleanup

    async def flush(self) -> None:
        """Wait until every queued update has finished."""
        await self._queue.join()

    # --- Subscriptions ---

    def use_middleware(self, key: str, middleware: Middleware) -> None:
        """Intercept top-level key: middleware(old_value, new_value) -> committed value."""
        self._middleware.register(key, middleware)

    def use_diff(self, callback: Callable[[dict[str, Any]], None]) -> Connection:
        """Receive the diff of every update that changed something.

        Fires after the new state is committed and before selector listeners.
        Each call gets its own copy of the diff; apply it to a replica with
        Crate.reconcile_diff().
        """
        return self._diff_channel.connect(callback)

    @overload
    def on_update(self, callback: Callable[[Mapping[str, Any]], None], /) -> Connection: ...

    @overload
    def on_update(self, selector: Selector, callback: Callable[[Any], None], /) -> Connection: ...

    def on_update(self, selector_or_callback, callback=None, /) -> Connection:
        """Listen to every committed change, or only to changes a selector can see.

        on_update(callback): callback(state) after every update that changed
        something, with a frozen copy of the new state.

        on_update(selector, callback): callback(result) when selector(state)
        differs from its value before the update.
        """
        if callback is None:
            return self._update_channel.connect(selector_or_callback)
        return self._selectors.subscribe(selector_or_callback, callback)

    # --- Reads ---

    @overload
    def get_state(self) -> Mapping[str, Any]: ...

    @overload
    def get_state(self, key: str, /) -> Any: ...

    @overload
    def get_state(self, selector: Selector, /) -> Any: ...

    def get_state(self, key_or_selector=None, /):
        """Read state.

        get_state(): a read-only deep copy of the whole tree.
        get_state(key): the value at a top-level key, by reference. Do not mutate it.
        get_state(selector): selector(state).
        """
        if self._disposed:
            raise DisposedError("Attempted to fetch crate state after calling cleanup().")

        if key_or_selector is None:
            return self._snapshot()
        if callable(key_or_selector):
            return key_or_selector(self._state)
        return self._state.get(key_or_selector)

    # --- Writes ---

    def update(self, payload: Mapping[str, Any], copy: bool = False) -> asyncio.Future[None]:
        """Queue a partial update. Returns a future that resolves once listeners ran.

        Leaves of payload are literal values or transformers ``(current) -> new``:

            crate.update({"coins": 10})
            crate.update({"coins": lambda v: v + 10})

        With copy=True the payload is deep-copied first, so mutating it after
        the call cannot leak into the queued update. The future fails with
        UpdateTaskFailure if a transformer or middleware raises; later updates
        still run. A listener that raises is logged and does not fail the update.
        """
        if self._disposed:
            raise DisposedError("Attempted to update crate state after calling cleanup().")

        if copy:
            payload = deep_copy(payload)

        logger.debug("Queued update for keys %s", list(payload))
        return self._queue.enqueue(lambda: self._run_update(payload))

    async def _run_update(self, payload: Mapping[str, Any]) -> None:
        if self._disposed:
            raise DisposedError("Crate was cleaned up before this update ran.")

        self._selectors.capture(self._state)

        try:
            result = self._engine.apply(self._state, payload)
        except CrateError:
            raise
        except Exception as exc:
            raise UpdateTaskFailure(f"Update failed: {exc!r}", payload=payload) from exc

        self._state = result.state

        if not result.changed or self._disposed:
            return

        logger.debug("Committed update, diff keys %s", list(result.diff))
        # Channels log and skip failing handlers, so every stage runs.
        self._diff_channel.fire(deep_copy(result.diff))
        if len(self._update_channel):
            self._update_channel.fire(self._snapshot())
        self._selectors.notify(self._state)

    def _snapshot(self) -> Mapping[str, Any]:
        if self._config.freeze_state:
            return freeze(self._state)
        return deep_copy(self._state)

    # --- Replication ---

    @staticmethod
    def reconcile_diff(state: Mapping[str, Any], diff: Mapping[str, Any]) -> dict[str, Any]:
        """Apply a diff emitted by use_diff() to a copy of another state tree."""
        return reconcile_diff(state, diff)

    def __repr__(self) -> str:
        status = "disposed" if self._disposed else "active"
        return f"Crate(keys={list(self._state)!r}, {status}, pending={self._queue.pending})"
