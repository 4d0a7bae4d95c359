"""Textual integration for statecrate. Opt-in — requires textual.

A WidgetBinding connects crate listeners to one Textual app. Deliveries are
dropped while the app is not running or while widgets are being swapped
(inside ``binding.paused()``), deliveries from a worker thread are handed to
the app's thread with call_from_thread, and NoMatches raised by a query for
a widget that is not mounted yet is logged at debug level and ignored.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

logger = logging.getLogger("statecrate.textual")


class WidgetBinding:
    """Crate listeners that only reach the app while its widget tree is queryable."""

    def __init__(self, app, crate) -> None:
        self.app = app
        self.crate = crate
        self._owner_thread = threading.get_ident()
        self._pause_depth = 0
        self._connections = []

    @property
    def ready(self) -> bool:
        return self.app.is_running and self._pause_depth == 0

    @contextmanager
    def paused(self):
        """Drop deliveries until the block exits. Nests."""
        self._pause_depth += 1
        try:
            yield self
        finally:
            self._pause_depth -= 1

    def on_update(self, selector, effect_fn):
        """Bridge crate.on_update(selector, effect_fn)."""
        return self._track(self.crate.on_update(selector, self._deliver(effect_fn)))

    def use_diff(self, effect_fn):
        """Bridge crate.use_diff(effect_fn)."""
        return self._track(self.crate.use_diff(self._deliver(effect_fn)))

    def disconnect_all(self) -> None:
        for connection in self._connections:
            connection.disconnect()
        self._connections.clear()

    def _track(self, connection):
        self._connections.append(connection)
        return connection

    def _deliver(self, effect_fn):
        def deliver(value):
            if not self.ready:
                return
            if threading.get_ident() == self._owner_thread:
                _apply(effect_fn, value)
            else:
                self.app.call_from_thread(_apply, effect_fn, value)

        return deliver


def _apply(effect_fn, value) -> None:
    try:
        effect_fn(value)
    except NoMatches as exc:
        logger.debug("Skipped %r: %s", effect_fn, exc)


def bind(app, crate) -> WidgetBinding:
    """Create a WidgetBinding for app and crate."""
    return WidgetBinding(app, crate)
