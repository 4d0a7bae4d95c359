"""Selector subscriptions — fire listeners only when their slice of state changed.

Each distinct selector object gets one entry holding the value it returned
before the running update, plus a channel of listeners. capture() takes the
before-snapshot, notify() re-evaluates after commit and fires the listeners
of every selector whose result differs.

Selectors are keyed by identity: passing the same function to on_update()
twice shares one entry, while two equal-looking lambdas are two entries.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from statecrate._values import values_equal
from statecrate.channel import Connection, EventChannel
from statecrate.exceptions import SelectorEvaluationFailure

logger = logging.getLogger("statecrate.selectors")

Selector = Callable[[Any], Any]


def result_changed(before: Any, after: Any) -> bool:
    """Sequence equality for sequences, structural for mappings, == otherwise."""
    return not values_equal(before, after)


class _SelectorEntry:
    __slots__ = ("selector", "snapshot", "listeners")

    def __init__(self, selector: Selector) -> None:
        self.selector = selector
        self.snapshot: Any = None
        self.listeners = EventChannel()


class SelectorRegistry:
    """Tracks selectors and their listeners for one Crate."""

    def __init__(self) -> None:
        self._entries: dict[Selector, _SelectorEntry] = {}

    def subscribe(self, selector: Selector, callback: Callable[[Any], None]) -> Connection:
        entry = self._entries.get(selector)
        if entry is None:
            entry = _SelectorEntry(selector)
            self._entries[selector] = entry
        return entry.listeners.connect(callback)

    def capture(self, state: Any) -> None:
        """Record every selector's value against the pre-update state."""
        for entry in list(self._entries.values()):
            entry.snapshot = self._safe_evaluate(entry.selector, state)

    def notify(self, state: Any) -> None:
        """Re-evaluate against the committed state and fire changed selectors.

        Selectors with no value (None) before or after are skipped. A
        selector that raises counts as unchanged.
        """
        for entry in list(self._entries.values()):
            before = entry.snapshot
            entry.snapshot = None
            if before is None:
                continue

            after = self._safe_evaluate(entry.selector, state)
            if after is None:
                continue

            if result_changed(before, after):
                entry.listeners.fire(after)

    def clear(self) -> None:
        for entry in self._entries.values():
            entry.listeners.destroy_all()
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, selector: object) -> bool:
        return selector in self._entries

    def _safe_evaluate(self, selector: Selector, state: Any) -> Any:
        try:
            return self._evaluate(selector, state)
        except SelectorEvaluationFailure as failure:
            logger.warning("%s; treating as unchanged", failure, exc_info=failure.__cause__)
            return None

    @staticmethod
    def _evaluate(selector: Selector, state: Any) -> Any:
        try:
            return selector(state)
        except Exception as exc:
            name = getattr(selector, "__name__", repr(selector))
            raise SelectorEvaluationFailure(f"Selector {name} raised {exc!r}", selector=selector) from exc
