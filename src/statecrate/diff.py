"""Diff engine — apply a partial update and compute the minimal change-set.

The payload mirrors the state tree's shape. Each leaf is either a literal or
a transformer ``(current) -> new``. apply() walks payload and state together,
writing every change into a copy of the levels it visits while recording the
same change in the diff. Levels the update does not touch keep their
original objects, and the input tree is never mutated. The caller commits
by swapping in DiffResult.state.

Diff rules:
- Nested mappings recurse; a branch without changes is omitted entirely.
- Sequences are replaced wholesale when not element-wise equal.
- A mapping returned by a transformer is always emitted.
- Mapping <-> sequence shape changes are always emitted.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NamedTuple

from statecrate._values import Kind, arrays_equal, classify, thaw, values_equal
from statecrate.middleware import MiddlewareRegistry

# Marks a key missing from the current level. Never stored or emitted.
_ABSENT = object()


class DiffResult(NamedTuple):
    state: dict[str, Any]
    diff: dict[str, Any]
    changed: bool


class DiffEngine:
    """Stateless apart from the middleware table it consults at depth 0."""

    def __init__(self, middleware: MiddlewareRegistry | None = None) -> None:
        self._middleware = middleware if middleware is not None else MiddlewareRegistry()

    def apply(self, state: Mapping[str, Any], payload: Mapping[str, Any]) -> DiffResult:
        """Apply payload on top of state. Returns (new_state, diff, changed)."""
        diff: dict[str, Any] = {}
        new_state, changed = self._apply_level(state, payload, diff, 0)
        return DiffResult(new_state, diff, changed)

    def _apply_level(
        self,
        current: Mapping[str, Any],
        payload: Mapping[str, Any],
        diff: dict[str, Any],
        level: int,
    ) -> tuple[dict[str, Any], bool]:
        working = dict(current)
        changed = False

        for key, value in payload.items():
            old = working.get(key, _ABSENT)
            old_value = None if old is _ABSENT else old
            forced = False

            if callable(value):
                value = value(old_value)
                forced = classify(value) is Kind.MAPPING
                if forced or classify(value) is Kind.SEQUENCE:
                    # Transformers may hand back frozen views from get_state().
                    value = thaw(value)

            if level == 0 and key in self._middleware:
                value = self._middleware.run(key, old_value, value)

            new_kind = classify(value)
            old_kind = Kind.PRIMITIVE if old is _ABSENT else classify(old)

            if forced:
                pass
            elif new_kind is Kind.MAPPING and old_kind is Kind.MAPPING:
                sub_diff: dict[str, Any] = {}
                sub_state, sub_changed = self._apply_level(old, value, sub_diff, level + 1)
                if sub_changed:
                    working[key] = sub_state
                    diff[key] = sub_diff
                    changed = True
                continue
            elif new_kind is Kind.MAPPING:
                # New branch, or a sequence becoming a mapping: materialise
                # nested literals and transformers against an empty level.
                value, _ = self._apply_level({}, value, {}, level + 1)
            elif new_kind is Kind.SEQUENCE and old_kind is Kind.MAPPING:
                pass
            elif new_kind is Kind.SEQUENCE:
                if arrays_equal(value, old):
                    continue
            elif old is not _ABSENT and values_equal(old, value):
                continue

            working[key] = value
            diff[key] = value
            changed = True

        if not changed:
            return current if isinstance(current, dict) else working, False
        return working, True


def reconcile_diff(state: Mapping[str, Any], diff: Mapping[str, Any]) -> dict[str, Any]:
    """Merge a previously emitted diff into a copy of state.

    Mappings merge recursively; anything else at a path overwrites. Neither
    argument is modified. state may be a frozen view from get_state().
    """
    result = thaw(state)
    _merge(result, diff)
    return result


def _merge(target: dict[str, Any], diff: Mapping[str, Any]) -> None:
    for key, value in diff.items():
        existing = target.get(key)
        if classify(value) is Kind.MAPPING and classify(existing) is Kind.MAPPING:
            _merge(existing, value)
        else:
            target[key] = thaw(value)
