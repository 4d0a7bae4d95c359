"""Value helpers — classification, copying, equality and read-only views.

Every value in a state tree is one of three kinds. The diff engine and the
selector registry classify once and branch on the Kind, instead of sprinkling
isinstance checks through the algorithm.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any


class Kind(Enum):
    PRIMITIVE = "primitive"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def classify(value: Any) -> Kind:
    """Sort a value into PRIMITIVE, SEQUENCE (list/tuple) or MAPPING."""
    if isinstance(value, Mapping):
        return Kind.MAPPING
    # str and bytes are sequences to Python, but leaves to a state tree.
    if isinstance(value, (list, tuple)):
        return Kind.SEQUENCE
    return Kind.PRIMITIVE


def deep_copy(value: Any) -> Any:
    """Deep copy that also accepts the read-only views freeze() returns.

    Mappings come back as dicts; lists stay lists and tuples stay tuples.
    """
    kind = classify(value)
    if kind is Kind.MAPPING:
        return {key: deep_copy(item) for key, item in value.items()}
    if kind is Kind.SEQUENCE:
        items = [deep_copy(item) for item in value]
        return tuple(items) if isinstance(value, tuple) else items
    return copy.deepcopy(value)


def arrays_equal(a: Any, b: Any) -> bool:
    """Ordered element-wise comparison. list and tuple compare alike."""
    if classify(a) is not Kind.SEQUENCE or classify(b) is not Kind.SEQUENCE:
        return False
    if len(a) != len(b):
        return False
    return all(values_equal(x, y) for x, y in zip(a, b))


def maps_equal(a: Any, b: Any) -> bool:
    """Structural comparison of two mappings, recursing into nested values."""
    if classify(a) is not Kind.MAPPING or classify(b) is not Kind.MAPPING:
        return False
    if a.keys() != b.keys():
        return False
    return all(values_equal(a[key], b[key]) for key in a)


def values_equal(a: Any, b: Any) -> bool:
    """The equality rule shared by diffing and selector change detection."""
    kind_a, kind_b = classify(a), classify(b)
    if kind_a is Kind.SEQUENCE and kind_b is Kind.SEQUENCE:
        return arrays_equal(a, b)
    if kind_a is Kind.MAPPING and kind_b is Kind.MAPPING:
        return maps_equal(a, b)
    if kind_a is not kind_b:
        return False
    # 1 == True and 0 == 0.0 in Python, but they are different state values.
    return a is b or (type(a) is type(b) and a == b)


def freeze(value: Any) -> Any:
    """Return a read-only deep copy: mappings become MappingProxyType, sequences tuples."""
    kind = classify(value)
    if kind is Kind.MAPPING:
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if kind is Kind.SEQUENCE:
        return tuple(freeze(item) for item in value)
    return copy.deepcopy(value)


def thaw(value: Any) -> Any:
    """Inverse of freeze(): plain dicts and lists, deep-copied."""
    kind = classify(value)
    if kind is Kind.MAPPING:
        return {key: thaw(item) for key, item in value.items()}
    if kind is Kind.SEQUENCE:
        return [thaw(item) for item in value]
    return copy.deepcopy(value)
