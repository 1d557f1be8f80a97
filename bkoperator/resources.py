"""Resource quantities and the merging of container resource requirements."""

from __future__ import annotations

import copy
import functools
import re
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from typing import Any

_QUANTITY_RE = re.compile(
    r"^(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+))"
    r"(?P<suffix>Ki|Mi|Gi|Ti|Pi|Ei|[eE][+-]?\d+|[numkMGTPE])?$"
)

_BINARY_SUFFIXES = {"Ki": 1, "Mi": 2, "Gi": 3, "Ti": 4, "Pi": 5, "Ei": 6}
_DECIMAL_SUFFIXES = {"n": -9, "u": -6, "m": -3, "k": 3, "M": 6, "G": 9, "T": 12, "P": 15, "E": 18}


def _parse(text: str) -> Fraction:
    match = _QUANTITY_RE.match(text.strip())
    if match is None:
        raise ValueError(f"invalid quantity: {text!r}")
    number = Fraction(Decimal(match["number"]))
    suffix = match["suffix"]
    if not suffix:
        return number
    if suffix in _BINARY_SUFFIXES:
        return number * 1024 ** _BINARY_SUFFIXES[suffix]
    if suffix in _DECIMAL_SUFFIXES:
        return number * Fraction(10) ** _DECIMAL_SUFFIXES[suffix]
    return number * Fraction(10) ** int(suffix[1:])


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Quantity:
    """A resource amount such as ``500m`` or ``4Gi``, compared by its value."""

    text: str
    value: Fraction = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _parse(self.text))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.value < other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        return self.text


def parse_quantity(text: str) -> Quantity:
    """Parse a quantity string, raising ValueError if it is malformed."""
    return Quantity(text)


def _as_quantity(value: Any) -> Quantity:
    return value if isinstance(value, Quantity) else parse_quantity(str(value))


def _section(merged: dict[str, Any], name: str) -> dict[str, Any]:
    if merged.get(name) is None:
        merged[name] = {}
    return merged[name]


def merge_resources(
    desired: dict[str, Any] | None, defaults: dict[str, Any]
) -> dict[str, Any]:
    """Merge desired resource requirements over defaults into a new dict.

    A desired limit is taken only if no default limit exists for that resource
    or it does not exceed the default. Desired requests are always taken but
    are capped at the merged limit. Values may be strings or Quantity objects
    and are kept as given.
    """
    merged = copy.deepcopy(dict(defaults))
    if desired is None:
        return merged

    for name, value in (desired.get("limits") or {}).items():
        default = (merged.get("limits") or {}).get(name)
        if default is None or _as_quantity(value) <= _as_quantity(default):
            _section(merged, "limits")[name] = copy.deepcopy(value)

    for name, value in (desired.get("requests") or {}).items():
        limit = (merged.get("limits") or {}).get(name)
        if limit is not None and _as_quantity(value) > _as_quantity(limit):
            _section(merged, "requests")[name] = copy.deepcopy(limit)
        else:
            _section(merged, "requests")[name] = copy.deepcopy(value)

    return merged