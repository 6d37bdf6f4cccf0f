"""Result states published by aggregators.

An aggregator is always in exactly one of three states. Each carries the
value a dashboard widget should display, so the `{value, is_loading}` pair a
KPI card needs can be read off any state without matching on its type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class Loading:
    """No result yet; `value` is the last known value (or the zero value)."""
    value: Any = None
    is_loading: ClassVar[bool] = True


@dataclass(frozen=True)
class Loaded:
    """The computation settled on `value`."""
    value: Any
    is_loading: ClassVar[bool] = False


@dataclass(frozen=True)
class Failed:
    """A read failed; `value` keeps the last known value (or the zero value)."""
    reason: str
    value: Any = None
    is_loading: ClassVar[bool] = False


AggregateState = Union[Loading, Loaded, Failed]
