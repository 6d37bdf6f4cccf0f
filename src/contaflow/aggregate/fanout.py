"""Bounded fan-out of per-company sub-queries.

Per-company reads are wrapped in Dask delayed tasks and executed on the
threaded scheduler with `num_workers` capped, so the number of in-flight
MongoDB requests never exceeds the configured pool size no matter how many
companies the office manages.

Every task of one computation shares a `CancelScope`. Tasks check it before
issuing their read; once the scope is cancelled the remaining tasks raise
`FanOutCancelled` and no further requests are sent.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, Mapping, TypeVar
from typing import cast, Any as TypingAny

from dask import delayed, compute  # type: ignore[attr-defined]
from pymongo.database import Database

from contaflow.db import company_subcollection, list_company_ids

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class FanOutCancelled(Exception):
    """Raised inside a cancelled scope; the computation's result is stale."""


class CancelScope:
    """Thread-safe cancellation flag shared by the tasks of one computation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FanOutCancelled()


def fan_out(
    fn: Callable[[T], R],
    items: Iterable[T],
    max_workers: int,
    scope: CancelScope | None = None,
) -> list[R]:
    """Apply `fn` to every item concurrently, at most `max_workers` at a time.

    Args:
        fn: Blocking function issuing one read per item.
        items: Items to map over (usually company ids).
        max_workers: Size of the worker pool (>= 1).
        scope: Cancellation scope; a fresh one is used when omitted.

    Returns:
        Results in the order of `items`.

    Raises:
        FanOutCancelled: if the scope was cancelled before all tasks ran.
        Any exception raised by `fn` (the first one Dask observes).
    """
    if max_workers < 1:
        raise ValueError("max_workers must be >= 1")

    scope = scope or CancelScope()
    items = list(items)
    if not items:
        return []

    def _guarded(item: T) -> R:
        scope.raise_if_cancelled()
        return fn(item)

    tasks = [delayed(_guarded, pure=False)(item) for item in items]
    log.debug("Fanning out %d tasks over %d workers", len(tasks), max_workers)

    # `compute` is untyped in our environment; cast to Any before calling
    results = cast(TypingAny, compute)(*tasks, scheduler="threads", num_workers=max_workers)

    scope.raise_if_cancelled()
    return list(results)


def count_in_subcollections(
    db: Database[dict[str, Any]],
    subcollection: str,
    query: Mapping[str, Any],
    max_workers: int,
    scope: CancelScope | None = None,
) -> int:
    """Sum `count_documents(query)` over every company's `subcollection`.

    Zero companies yields 0; a company without matching records adds 0.
    """
    scope = scope or CancelScope()
    company_ids = list_company_ids(db)
    scope.raise_if_cancelled()

    def _count(company_id: str) -> int:
        return company_subcollection(db, company_id, subcollection).count_documents(dict(query))

    counts = fan_out(_count, company_ids, max_workers=max_workers, scope=scope)
    total = sum(counts)
    log.debug("%s matches across %d companies: %d", subcollection, len(company_ids), total)
    return total
