"""Aggregator base class: bind a handle, compute, settle on a state.

Subclasses implement `reduce(db, scope)` (read and reduce, raising on read
failure) and optionally `initial()` (the zero value). The base class owns
the state machine:

- no handle bound: stay `Loading`, do no work
- `compute()` runs `reduce` and settles on `Loaded(value)`
- a `PyMongoError`, or a `BSONError` from an undecodable document, settles
  on `Failed(reason, last_known_value)`
- `bind()` swaps the handle and cancels the computation in flight; whatever
  that computation produces afterwards is discarded
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo

from pymongo.database import Database
from bson.errors import BSONError
from pymongo.errors import PyMongoError

from contaflow.aggregate.fanout import CancelScope, FanOutCancelled
from contaflow.aggregate.state import AggregateState, Failed, Loaded, Loading
from contaflow.config import DEFAULT_MAX_WORKERS, DEFAULT_TIMEZONE, Settings

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class Aggregator:
    """Read-only reducer producing one dashboard value."""

    name = "aggregate"

    def __init__(
        self,
        handle: Database[dict[str, Any]] | None = None,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        timezone: ZoneInfo | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.max_workers = max_workers
        self.timezone = timezone or ZoneInfo(DEFAULT_TIMEZONE)
        self._clock = clock or (lambda: datetime.now(self.timezone))
        self._handle = handle
        self._lock = threading.Lock()
        self._scope: CancelScope | None = None
        self._last_value = self.initial()
        self.state: AggregateState = Loading(self._last_value)

    @classmethod
    def from_settings(
        cls,
        handle: Database[dict[str, Any]] | None,
        settings: Settings,
        **kwargs: Any,
    ) -> "Aggregator":
        return cls(
            handle,
            max_workers=settings.max_workers,
            timezone=settings.timezone,
            **kwargs,
        )

    # -----------------------------
    # Hooks
    # -----------------------------
    def initial(self) -> Any:
        return 0

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> Any:
        raise NotImplementedError

    # -----------------------------
    # Clock
    # -----------------------------
    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        """Start of the current day in the office timezone."""
        return self.now().date()

    # -----------------------------
    # Lifecycle
    # -----------------------------
    @property
    def handle(self) -> Database[dict[str, Any]] | None:
        return self._handle

    def bind(self, handle: Database[dict[str, Any]] | None) -> None:
        """Swap the backing handle, cancelling the computation in flight."""
        with self._lock:
            if self._scope is not None:
                self._scope.cancel()
                self._scope = None
            self._handle = handle
            self.state = Loading(self._last_value)

    def cancel(self) -> None:
        """Discard the computation in flight (e.g. the consuming view went away)."""
        with self._lock:
            if self._scope is not None:
                self._scope.cancel()
                self._scope = None

    def compute(self) -> AggregateState:
        """Run one read-reduce-settle cycle and return the resulting state."""
        with self._lock:
            handle = self._handle
            if handle is None:
                self.state = Loading(self._last_value)
                return self.state
            if self._scope is not None:
                self._scope.cancel()
            scope = self._scope = CancelScope()
            self.state = Loading(self._last_value)

        try:
            value = self.reduce(handle, scope)
        except FanOutCancelled:
            log.debug("%s: computation cancelled, result discarded", self.name)
            return self.state
        except (PyMongoError, BSONError) as exc:
            log.error("Error computing %s: %s", self.name, exc)
            with self._lock:
                if scope.cancelled:
                    return self.state
                self._scope = None
                self.state = Failed(reason=str(exc), value=self._last_value)
                return self.state

        with self._lock:
            if scope.cancelled:
                log.debug("%s: stale result discarded", self.name)
                return self.state
            self._scope = None
            self._last_value = value
            self.state = Loaded(value)
            return self.state
