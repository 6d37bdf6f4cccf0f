"""Dashboard KPI registry.

Builds one instance of every aggregator the dashboard shows and computes
them. Aggregators share nothing but the database handle, so they are simply
computed one after the other; each one bounds its own fan-out.
"""

from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from typing import Any

from pymongo.database import Database

from contaflow.aggregate.certificates import ExpiringCertificates
from contaflow.aggregate.companies import ActiveCompanies
from contaflow.aggregate.financials import FinancialSummaryAggregator
from contaflow.aggregate.fiscal import FiscalSummaryAggregator
from contaflow.aggregate.obligations import ObligationsByStatus, PendingObligations
from contaflow.aggregate.processes import InProgressProcesses, OnHoldProcesses
from contaflow.aggregate.runner import Aggregator, Clock
from contaflow.aggregate.state import AggregateState, Failed
from contaflow.config import Settings

log = logging.getLogger(__name__)

KPI_AGGREGATORS: tuple[type[Aggregator], ...] = (
    ActiveCompanies,
    PendingObligations,
    InProgressProcesses,
    OnHoldProcesses,
    ExpiringCertificates,
    FiscalSummaryAggregator,
    FinancialSummaryAggregator,
    ObligationsByStatus,
)


def build_aggregators(
    handle: Database[dict[str, Any]] | None,
    settings: Settings,
    clock: Clock | None = None,
) -> dict[str, Aggregator]:
    """Return `{aggregator.name: aggregator}` bound to `handle`."""
    kwargs: dict[str, Any] = {"clock": clock} if clock is not None else {}
    aggregators = [cls.from_settings(handle, settings, **kwargs) for cls in KPI_AGGREGATORS]
    return {a.name: a for a in aggregators}


def compute_all(aggregators: dict[str, Aggregator]) -> dict[str, AggregateState]:
    """Compute every aggregator and return its settled state by name."""
    states: dict[str, AggregateState] = {}
    for name, aggregator in aggregators.items():
        states[name] = aggregator.compute()
    failed = [name for name, s in states.items() if isinstance(s, Failed)]
    if failed:
        log.warning("KPIs failed to load: %s", ", ".join(failed))
    return states


def to_jsonable(value: Any) -> Any:
    """Convert aggregate values (dataclasses, Decimals) to JSON-friendly data."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {k: to_jsonable(v) for k, v in dataclasses.asdict(value).items()}
        # derived figures the dashboard shows
        for prop in ("pending", "total", "period"):
            if prop not in out and hasattr(value, prop):
                out[prop] = to_jsonable(getattr(value, prop))
        return out
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_jsonable(v) for v in value]
    return value


def state_to_dict(state: AggregateState) -> dict[str, Any]:
    """Presentation tuple `{value, is_loading}` plus the state tag."""
    out: dict[str, Any] = {
        "state": type(state).__name__.lower(),
        "value": to_jsonable(state.value),
        "is_loading": state.is_loading,
    }
    if isinstance(state, Failed):
        out["reason"] = state.reason
    return out
