"""Tax-obligation aggregators (fan-out over `companies.<id>.taxObligations`)."""

from __future__ import annotations

from typing import Any

from pymongo.database import Database

from contaflow.aggregate.fanout import CancelScope, count_in_subcollections, fan_out
from contaflow.aggregate.runner import Aggregator
from contaflow.db import TAX_OBLIGATIONS, company_subcollection, list_company_ids
from contaflow.models import PENDING_OBLIGATION_STATUSES, ObligationStatus


class PendingObligations(Aggregator):
    """Obligations still to be filed: status `Pendente` or `Atrasada`."""

    name = "pending_obligations"

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> int:
        query = {"status": {"$in": [s.value for s in PENDING_OBLIGATION_STATUSES]}}
        return count_in_subcollections(
            db, TAX_OBLIGATIONS, query, max_workers=self.max_workers, scope=scope
        )


class ObligationsByStatus(Aggregator):
    """Per-status obligation counts for the status chart.

    Only the four known statuses are reported; anything else is ignored.
    """

    name = "obligations_by_status"

    def initial(self) -> dict[str, int]:
        return {s.value: 0 for s in ObligationStatus}

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> dict[str, int]:
        known = [s.value for s in ObligationStatus]
        pipeline = [
            {"$match": {"status": {"$in": known}}},
            {"$group": {"_id": "$status", "n": {"$sum": 1}}},
        ]

        def _group(company_id: str) -> list[dict[str, Any]]:
            return list(company_subcollection(db, company_id, TAX_OBLIGATIONS).aggregate(pipeline))

        company_ids = list_company_ids(db)
        scope.raise_if_cancelled()

        totals = self.initial()
        for groups in fan_out(_group, company_ids, max_workers=self.max_workers, scope=scope):
            for g in groups:
                totals[g["_id"]] += int(g["n"])
        return totals
