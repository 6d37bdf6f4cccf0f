"""Corporate-process aggregators (fan-out over `companies.<id>.corporateProcesses`)."""

from __future__ import annotations

from typing import Any

from pymongo.database import Database

from contaflow.aggregate.fanout import CancelScope, count_in_subcollections
from contaflow.aggregate.runner import Aggregator
from contaflow.db import CORPORATE_PROCESSES
from contaflow.models import ACTIVE_PROCESS_STATUSES, ProcessStatus


class InProgressProcesses(Aggregator):
    """Processes in one of the active statuses."""

    name = "in_progress_processes"

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> int:
        query = {"status": {"$in": [s.value for s in ACTIVE_PROCESS_STATUSES]}}
        return count_in_subcollections(
            db, CORPORATE_PROCESSES, query, max_workers=self.max_workers, scope=scope
        )


class OnHoldProcesses(Aggregator):
    """Processes blocked on a registry requirement (`Em Exigência`)."""

    name = "on_hold_processes"

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> int:
        query = {"status": ProcessStatus.ON_HOLD.value}
        return count_in_subcollections(
            db, CORPORATE_PROCESSES, query, max_workers=self.max_workers, scope=scope
        )
