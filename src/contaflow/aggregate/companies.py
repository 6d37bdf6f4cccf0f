"""Company-level aggregators."""

from __future__ import annotations

from typing import Any

from pymongo.database import Database

from contaflow.aggregate.fanout import CancelScope
from contaflow.aggregate.runner import Aggregator
from contaflow.db import COMPANIES
from contaflow.models import ACTIVE_COMPANY_STATUS


class ActiveCompanies(Aggregator):
    """Clients whose registry status is `ATIVA`."""

    name = "active_companies"

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> int:
        scope.raise_if_cancelled()
        return db[COMPANIES].count_documents({"status": ACTIVE_COMPANY_STATUS})
