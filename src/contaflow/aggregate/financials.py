"""Office revenue for the current month, split by payment status."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pydantic import ValidationError
from pymongo.database import Database

from contaflow.aggregate.fanout import CancelScope
from contaflow.aggregate.runner import Aggregator
from contaflow.db import INVOICES
from contaflow.models import Invoice, InvoiceStatus

log = logging.getLogger(__name__)

OUTSTANDING_STATUSES = (InvoiceStatus.PENDING.value, InvoiceStatus.OVERDUE.value)


@dataclass(frozen=True)
class FinancialSummary:
    """Invoice totals for one reference period (`YYYY-MM`)."""
    period: str
    received: Decimal = Decimal("0")
    pending: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.received + self.pending


class FinancialSummaryAggregator(Aggregator):
    """Paid vs. pending-or-overdue invoice amounts for the current month.

    Cancelled invoices and unknown statuses are left out of both sums.
    """

    name = "financial_summary"

    def current_period(self) -> str:
        return self.today().strftime("%Y-%m")

    def initial(self) -> FinancialSummary:
        return FinancialSummary(period=self.current_period())

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> FinancialSummary:
        period = self.current_period()
        received = Decimal("0")
        pending = Decimal("0")

        scope.raise_if_cancelled()
        for doc in db[INVOICES].find({"referencePeriod": period}):
            try:
                invoice = Invoice.model_validate(doc)
            except ValidationError as exc:
                log.warning("Skipping malformed invoice %s: %s", doc.get("_id"), exc.errors()[0]["msg"])
                continue

            if invoice.status == InvoiceStatus.PAID.value:
                received += invoice.amount
            elif invoice.status in OUTSTANDING_STATUSES:
                pending += invoice.amount

        return FinancialSummary(period=period, received=received, pending=pending)
