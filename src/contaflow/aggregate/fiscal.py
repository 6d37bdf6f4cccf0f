"""Monthly XML/DAS submission summary.

The reporting period is the calendar month before "now". `eligible` counts
companies flagged `receivesXml`, `sent` counts the period's `xmlStatus`
records marked `Enviado`. `pending = eligible - sent` is reported as-is: it
goes negative when submissions outnumber the currently eligible companies
(for instance after a company stopped receiving XML mid-month).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from pymongo.database import Database

from contaflow.aggregate.fanout import CancelScope
from contaflow.aggregate.runner import Aggregator
from contaflow.db import COMPANIES, XML_STATUS
from contaflow.models import XmlSubmissionStatus

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FiscalSummary:
    """XML submission figures for one reporting period.

    Attributes:
        year: Reporting year.
        month: Reporting month (1-12).
        eligible: Companies flagged as receiving XML.
        sent: Submissions recorded as sent for the period.
    """
    year: int
    month: int
    eligible: int = 0
    sent: int = 0

    @property
    def pending(self) -> int:
        return self.eligible - self.sent

    @property
    def period(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def previous_period(today: date) -> tuple[int, int]:
    """Return `(year, month)` of the calendar month before `today`."""
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def xml_status_id(company_id: str, month: int, year: int) -> str:
    """Document id of a company's XML status for one month."""
    return f"{company_id}_{month}_{year}"


class FiscalSummaryAggregator(Aggregator):
    """Sent vs. pending XML submissions for the previous month."""

    name = "fiscal_summary"

    def initial(self) -> FiscalSummary:
        year, month = previous_period(self.today())
        return FiscalSummary(year=year, month=month)

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> FiscalSummary:
        year, month = previous_period(self.today())

        scope.raise_if_cancelled()
        sent = db[XML_STATUS].count_documents(
            {"month": month, "year": year, "status": XmlSubmissionStatus.SENT.value}
        )
        scope.raise_if_cancelled()
        eligible = db[COMPANIES].count_documents({"receivesXml": True})

        summary = FiscalSummary(year=year, month=month, eligible=eligible, sent=sent)
        if summary.pending < 0:
            log.warning(
                "More XML submissions (%d) than eligible companies (%d) for %s",
                sent, eligible, summary.period,
            )
        return summary
