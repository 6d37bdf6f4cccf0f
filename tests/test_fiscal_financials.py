from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from contaflow.aggregate.financials import FinancialSummary, FinancialSummaryAggregator
from contaflow.aggregate.fiscal import (
    FiscalSummary,
    FiscalSummaryAggregator,
    previous_period,
    xml_status_id,
)
from contaflow.aggregate.state import Loaded
from contaflow.db import INVOICES, XML_STATUS
from tests.conftest import TZ, add_company


def _sent(db, company_id: str, month: int, year: int, status: str = "Enviado") -> None:
    db[XML_STATUS].insert_one({
        "_id": xml_status_id(company_id, month, year),
        "companyId": company_id,
        "month": month,
        "year": year,
        "status": status,
    })


def test_previous_period_rolls_back_over_january() -> None:
    assert previous_period(date(2026, 10, 19)) == (2026, 9)
    assert previous_period(date(2027, 1, 3)) == (2026, 12)


def test_fiscal_summary_counts_previous_month(db, clock) -> None:
    for i in range(10):
        add_company(db, f"E{i}", receivesXml=True)
    add_company(db, "X", receivesXml=False)
    for i in range(4):
        _sent(db, f"E{i}", 9, 2026)
    _sent(db, "E5", 9, 2026, status="Pendente")
    _sent(db, "E6", 10, 2026)  # current month, not reported yet

    state = FiscalSummaryAggregator(db, clock=clock).compute()

    assert state == Loaded(FiscalSummary(year=2026, month=9, eligible=10, sent=4))
    assert state.value.pending == 6
    assert state.value.period == "2026-09"


def test_fiscal_pending_goes_negative_with_warning(db, clock, caplog) -> None:
    for i in range(3):
        add_company(db, f"E{i}", receivesXml=True)
    for i in range(5):
        _sent(db, f"C{i}", 9, 2026)

    with caplog.at_level(logging.WARNING):
        summary = FiscalSummaryAggregator(db, clock=clock).compute().value

    assert summary.pending == -2
    assert "More XML submissions" in caplog.text


def test_fiscal_summary_in_january_reads_december(db) -> None:
    add_company(db, "A", receivesXml=True)
    _sent(db, "A", 12, 2026)

    agg = FiscalSummaryAggregator(db, clock=lambda: datetime(2027, 1, 5, 9, 0, tzinfo=TZ))
    assert agg.compute().value == FiscalSummary(year=2026, month=12, eligible=1, sent=1)


def test_fiscal_summary_without_data_is_zero(db, clock) -> None:
    assert FiscalSummaryAggregator(db, clock=clock).compute() == Loaded(FiscalSummary(2026, 9))


def test_financial_summary_partitions_current_month(db, clock) -> None:
    db[INVOICES].insert_many([
        {"_id": "i1", "companyId": "A", "referencePeriod": "2026-10", "amount": 1200.5, "status": "Paga"},
        {"_id": "i2", "companyId": "B", "referencePeriod": "2026-10", "amount": 800, "status": "Pendente"},
        {"_id": "i3", "companyId": "C", "referencePeriod": "2026-10", "amount": 0.1, "status": "Atrasada"},
        {"_id": "i4", "companyId": "D", "referencePeriod": "2026-10", "amount": 999, "status": "Cancelada"},
        {"_id": "i5", "companyId": "A", "referencePeriod": "2026-09", "amount": 500, "status": "Paga"},
    ])

    summary = FinancialSummaryAggregator(db, clock=clock).compute().value

    assert summary == FinancialSummary(
        period="2026-10", received=Decimal("1200.5"), pending=Decimal("800.1")
    )
    assert summary.total == Decimal("2000.6")


def test_financial_summary_skips_malformed_invoice(db, clock, caplog) -> None:
    db[INVOICES].insert_many([
        {"_id": "i1", "referencePeriod": "2026-10", "amount": "lots", "status": "Paga"},
        {"_id": "i2", "referencePeriod": "2026-10", "amount": 10, "status": "Paga"},
    ])
    with caplog.at_level(logging.WARNING):
        summary = FinancialSummaryAggregator(db, clock=clock).compute().value
    assert summary.received == Decimal("10")
    assert "Skipping malformed invoice i1" in caplog.text


def test_financial_summary_without_invoices_is_zero(db, clock) -> None:
    state = FinancialSummaryAggregator(db, clock=clock).compute()
    assert state == Loaded(FinancialSummary(period="2026-10"))
    assert state.value.total == 0
