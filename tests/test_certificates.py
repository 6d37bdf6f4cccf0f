from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from contaflow.aggregate.certificates import ExpiringCertificates, days_left, is_expiring
from contaflow.aggregate.state import Loaded
from contaflow.db import PARTNERS
from tests.conftest import NOW, add_company

TODAY = NOW.date()


def _iso(days: int) -> str:
    return (TODAY + timedelta(days=days)).isoformat()


def test_window_boundaries() -> None:
    assert is_expiring(TODAY + timedelta(days=30), TODAY)
    assert is_expiring(TODAY, TODAY)
    assert not is_expiring(TODAY + timedelta(days=31), TODAY)
    assert not is_expiring(TODAY - timedelta(days=1), TODAY)
    assert days_left(date(2026, 10, 20), TODAY) == 1


def test_counts_companies_and_partners(db, clock) -> None:
    add_company(db, "A", certificateA1Validity=_iso(30))   # in
    add_company(db, "B", certificateA1Validity=_iso(31))   # out
    add_company(db, "C", certificateA1Validity=_iso(-1))   # expired
    add_company(db, "D")                                    # no certificate
    db[PARTNERS].insert_many([
        {"_id": "p1", "name": "Ana", "ecpfValidity": _iso(0)},      # in
        {"_id": "p2", "name": "Bia", "ecpfValidity": _iso(12)},     # in
        {"_id": "p3", "name": "Caio", "ecpfValidity": ""},          # blank
    ])

    assert ExpiringCertificates(db, clock=clock).compute() == Loaded(3)


def test_utc_instants_are_compared_on_the_office_calendar(db, clock) -> None:
    # BSON datetimes are naive UTC; 01:00Z on Nov 19 is still Nov 18 (today + 30) in Sao Paulo
    add_company(db, "A", certificateA1Validity=datetime(2026, 11, 19, 1, 0))
    # 03:30Z is 00:30 local on Nov 19, today + 31
    add_company(db, "B", certificateA1Validity=datetime(2026, 11, 19, 3, 30))
    add_company(db, "C", certificateA1Validity="2026-11-19T02:59:00Z")
    add_company(db, "D", certificateA1Validity="2026-11-19T00:30:00-03:00")

    assert ExpiringCertificates(db, clock=clock).compute() == Loaded(2)


def test_office_timezone_decides_the_calendar_day(db, clock) -> None:
    add_company(db, "A", certificateA1Validity=datetime(2026, 11, 19, 1, 0))
    agg = ExpiringCertificates(db, clock=clock, timezone=ZoneInfo("UTC"))
    assert agg.compute() == Loaded(0)


def test_unparseable_date_is_skipped_without_aborting(db, clock, caplog) -> None:
    add_company(db, "A", certificateA1Validity="31/12/2026")
    add_company(db, "B", certificateA1Validity=_iso(5))
    db[PARTNERS].insert_one({"_id": "p1", "ecpfValidity": "not a date"})
    db[PARTNERS].insert_one({"_id": "p2", "ecpfValidity": _iso(6)})

    with caplog.at_level(logging.WARNING):
        state = ExpiringCertificates(db, clock=clock).compute()

    assert state == Loaded(2)
    assert "Invalid date format" in caplog.text


def test_custom_window(db, clock) -> None:
    add_company(db, "A", certificateA1Validity=_iso(45))
    assert ExpiringCertificates(db, clock=clock).compute() == Loaded(0)
    assert ExpiringCertificates(db, clock=clock, window_days=60).compute() == Loaded(1)
