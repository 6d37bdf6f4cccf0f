"""Digital-certificate expiry aggregator.

Two record sets carry a certificate validity date: companies (A1 certificate,
`certificateA1Validity`) and partners (e-CPF, `ecpfValidity`). A certificate
is "expiring" when it is still valid today and expires within the window:

    0 <= (validity - today).days <= window_days

A record whose date cannot be parsed is logged and skipped; it never aborts
the scan of the remaining records.
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Any, Iterator

from pydantic import ValidationError
from pymongo.database import Database

from contaflow.aggregate.fanout import CancelScope
from contaflow.aggregate.runner import Aggregator
from contaflow.config import DEFAULT_EXPIRY_WINDOW_DAYS, Settings
from contaflow.db import COMPANIES, PARTNERS
from contaflow.models import Company, Partner, validation_context

log = logging.getLogger(__name__)

# (collection, model, document field, model attribute)
CERTIFICATE_SOURCES = (
    (COMPANIES, Company, "certificateA1Validity", "certificate_a1_validity"),
    (PARTNERS, Partner, "ecpfValidity", "ecpf_validity"),
)


def days_left(validity: date, today: date) -> int:
    """Whole days from `today` until `validity` (negative once expired)."""
    return (validity - today).days


def is_expiring(validity: date, today: date, window_days: int = DEFAULT_EXPIRY_WINDOW_DAYS) -> bool:
    return 0 <= days_left(validity, today) <= window_days


def iter_validities(
    db: Database[dict[str, Any]],
    collection: str,
    model: type[Company] | type[Partner],
    field: str,
    attr: str,
    extra_fields: tuple[str, ...] = (),
    tz: tzinfo | None = None,
) -> Iterator[tuple[Company | Partner, date]]:
    """Yield `(record, validity_date)` for records with a parseable date.

    Records without the field are skipped silently; records with a malformed
    value are skipped with a warning. Instants are read as calendar days in
    `tz` (the office default when omitted).
    """
    projection = {field: 1, **{f: 1 for f in extra_fields}}
    for doc in db[collection].find({}, projection):
        if doc.get(field) in (None, ""):
            continue
        try:
            record = model.model_validate(doc, context=validation_context(tz))
        except ValidationError:
            log.warning(
                "Invalid date format for %s %s: %r",
                collection, doc.get("_id"), doc.get(field),
            )
            continue
        validity = getattr(record, attr)
        if validity is not None:
            yield record, validity


class ExpiringCertificates(Aggregator):
    """Company A1 certificates plus partner e-CPFs expiring within the window."""

    name = "expiring_certificates"

    def __init__(self, *args: Any, window_days: int = DEFAULT_EXPIRY_WINDOW_DAYS, **kwargs: Any) -> None:
        self.window_days = window_days
        super().__init__(*args, **kwargs)

    @classmethod
    def from_settings(
        cls,
        handle: Database[dict[str, Any]] | None,
        settings: Settings,
        **kwargs: Any,
    ) -> "ExpiringCertificates":
        kwargs.setdefault("window_days", settings.expiry_window_days)
        return super().from_settings(handle, settings, **kwargs)  # type: ignore[return-value]

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> int:
        today = self.today()
        total = 0
        for collection, model, field, attr in CERTIFICATE_SOURCES:
            scope.raise_if_cancelled()
            matched = sum(
                1
                for _, validity in iter_validities(db, collection, model, field, attr, tz=self.timezone)
                if is_expiring(validity, today, self.window_days)
            )
            log.debug("%s: %d certificates expiring within %d days", collection, matched, self.window_days)
            total += matched
        return total
