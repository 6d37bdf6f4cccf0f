"""Load a JSON fixture of office records into MongoDB.

Fixture layout (every key optional):

    {
      "companies": [...], "partners": [...], "invoices": [...], "xmlStatus": [...],
      "taxObligations": {"<companyId>": [...]},
      "corporateProcesses": {"<companyId>": [...]}
    }

Each record is validated with its Pydantic model before loading; invalid
records are counted and skipped. Valid records are upserted unchanged (by
`_id`), so fields the models do not declare are preserved.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError
from pymongo.database import Database

from contaflow.db import (
    COMPANIES,
    CORPORATE_PROCESSES,
    INVOICES,
    PARTNERS,
    TAX_OBLIGATIONS,
    XML_STATUS,
    bulk_upsert,
    company_subcollection,
)
from contaflow.models import Company, CorporateProcess, Invoice, Obligation, Partner, XmlStatus

log = logging.getLogger(__name__)

TOP_LEVEL: dict[str, type[BaseModel]] = {
    COMPANIES: Company,
    PARTNERS: Partner,
    INVOICES: Invoice,
    XML_STATUS: XmlStatus,
}

PER_COMPANY: dict[str, type[BaseModel]] = {
    TAX_OBLIGATIONS: Obligation,
    CORPORATE_PROCESSES: CorporateProcess,
}


def validate_records(
    records: list[dict[str, Any]],
    model: type[BaseModel],
) -> tuple[list[dict[str, Any]], int]:
    """Validate fixture records using Pydantic.

    Args:
        records: Raw fixture documents.
        model: Model the documents must satisfy.

    Returns:
        A tuple of (list_of_valid_records, bad_count).
    """
    good: list[dict[str, Any]] = []
    bad = 0

    for rec in records:
        try:
            model.model_validate(rec)
            good.append(rec)
        except ValidationError as exc:
            log.warning("Invalid %s record %s: %s", model.__name__, rec.get("_id"), exc.errors()[0]["msg"])
            bad += 1

    return good, bad


def load_fixture(db: Database[dict[str, Any]], fixture: dict[str, Any]) -> dict[str, int]:
    """Upsert every collection of `fixture` and return loaded counts per collection.

    Raises:
        ValueError: on unknown top-level keys or a malformed per-company section.
    """
    unknown = set(fixture) - set(TOP_LEVEL) - set(PER_COMPANY)
    if unknown:
        raise ValueError(f"Unknown fixture sections: {', '.join(sorted(unknown))}")

    loaded: dict[str, int] = {}
    bad_total = 0

    for name, model in TOP_LEVEL.items():
        good, bad = validate_records(fixture.get(name, []), model)
        bad_total += bad
        loaded[name] = bulk_upsert(db[name], good) if good else 0

    for name, model in PER_COMPANY.items():
        section = fixture.get(name, {})
        if not isinstance(section, dict):
            raise ValueError(f"{name} must map company ids to record lists")
        loaded[name] = 0
        for company_id, records in section.items():
            good, bad = validate_records(records, model)
            bad_total += bad
            if good:
                loaded[name] += bulk_upsert(company_subcollection(db, company_id, name), good)

    log.info("Fixture loaded: %s (bad=%d)", loaded, bad_total)
    return loaded


def load_fixture_file(db: Database[dict[str, Any]], path: Path) -> dict[str, int]:
    return load_fixture(db, json.loads(path.read_text(encoding="utf-8")))
