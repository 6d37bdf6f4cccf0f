from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from contaflow.db import COMPANIES, company_subcollection

TZ = ZoneInfo("America/Sao_Paulo")
NOW = datetime(2026, 10, 19, 10, 30, tzinfo=TZ)


@pytest.fixture
def db() -> Any:
    return mongomock.MongoClient()["contaflow_test"]


@pytest.fixture
def clock() -> Any:
    return lambda: NOW


def add_company(db: Any, company_id: str, **fields: Any) -> None:
    db[COMPANIES].insert_one({"_id": company_id, "name": f"Empresa {company_id}", **fields})


def add_sub(db: Any, company_id: str, subcollection: str, *docs: dict[str, Any]) -> None:
    company_subcollection(db, company_id, subcollection).insert_many(list(docs))


class BrokenCollection:
    """Every call raises `error` (by default: the cluster is unreachable)."""

    name = "broken"

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or ServerSelectionTimeoutError("no servers available")

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        raise self.error

    find = count_documents = aggregate = insert_one = update_one = _fail


class BrokenDb:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    def __getitem__(self, name: str) -> BrokenCollection:
        return BrokenCollection(self.error)
