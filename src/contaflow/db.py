"""MongoDB helpers: client construction, collection naming and bulk upsert.

Centralizes creation of Mongo clients, the naming scheme for per-company
subcollections, and the bulk_upsert used by the demo-data loader.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import certifi
from pymongo import MongoClient, UpdateOne
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

log = logging.getLogger(__name__)

COMPANIES = "companies"
PARTNERS = "partners"
INVOICES = "invoices"
XML_STATUS = "xmlStatus"
ACTIVITIES = "activities"
USERS = "users"

# per-company subcollections
TAX_OBLIGATIONS = "taxObligations"
CORPORATE_PROCESSES = "corporateProcesses"


def get_client(uri: str, tls: bool = True) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    Args:
        uri: MongoDB connection URI.
        tls: Connect over TLS using the certifi CA bundle.

    Returns:
        Configured MongoClient instance.
    """
    options: dict[str, Any] = {
        "serverSelectionTimeoutMS": 30000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 30000,
    }
    if tls:
        options.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **options)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient.

    Args:
        client: PyMongo MongoClient.
        db_name: Database name.

    Returns:
        A Database object.
    """
    return client[db_name]


def company_subcollection(
    db: Database[dict[str, Any]],
    company_id: str,
    name: str,
) -> Collection[dict[str, Any]]:
    """Return the `companies.<company_id>.<name>` subcollection.

    Args:
        db: Database handle.
        company_id: Company document id (the CNPJ).
        name: Subcollection name, e.g. `TAX_OBLIGATIONS`.
    """
    return db[f"{COMPANIES}.{company_id}.{name}"]


def list_company_ids(db: Database[dict[str, Any]]) -> list[str]:
    """Return every company id (unpaginated, as the dashboard expects)."""
    return [doc["_id"] for doc in db[COMPANIES].find({}, {"_id": 1})]


def bulk_upsert(
    collection: Collection[dict[str, Any]],
    docs: Iterable[dict[str, Any]],
    key_field: str = "_id",
    batch_size: int = 1000,
) -> int:
    """Bulk upsert documents using `key_field` as the selector.

    Writes in batches; a failed batch is logged and the remaining batches are
    still attempted. Documents without `key_field` are skipped.

    Args:
        collection: Target PyMongo collection.
        docs: Iterable of document dictionaries to upsert.
        key_field: Document key to use for upsert selector.
        batch_size: Number of ops per bulk_write call.

    Returns:
        Integer number of documents attempted.
    """
    ops: list[UpdateOne] = []
    attempted = 0

    def _flush() -> None:
        try:
            collection.bulk_write(ops, ordered=False)
        except PyMongoError as e:
            log.warning("bulk_upsert batch on %s failed: %s", collection.name, e)
        ops.clear()

    for d in docs:
        if key_field not in d:
            log.warning("Skipping document without %r in %s", key_field, collection.name)
            continue

        body = {k: v for k, v in d.items() if k != "_id"}
        ops.append(
            UpdateOne(
                {key_field: d[key_field]},
                {"$set": body},
                upsert=True,
            )
        )
        attempted += 1

        if len(ops) >= batch_size:
            _flush()

    if ops:
        _flush()

    return attempted
