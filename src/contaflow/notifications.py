"""Notification feed shown under the dashboard bell icon.

Sources:
- company A1 certificates and partner e-CPFs, expired or expiring within 60 days
- tax obligations overdue, or pending and due within the next 15 days
- corporate processes blocked on a registry requirement (`Em Exigência`)

Obligations and processes are read per company through the bounded fan-out.
A company whose subcollection cannot be read is logged and skipped so one
bad read does not blank the whole feed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from typing import Any

from pydantic import ValidationError
from pymongo.database import Database
from bson.errors import BSONError
from pymongo.errors import PyMongoError

from contaflow.aggregate.certificates import days_left, iter_validities
from contaflow.aggregate.fanout import CancelScope, fan_out
from contaflow.aggregate.runner import Aggregator
from contaflow.db import (
    COMPANIES,
    CORPORATE_PROCESSES,
    PARTNERS,
    TAX_OBLIGATIONS,
    company_subcollection,
)
from contaflow.models import (
    Company,
    CorporateProcess,
    Notification,
    NotificationType,
    Obligation,
    ObligationStatus,
    Partner,
    ProcessStatus,
    Severity,
    validation_context,
)

log = logging.getLogger(__name__)

CERTIFICATE_NOTICE_DAYS = 60
CERTIFICATE_HIGH_DAYS = 30
OBLIGATION_DUE_DAYS = 15


@dataclass(frozen=True)
class _CertificateSource:
    collection: str
    model: type[Company] | type[Partner]
    field: str
    attr: str
    id_prefix: str
    expired_title: str
    expiring_title: str
    subject: str
    link: str


CERTIFICATE_SOURCES = (
    _CertificateSource(
        COMPANIES, Company, "certificateA1Validity", "certificate_a1_validity",
        "cert", "Certificado Vencido", "Certificado a Vencer",
        "O certificado A1 da empresa", "/empresas",
    ),
    _CertificateSource(
        PARTNERS, Partner, "ecpfValidity", "ecpf_validity",
        "ecpf", "e-CPF Vencido", "e-CPF a Vencer",
        "O e-CPF do sócio", "/societario",
    ),
)


def certificate_notifications(
    db: Database[dict[str, Any]],
    today: date,
    tz: tzinfo | None = None,
) -> list[Notification]:
    """Expired and soon-to-expire certificates for companies and partners."""
    out: list[Notification] = []
    for src in CERTIFICATE_SOURCES:
        for record, validity in iter_validities(
            db, src.collection, src.model, src.field, src.attr, extra_fields=("name",), tz=tz,
        ):
            left = days_left(validity, today)
            if left < 0:
                out.append(Notification(
                    id=f"{src.id_prefix}-expired-{record.id}",
                    type=NotificationType.CERTIFICATE_EXPIRED,
                    title=src.expired_title,
                    message=f"{src.subject} {record.name} venceu.",
                    when=validity,
                    link=src.link,
                    severity=Severity.CRITICAL,
                ))
            elif left <= CERTIFICATE_NOTICE_DAYS:
                out.append(Notification(
                    id=f"{src.id_prefix}-expiring-{record.id}",
                    type=NotificationType.CERTIFICATE_EXPIRING,
                    title=src.expiring_title,
                    message=f"{src.subject} {record.name} vencerá em {left + 1} dias.",
                    when=validity,
                    link=src.link,
                    severity=Severity.HIGH if left <= CERTIFICATE_HIGH_DAYS else Severity.MEDIUM,
                ))
    return out


def obligation_notification(obligation: Obligation, company_name: str | None, today: date) -> Notification | None:
    """Classify one obligation as overdue, due soon, or not worth a notice."""
    due = obligation.due_date
    if due is None:
        return None

    status = obligation.status
    name = obligation.company_name or company_name
    overdue = status == ObligationStatus.OVERDUE.value or (
        status == ObligationStatus.PENDING.value and due < today
    )
    if overdue:
        return Notification(
            id=f"ob-overdue-{obligation.id}",
            type=NotificationType.OBLIGATION_OVERDUE,
            title="Obrigação Atrasada",
            message=f"{obligation.name} da empresa {name}.",
            when=due,
            link="/obrigacoes",
            severity=Severity.HIGH,
        )
    if status == ObligationStatus.PENDING.value and due < today + timedelta(days=OBLIGATION_DUE_DAYS):
        return Notification(
            id=f"ob-due-{obligation.id}",
            type=NotificationType.OBLIGATION_DUE,
            title="Obrigação a Vencer",
            message=f"{obligation.name} da empresa {name}.",
            when=due,
            link="/obrigacoes",
            severity=Severity.MEDIUM,
        )
    return None


def process_notification(process: CorporateProcess, company_name: str | None, today: date) -> Notification | None:
    if process.status != ProcessStatus.ON_HOLD.value:
        return None
    return Notification(
        id=f"proc-status-{process.id}",
        type=NotificationType.PROCESS_STATUS_CHANGE,
        title="Processo em Exigência",
        message=f"{process.process_type} da empresa {process.company_name or company_name}.",
        when=process.start_date or today,
        link="/processos",
        severity=Severity.HIGH,
    )


def _company_notifications(
    db: Database[dict[str, Any]],
    company_id: str,
    company_name: str | None,
    today: date,
    tz: tzinfo | None = None,
) -> list[Notification]:
    out: list[Notification] = []
    context = validation_context(tz)
    try:
        obligations = list(company_subcollection(db, company_id, TAX_OBLIGATIONS).find({}))
        processes = list(company_subcollection(db, company_id, CORPORATE_PROCESSES).find({}))
    except (PyMongoError, BSONError) as exc:
        log.error("Failed to fetch obligations/processes for company %s: %s", company_id, exc)
        return out

    for doc in obligations:
        try:
            n = obligation_notification(Obligation.model_validate(doc, context=context), company_name, today)
        except ValidationError:
            log.warning("Skipping malformed obligation %s of company %s", doc.get("_id"), company_id)
            continue
        if n is not None:
            out.append(n)

    for doc in processes:
        try:
            n = process_notification(CorporateProcess.model_validate(doc, context=context), company_name, today)
        except ValidationError:
            log.warning("Skipping malformed process %s of company %s", doc.get("_id"), company_id)
            continue
        if n is not None:
            out.append(n)
    return out


def build_notifications(
    db: Database[dict[str, Any]],
    today: date,
    max_workers: int,
    scope: CancelScope | None = None,
    tz: tzinfo | None = None,
) -> list[Notification]:
    """Build the full feed, newest date first.

    Stored instants are read as calendar days in `tz` (the office default
    when omitted).

    Raises:
        PyMongoError: if the companies or partners collections cannot be read.
        BSONError: if a company or partner document cannot be decoded.
    """
    scope = scope or CancelScope()
    notifications = certificate_notifications(db, today, tz)
    scope.raise_if_cancelled()

    companies = {doc["_id"]: doc.get("name") for doc in db[COMPANIES].find({}, {"name": 1})}

    def _for_company(company_id: str) -> list[Notification]:
        return _company_notifications(db, company_id, companies[company_id], today, tz)

    for batch in fan_out(_for_company, list(companies), max_workers=max_workers, scope=scope):
        notifications.extend(batch)

    notifications.sort(key=lambda n: n.when, reverse=True)
    return notifications


class NotificationsFeed(Aggregator):
    """The notification feed as an aggregator (value: list of notifications)."""

    name = "notifications"

    def initial(self) -> list[Notification]:
        return []

    def reduce(self, db: Database[dict[str, Any]], scope: CancelScope) -> list[Notification]:
        return build_notifications(
            db, self.today(), max_workers=self.max_workers, scope=scope, tz=self.timezone
        )
