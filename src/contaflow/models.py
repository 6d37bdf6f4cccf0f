"""Pydantic models for the records the aggregators read.

The office's documents use camelCase field names and carry many fields the
dashboard never looks at; models therefore ignore unknown fields and only
declare what the aggregators, the notification feed and the activity log use.
Dates arrive either as BSON datetimes or as ISO strings and are normalized
to `date` before validation; instants are mapped to their calendar day in
the office timezone (see `validation_context`).
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any
from zoneinfo import ZoneInfo

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
)

from contaflow.config import DEFAULT_TIMEZONE


class ObligationStatus(str, Enum):
    PENDING = "Pendente"
    IN_PROGRESS = "Em Andamento"
    DELIVERED = "Entregue"
    OVERDUE = "Atrasada"


class ProcessStatus(str, Enum):
    AWAITING_DOCUMENTS = "Aguardando Documentação"
    UNDER_REVIEW = "Em Análise"
    FILLING_IN = "Em Preenchimento"
    FILED = "Protocolado"
    EXTERNAL = "Em Andamento Externo"
    AWAITING_CLIENT = "Aguardando Cliente"
    AWAITING_AGENCY = "Aguardando Órgão"
    ON_HOLD = "Em Exigência"
    COMPLETED = "Concluído"
    CANCELLED = "Cancelado"


class InvoiceStatus(str, Enum):
    PENDING = "Pendente"
    PAID = "Paga"
    OVERDUE = "Atrasada"
    CANCELLED = "Cancelada"


class XmlSubmissionStatus(str, Enum):
    PENDING = "Pendente"
    AWAITING_RESEND = "Aguardando Reenvio"
    SENT = "Enviado"


ACTIVE_COMPANY_STATUS = "ATIVA"

PENDING_OBLIGATION_STATUSES = (ObligationStatus.PENDING, ObligationStatus.OVERDUE)

ACTIVE_PROCESS_STATUSES = (
    ProcessStatus.AWAITING_DOCUMENTS,
    ProcessStatus.UNDER_REVIEW,
    ProcessStatus.ON_HOLD,
)


_DATETIME = TypeAdapter(datetime)


def validation_context(tz: tzinfo | None) -> dict[str, Any]:
    """Context passed to `model_validate` so datetimes land on the office's calendar day."""
    return {"timezone": tz}


def _local_day(value: datetime, tz: tzinfo) -> date:
    # BSON datetimes come back naive and in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).date()


def _to_date(value: Any, info: ValidationInfo) -> Any:
    """Normalize BSON datetimes and ISO strings to `date`; blanks become None.

    Date-only strings are taken as calendar dates. Anything carrying a time of
    day is read as an instant (UTC when no offset is given) and mapped to its
    day in the timezone found in the validation context, or the office default.
    """
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    tz = (info.context or {}).get("timezone") or ZoneInfo(DEFAULT_TIMEZONE)
    if isinstance(value, datetime):
        return _local_day(value, tz)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            if text[4:5] != "-":
                raise ValueError(text)
            return _local_day(_DATETIME.validate_python(text), tz)
        except (ValueError, ValidationError):
            raise ValueError(f"invalid ISO date: {value!r}") from None
    return value


def _to_decimal(value: Any) -> Any:
    # floats go through str() so 0.1 stays 0.1
    if isinstance(value, float):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"invalid amount: {value!r}") from None
    return value


# ObjectId ids from Mongo are rendered as their hex string
RecordId = Annotated[str, BeforeValidator(str)]
LenientDate = Annotated[date | None, BeforeValidator(_to_date)]
Amount = Annotated[Decimal, BeforeValidator(_to_decimal)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)
    id: RecordId = Field(..., alias="_id")


class Company(_Record):
    """Client company; the document id is the CNPJ.

    Attributes:
        name: Legal name (razão social).
        cnpj: Tax-registration number.
        status: Registration status as reported by the registry ("ATIVA" ...).
        certificate_a1_validity: Expiry of the company's A1 digital certificate.
        receives_xml: Whether the office tracks monthly XML/DAS submissions.
    """
    name: str | None = None
    cnpj: str | None = None
    status: str | None = None
    certificate_a1_validity: LenientDate = Field(None, alias="certificateA1Validity")
    receives_xml: bool = Field(False, alias="receivesXml")


class Partner(_Record):
    """Company member holding an e-CPF certificate."""
    name: str | None = None
    ecpf_validity: LenientDate = Field(None, alias="ecpfValidity")


class Obligation(_Record):
    """Recurring tax filing tracked in `companies.<id>.taxObligations`."""
    name: str | None = Field(None, validation_alias=AliasChoices("type", "nome", "name"))
    status: str | None = None
    due_date: LenientDate = Field(None, validation_alias=AliasChoices("dueDate", "dataVencimento"))
    responsible_user_id: str | None = Field(None, alias="responsibleUserId")
    company_name: str | None = Field(None, alias="companyName")


class CorporateProcess(_Record):
    """Registration-office workflow tracked in `companies.<id>.corporateProcesses`."""
    process_type: str | None = Field(None, alias="processType")
    status: str | None = None
    stage: str | None = None
    responsible_user_id: str | None = Field(None, alias="responsibleUserId")
    start_date: LenientDate = Field(None, alias="startDate")
    company_name: str | None = Field(None, alias="companyName")


class Invoice(_Record):
    """Office fee invoice for one reference period (`YYYY-MM`)."""
    company_id: str | None = Field(None, alias="companyId")
    reference_period: str = Field(..., alias="referencePeriod")
    amount: Amount = Decimal("0")
    status: str | None = None


class XmlStatus(_Record):
    """Monthly XML/DAS submission flag; id is `<companyId>_<month>_<year>`."""
    company_id: str = Field(..., alias="companyId")
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    status: XmlSubmissionStatus


class Activity(BaseModel):
    """Append-only audit entry written to `activities`."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    description: str = Field(..., min_length=1)
    user_id: str = Field(..., alias="userId")
    user_name: str = Field("Usuário Anônimo", alias="userName")
    timestamp: datetime
    related_entity_type: str | None = Field(None, alias="relatedEntityType")
    related_entity_id: str | None = Field(None, alias="relatedEntityId")


class NotificationType(str, Enum):
    CERTIFICATE_EXPIRING = "certificate_expiring"
    CERTIFICATE_EXPIRED = "certificate_expired"
    OBLIGATION_DUE = "obligation_due"
    OBLIGATION_OVERDUE = "obligation_overdue"
    PROCESS_STATUS_CHANGE = "process_status_change"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Notification(BaseModel):
    """One entry of the dashboard notification feed."""
    model_config = ConfigDict(extra="forbid")
    id: str
    type: NotificationType
    title: str
    message: str
    when: date
    link: str
    severity: Severity
