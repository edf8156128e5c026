"""Pydantic v2 schemas for the entries API.

Field names follow the camelCase wire format used by the dashboard
(`customerName`, `afterPhotos`, ...); Python code reads them by attribute name.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from taketwo.models import Answer, DeliveryOption, EntryStatus, MarkedAs, ReceivedBy, ServiceType
from taketwo.services.entry_store import EntryDraft, EntryRecord, ServiceLine
from taketwo.services.entry_service import total_amount
from taketwo.services.report_service import ReportSummary
from taketwo.services.workflow_service import ReleaseForm, ServiceDetails

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used='json')]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ServiceLinePayload(WireModel):
    name: str
    price: Money = Field(ge=0)


class ServiceDetailsPayload(WireModel):
    received_by: ReceivedBy | None = None
    is_shoe_clean: Answer | None = None
    service_type: ServiceType | None = None
    basic_cleaning: Answer | None = None
    needs_reglue: bool = False
    needs_paint: bool = False
    qc_passed: bool = False

    @field_validator('received_by', 'is_shoe_clean', 'service_type', 'basic_cleaning', mode='before')
    @classmethod
    def blank_is_unset(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_details(self) -> ServiceDetails:
        return ServiceDetails(
            received_by=self.received_by,
            is_shoe_clean=self.is_shoe_clean,
            service_type=self.service_type,
            basic_cleaning=self.basic_cleaning,
            needs_reglue=self.needs_reglue,
            needs_paint=self.needs_paint,
            qc_passed=self.qc_passed,
        )

    @classmethod
    def from_details(cls, details: ServiceDetails) -> ServiceDetailsPayload:
        return cls.model_validate(details.to_payload())


def _lines(payloads: list[ServiceLinePayload]) -> tuple[ServiceLine, ...]:
    return tuple(ServiceLine(name=line.name, price=line.price) for line in payloads)


def _line_payloads(lines) -> list[ServiceLinePayload]:
    return [ServiceLinePayload(name=line.name, price=line.price) for line in lines]


class EntryCreate(WireModel):
    customer_name: str = ''
    customer_phone: str = ''
    customer_email: str = ''
    delivery_address: str = ''
    item_description: str = ''
    shoe_condition: str = ''
    services: list[ServiceLinePayload] = Field(default_factory=list)
    assigned_to: str | None = None
    before_photos: list[str] = Field(default_factory=list)
    waiver_url: str | None = None
    waiver_signed: bool = False

    def to_draft(self) -> EntryDraft:
        return EntryDraft(
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            customer_email=self.customer_email,
            delivery_address=self.delivery_address,
            item_description=self.item_description,
            shoe_condition=self.shoe_condition,
            services=_lines(self.services),
            assigned_to=self.assigned_to,
            before_photos=tuple(self.before_photos),
            waiver_url=self.waiver_url,
            waiver_signed=self.waiver_signed,
        )

    @classmethod
    def from_record(cls, entry: EntryRecord) -> EntryCreate:
        return cls(
            customer_name=entry.customer_name,
            customer_phone=entry.customer_phone,
            customer_email=entry.customer_email,
            delivery_address=entry.delivery_address,
            item_description=entry.item_description,
            shoe_condition=entry.shoe_condition,
            services=_line_payloads(entry.services),
            assigned_to=entry.assigned_to,
            before_photos=list(entry.before_photos),
            waiver_url=entry.waiver_url,
            waiver_signed=entry.waiver_signed,
        )


class EntryUpdate(WireModel):
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    delivery_address: str | None = None
    item_description: str | None = None
    shoe_condition: str | None = None
    services: list[ServiceLinePayload] | None = None
    assigned_to: str | None = None
    before_photos: list[str] | None = None
    after_photos: list[str] | None = None
    waiver_url: str | None = None
    waiver_signed: bool | None = None
    service_details: ServiceDetailsPayload | None = None
    billing: Money | None = None
    additional_billing: Money | None = None
    delivery_option: DeliveryOption | None = None
    marked_as: MarkedAs | None = None
    status: EntryStatus | None = None

    @field_validator('delivery_option', 'marked_as', mode='before')
    @classmethod
    def blank_is_unset(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_patch(self) -> dict[str, Any]:
        patch: dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if name == 'services':
                value = _lines(value) if value is not None else None
            elif name in {'before_photos', 'after_photos'}:
                value = tuple(value) if value is not None else None
            elif name == 'service_details':
                value = value.to_details() if value is not None else ServiceDetails()
            patch[name] = value
        return patch

    @classmethod
    def from_patch(cls, patch: dict[str, Any]) -> EntryUpdate:
        values: dict[str, Any] = {}
        for name, value in patch.items():
            if name == 'updated_at':
                continue
            if name == 'services':
                value = _line_payloads(value)
            elif name in {'before_photos', 'after_photos'}:
                value = list(value)
            elif name == 'service_details':
                value = ServiceDetailsPayload.from_details(value)
            values[name] = value
        return cls(**values)


class ReleaseRequest(WireModel):
    service_details: ServiceDetailsPayload
    after_photos: list[str] = Field(default_factory=list)
    additional_billing: Money | None = None
    delivery_option: DeliveryOption | None = None
    delivery_address: str = ''

    @field_validator('delivery_option', 'additional_billing', mode='before')
    @classmethod
    def blank_is_unset(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_form(self) -> ReleaseForm:
        return ReleaseForm(
            after_photos=list(self.after_photos),
            additional_billing=self.additional_billing,
            delivery_option=self.delivery_option,
            delivery_address=self.delivery_address,
        )


class ReleaseCheckResponse(WireModel):
    eligible: bool
    outstanding_steps: list[str]
    visible_questions: list[str]


class EntryOut(WireModel):
    id: str
    customer_name: str
    customer_phone: str
    customer_email: str
    delivery_address: str
    item_description: str
    shoe_condition: str
    services: list[ServiceLinePayload]
    assigned_to: str | None = None
    before_photos: list[str]
    after_photos: list[str]
    waiver_url: str | None = None
    waiver_signed: bool
    service_details: ServiceDetailsPayload
    billing: Money | None = None
    additional_billing: Money | None = None
    total_amount: Money
    delivery_option: DeliveryOption | None = None
    status: EntryStatus
    marked_as: MarkedAs | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @classmethod
    def from_record(cls, entry: EntryRecord) -> EntryOut:
        return cls(
            id=entry.id,
            customer_name=entry.customer_name,
            customer_phone=entry.customer_phone,
            customer_email=entry.customer_email,
            delivery_address=entry.delivery_address,
            item_description=entry.item_description,
            shoe_condition=entry.shoe_condition,
            services=_line_payloads(entry.services),
            assigned_to=entry.assigned_to,
            before_photos=list(entry.before_photos),
            after_photos=list(entry.after_photos),
            waiver_url=entry.waiver_url,
            waiver_signed=entry.waiver_signed,
            service_details=ServiceDetailsPayload.from_details(entry.service_details),
            billing=entry.billing,
            additional_billing=entry.additional_billing,
            total_amount=total_amount(entry),
            delivery_option=entry.delivery_option,
            status=entry.status,
            marked_as=entry.marked_as,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            deleted_at=entry.deleted_at,
        )

    def to_record(self) -> EntryRecord:
        return EntryRecord(
            id=self.id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            customer_email=self.customer_email,
            delivery_address=self.delivery_address,
            item_description=self.item_description,
            shoe_condition=self.shoe_condition,
            services=_lines(self.services),
            assigned_to=self.assigned_to,
            before_photos=tuple(self.before_photos),
            after_photos=tuple(self.after_photos),
            waiver_url=self.waiver_url,
            waiver_signed=self.waiver_signed,
            service_details=self.service_details.to_details(),
            billing=self.billing,
            additional_billing=self.additional_billing,
            delivery_option=self.delivery_option,
            status=self.status,
            marked_as=self.marked_as,
            deleted_at=self.deleted_at,
        )


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'


class MeResponse(BaseModel):
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class UploadResponse(BaseModel):
    url: str


class LocationRevenueOut(WireModel):
    location: ReceivedBy
    total_entries: int
    total_revenue: Money
    daily_average: Money


class ReportSummaryOut(WireModel):
    total_entries: int
    status_counts: dict[str, int]
    total_revenue: Money
    average_billing: Money
    locations: list[LocationRevenueOut]
    service_counts: dict[str, int]

    @classmethod
    def from_summary(cls, summary: ReportSummary) -> ReportSummaryOut:
        return cls(
            total_entries=summary.total_entries,
            status_counts=summary.status_counts,
            total_revenue=summary.total_revenue,
            average_billing=summary.average_billing,
            locations=[
                LocationRevenueOut(
                    location=row.location,
                    total_entries=row.total_entries,
                    total_revenue=row.total_revenue,
                    daily_average=row.daily_average,
                )
                for row in summary.locations
            ],
            service_counts=summary.service_counts,
        )


class AuditEntryOut(WireModel):
    action: str
    actor_principal_id: int | None = None
    ip: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
