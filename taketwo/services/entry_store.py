from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from taketwo.models import DeliveryOption, EntryStatus, MarkedAs
from taketwo.services.workflow_service import ServiceDetails


@dataclass(frozen=True)
class ServiceLine:
    name: str
    price: Decimal


@dataclass(frozen=True)
class Active:
    status: EntryStatus


@dataclass(frozen=True)
class Deleted:
    prior_status: EntryStatus
    deleted_at: datetime


Lifecycle = Active | Deleted


@dataclass(frozen=True)
class EntryDraft:
    customer_name: str = ''
    customer_phone: str = ''
    customer_email: str = ''
    delivery_address: str = ''
    item_description: str = ''
    shoe_condition: str = ''
    services: tuple[ServiceLine, ...] = ()
    assigned_to: str | None = None
    before_photos: tuple[str, ...] = ()
    waiver_url: str | None = None
    waiver_signed: bool = False

    @property
    def intake_total(self) -> Decimal:
        return sum((line.price for line in self.services), Decimal('0'))


@dataclass(frozen=True)
class EntryRecord:
    id: str
    created_at: datetime
    updated_at: datetime
    customer_name: str = ''
    customer_phone: str = ''
    customer_email: str = ''
    delivery_address: str = ''
    item_description: str = ''
    shoe_condition: str = ''
    services: tuple[ServiceLine, ...] = ()
    assigned_to: str | None = None
    before_photos: tuple[str, ...] = ()
    after_photos: tuple[str, ...] = ()
    waiver_url: str | None = None
    waiver_signed: bool = False
    service_details: ServiceDetails = field(default_factory=ServiceDetails)
    billing: Decimal | None = None
    additional_billing: Decimal | None = None
    delivery_option: DeliveryOption | None = None
    status: EntryStatus = EntryStatus.PENDING
    marked_as: MarkedAs | None = None
    deleted_at: datetime | None = None

    @property
    def lifecycle(self) -> Lifecycle:
        if self.deleted_at is not None:
            return Deleted(prior_status=self.status, deleted_at=self.deleted_at)
        return Active(status=self.status)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# Fields a patch may carry; identity, creation time and the deleted marker are never patched.
PATCHABLE_FIELDS = frozenset(
    name for name in EntryRecord.__dataclass_fields__ if name not in {'id', 'created_at', 'deleted_at'}
)


class EntryStore(Protocol):
    def list(self) -> list[EntryRecord]: ...

    def list_deleted(self) -> list[EntryRecord]: ...

    def get(self, entry_id: str) -> EntryRecord: ...

    def get_deleted(self, entry_id: str) -> EntryRecord: ...

    def create(self, entry: EntryRecord) -> EntryRecord: ...

    def update(self, entry_id: str, patch: dict[str, Any]) -> EntryRecord: ...

    def soft_delete(self, entry_id: str, *, deleted_at: datetime) -> None: ...

    def restore(self, entry_id: str) -> None: ...

    def permanent_delete(self, entry_id: str) -> None: ...
