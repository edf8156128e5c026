from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from taketwo.errors import NotFoundError, ValidationError
from taketwo.models import Entry
from taketwo.services.entry_store import PATCHABLE_FIELDS, EntryRecord, ServiceLine
from taketwo.services.workflow_service import ServiceDetails


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _lines_from_json(raw: list | None) -> tuple[ServiceLine, ...]:
    return tuple(ServiceLine(name=str(item['name']), price=Decimal(str(item['price']))) for item in raw or [])


def _lines_to_json(lines) -> list[dict]:
    return [{'name': line.name, 'price': str(line.price)} for line in lines]


def to_record(row: Entry) -> EntryRecord:
    return EntryRecord(
        id=row.id,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        customer_email=row.customer_email,
        delivery_address=row.delivery_address,
        item_description=row.item_description,
        shoe_condition=row.shoe_condition,
        services=_lines_from_json(row.services),
        assigned_to=row.assigned_to,
        before_photos=tuple(row.before_photos or []),
        after_photos=tuple(row.after_photos or []),
        waiver_url=row.waiver_url,
        waiver_signed=row.waiver_signed,
        service_details=ServiceDetails.from_payload(row.service_details),
        billing=row.billing,
        additional_billing=row.additional_billing,
        delivery_option=row.delivery_option,
        status=row.status,
        marked_as=row.marked_as,
        deleted_at=_aware(row.deleted_at),
    )


def _column_value(name: str, value: Any) -> Any:
    if name == 'services':
        return _lines_to_json(value)
    if name in {'before_photos', 'after_photos'}:
        return list(value)
    if name == 'service_details':
        return value.to_payload()
    return value


class SqlEntryStore:
    """Entry persistence backed by the `entries` table.

    Flushes but never commits; the request handler owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _row(self, entry_id: str, *, deleted: bool) -> Entry:
        query = select(Entry).where(Entry.id == entry_id)
        if deleted:
            query = query.where(Entry.deleted_at.is_not(None))
        else:
            query = query.where(Entry.deleted_at.is_(None))
        row = self.db.execute(query).scalar_one_or_none()
        if row is None:
            raise NotFoundError(entry_id, 'deleted' if deleted else 'active')
        return row

    def list(self) -> list[EntryRecord]:
        rows = self.db.execute(
            select(Entry).where(Entry.deleted_at.is_(None)).order_by(Entry.created_at.asc(), Entry.id.asc())
        ).scalars().all()
        return [to_record(row) for row in rows]

    def list_deleted(self) -> list[EntryRecord]:
        rows = self.db.execute(
            select(Entry).where(Entry.deleted_at.is_not(None)).order_by(Entry.deleted_at.desc(), Entry.id.asc())
        ).scalars().all()
        return [to_record(row) for row in rows]

    def get(self, entry_id: str) -> EntryRecord:
        return to_record(self._row(entry_id, deleted=False))

    def get_deleted(self, entry_id: str) -> EntryRecord:
        return to_record(self._row(entry_id, deleted=True))

    def create(self, entry: EntryRecord) -> EntryRecord:
        exists = self.db.execute(select(Entry.id).where(Entry.id == entry.id)).scalar_one_or_none()
        if exists:
            raise ValidationError('duplicate-entry', [entry.id])
        row = Entry(id=entry.id, created_at=entry.created_at, deleted_at=entry.deleted_at)
        for name in PATCHABLE_FIELDS:
            setattr(row, name, _column_value(name, getattr(entry, name)))
        self.db.add(row)
        self.db.flush()
        return to_record(row)

    def update(self, entry_id: str, patch: dict[str, Any]) -> EntryRecord:
        row = self._row(entry_id, deleted=False)
        unknown = sorted(set(patch) - PATCHABLE_FIELDS)
        if unknown:
            raise ValidationError('invalid-edit', unknown)
        for name, value in patch.items():
            setattr(row, name, _column_value(name, value))
        self.db.flush()
        return to_record(row)

    def soft_delete(self, entry_id: str, *, deleted_at: datetime) -> None:
        row = self._row(entry_id, deleted=False)
        row.deleted_at = deleted_at
        self.db.flush()

    def restore(self, entry_id: str) -> None:
        row = self._row(entry_id, deleted=True)
        row.deleted_at = None
        self.db.flush()

    def permanent_delete(self, entry_id: str) -> None:
        self._row(entry_id, deleted=True)
        self.db.execute(delete(Entry).where(Entry.id == entry_id))
        self.db.flush()
