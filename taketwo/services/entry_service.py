from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from taketwo.errors import ValidationError
from taketwo.models import STATUS_ORDER, DeliveryOption, EntryStatus
from taketwo.services.entry_store import EntryDraft, EntryRecord, EntryStore
from taketwo.services.workflow_service import (
    ReleaseForm,
    ServiceDetails,
    finalize_release,
    outstanding_service_steps,
    release_form_violations,
)

logger = logging.getLogger(__name__)

INVALID_INTAKE = 'invalid-intake'
INVALID_TRANSITION = 'invalid-transition'
INVALID_EDIT = 'invalid-edit'

EDITABLE_FIELDS = frozenset(
    {
        'customer_name',
        'customer_phone',
        'customer_email',
        'delivery_address',
        'item_description',
        'shoe_condition',
        'services',
        'assigned_to',
        'before_photos',
        'after_photos',
        'waiver_url',
        'waiver_signed',
        'billing',
        'additional_billing',
        'delivery_option',
        'marked_as',
    }
)

# Columns that cannot be cleared through an edit.
REQUIRED_FIELDS = frozenset(
    {
        'customer_name',
        'customer_phone',
        'customer_email',
        'delivery_address',
        'item_description',
        'shoe_condition',
        'services',
        'before_photos',
        'after_photos',
        'waiver_signed',
    }
)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def total_amount(entry: EntryRecord) -> Decimal:
    return (entry.billing or Decimal('0')) + (entry.additional_billing or Decimal('0'))


def intake_violations(draft: EntryDraft) -> list[str]:
    violations: list[str] = []
    if not draft.customer_phone.strip():
        violations.append('missing-phone')
    if not draft.delivery_address.strip():
        violations.append('missing-delivery-address')
    if not draft.services:
        violations.append('missing-service')
    if draft.intake_total <= 0:
        violations.append('non-positive-total')
    if not draft.before_photos:
        violations.append('missing-before-photo')
    return violations


def _edit_violations(current: EntryRecord, patch: dict[str, Any]) -> list[str]:
    violations: list[str] = []
    for name in sorted(REQUIRED_FIELDS & set(patch)):
        if patch[name] is None:
            violations.append(f'null-{name.replace("_", "-")}')
    delivery_option = patch.get('delivery_option', current.delivery_option)
    delivery_address = patch.get('delivery_address', current.delivery_address)
    if delivery_option == DeliveryOption.DELIVERY and not (delivery_address or '').strip():
        violations.append('missing-delivery-address')
    if 'after_photos' in patch and not patch['after_photos'] and current.status != EntryStatus.PENDING:
        violations.append('missing-after-photo')
    for name in ('billing', 'additional_billing'):
        value = patch.get(name)
        if value is not None and value < 0:
            violations.append(f'negative-{name.replace("_", "-")}')
    return violations


class EntryLifecycleManager:
    """Status transitions, soft delete / restore and billing for entries.

    Every mutation goes through the store and refreshes `updated_at`; the
    store is the source of truth and the last writer wins.
    """

    def __init__(
        self,
        store: EntryStore,
        *,
        soft_delete_statuses: Iterable[EntryStatus | str] = STATUS_ORDER,
        clock: Callable[[], datetime] = _now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self.store = store
        self.soft_delete_statuses = frozenset(EntryStatus(value) for value in soft_delete_statuses)
        self.clock = clock
        self.id_factory = id_factory

    # Reads

    def get(self, entry_id: str) -> EntryRecord:
        return self.store.get(entry_id)

    def list_active(self, status: EntryStatus | None = None) -> list[EntryRecord]:
        entries = self.store.list()
        if status is None:
            return entries
        return [entry for entry in entries if entry.status == status]

    def list_deleted(self) -> list[EntryRecord]:
        return self.store.list_deleted()

    # Transitions

    def create(self, draft: EntryDraft, *, actor: str | None = None) -> EntryRecord:
        violations = intake_violations(draft)
        if violations:
            raise ValidationError(INVALID_INTAKE, violations)

        now = self.clock()
        entry = EntryRecord(
            id=self.id_factory(),
            created_at=now,
            updated_at=now,
            customer_name=draft.customer_name.strip(),
            customer_phone=draft.customer_phone.strip(),
            customer_email=draft.customer_email.strip(),
            delivery_address=draft.delivery_address.strip(),
            item_description=draft.item_description.strip(),
            shoe_condition=draft.shoe_condition.strip(),
            services=tuple(draft.services),
            assigned_to=draft.assigned_to.strip() if draft.assigned_to and draft.assigned_to.strip() else None,
            before_photos=tuple(draft.before_photos),
            waiver_url=draft.waiver_url,
            waiver_signed=bool(draft.waiver_signed or draft.waiver_url),
            billing=draft.intake_total,
            status=EntryStatus.PENDING,
        )
        created = self.store.create(entry)
        logger.info('Entry %s created by %s', created.id, actor or 'unknown')
        return created

    def release(self, entry_id: str, details: ServiceDetails, form: ReleaseForm) -> EntryRecord:
        current = self.store.get(entry_id)
        if current.status != EntryStatus.PENDING:
            raise ValidationError(INVALID_TRANSITION, [f'release-from-{current.status.value}'])
        patch = finalize_release(details, form)
        patch['updated_at'] = self.clock()
        released = self.store.update(entry_id, patch)
        logger.info('Entry %s released to %s', entry_id, released.status.value)
        return released

    def mark_done(self, entry_id: str) -> EntryRecord:
        current = self.store.get(entry_id)
        if current.status != EntryStatus.SUBSTANTIAL_COMPLETION:
            raise ValidationError(INVALID_TRANSITION, [f'complete-from-{current.status.value}'])
        return self.store.update(entry_id, {'status': EntryStatus.COMPLETED, 'updated_at': self.clock()})

    def edit(self, entry_id: str, patch: dict[str, Any]) -> EntryRecord:
        current = self.store.get(entry_id)
        not_editable = sorted(set(patch) - EDITABLE_FIELDS)
        if not_editable:
            raise ValidationError(INVALID_EDIT, not_editable)
        violations = _edit_violations(current, patch)
        if violations:
            raise ValidationError(INVALID_EDIT, violations)
        return self.store.update(entry_id, {**patch, 'updated_at': self.clock()})

    def update(self, entry_id: str, patch: dict[str, Any]) -> EntryRecord:
        """Apply a raw persistence patch, routing any status change through the transition rules.

        This is what the PATCH endpoint accepts from remote clients whose own
        lifecycle manager already produced the patch.
        """
        patch = {name: value for name, value in patch.items() if name != 'updated_at'}
        target = patch.pop('status', None)
        current = self.store.get(entry_id)
        if target is None or EntryStatus(target) == current.status:
            return self.edit(entry_id, patch)

        target = EntryStatus(target)
        if target == EntryStatus.SUBSTANTIAL_COMPLETION:
            details = patch.pop('service_details', current.service_details)
            form = ReleaseForm(
                after_photos=list(patch.pop('after_photos', current.after_photos)),
                additional_billing=patch.pop('additional_billing', current.additional_billing),
                delivery_option=patch.pop('delivery_option', current.delivery_option),
                delivery_address=patch.pop('delivery_address', current.delivery_address),
            )
            if patch:
                raise ValidationError(INVALID_EDIT, sorted(patch))
            return self.release(entry_id, details, form)
        if target == EntryStatus.COMPLETED:
            if patch:
                raise ValidationError(INVALID_EDIT, sorted(patch))
            return self.mark_done(entry_id)
        raise ValidationError(INVALID_TRANSITION, [f'{current.status.value}-to-{target.value}'])

    def soft_delete(self, entry_id: str) -> None:
        current = self.store.get(entry_id)
        if current.status not in self.soft_delete_statuses:
            raise ValidationError(INVALID_TRANSITION, [f'soft-delete-from-{current.status.value}'])
        self.store.soft_delete(entry_id, deleted_at=self.clock())
        logger.info('Entry %s moved to deleted (status %s kept)', entry_id, current.status.value)

    def restore(self, entry_id: str) -> EntryRecord:
        self.store.get_deleted(entry_id)
        self.store.restore(entry_id)
        logger.info('Entry %s restored', entry_id)
        return self.store.get(entry_id)

    def permanent_delete(self, entry_id: str) -> None:
        self.store.get_deleted(entry_id)
        self.store.permanent_delete(entry_id)
        logger.warning('Entry %s permanently deleted', entry_id)


def release_check(details: ServiceDetails, form: ReleaseForm | None = None) -> dict[str, list[str]]:
    """Everything still blocking a release, without raising."""
    return {
        'service_steps': outstanding_service_steps(details),
        'release_fields': release_form_violations(form) if form is not None else [],
    }
