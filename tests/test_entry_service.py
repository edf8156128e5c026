from __future__ import annotations

import itertools
import unittest
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from taketwo.errors import NotFoundError, ValidationError
from taketwo.models import Answer, DeliveryOption, EntryStatus, MarkedAs, ReceivedBy
from taketwo.services.entry_service import (
    INVALID_EDIT,
    INVALID_INTAKE,
    INVALID_TRANSITION,
    EntryLifecycleManager,
    release_check,
    total_amount,
)
from taketwo.services.entry_store import Active, Deleted, EntryDraft, EntryRecord, ServiceLine
from taketwo.services.memory_entry_store import MemoryEntryStore
from taketwo.services.workflow_service import ReleaseForm, ServiceDetails

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

PASSING = ServiceDetails(received_by=ReceivedBy.TAKETWO, is_shoe_clean=Answer.YES, qc_passed=True)


def _draft(**overrides) -> EntryDraft:
    values = dict(
        customer_name='Ana Cruz',
        customer_phone='09171234567',
        delivery_address='123 St',
        services=(ServiceLine(name='Deep Clean', price=Decimal('500')),),
        before_photos=('before.jpg',),
    )
    values.update(overrides)
    return EntryDraft(**values)


class _Clock:
    def __init__(self) -> None:
        self.now = START

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(minutes=1)
        return self.now


def _ids():
    counter = itertools.count(1)
    return lambda: f'entry-{next(counter)}'


class EntryLifecycleManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryEntryStore()
        self.clock = _Clock()
        self.manager = EntryLifecycleManager(self.store, clock=self.clock, id_factory=_ids())

    def _released(self) -> EntryRecord:
        entry = self.manager.create(_draft())
        form = ReleaseForm(after_photos=['after.jpg'], delivery_option=DeliveryOption.PICKUP)
        return self.manager.release(entry.id, PASSING, form)

    def test_create_sets_pending_and_intake_billing(self) -> None:
        entry = self.manager.create(
            _draft(
                services=(
                    ServiceLine(name='Restoration', price=Decimal('800')),
                    ServiceLine(name='Reglue', price=Decimal('200')),
                ),
            )
        )
        self.assertEqual(entry.id, 'entry-1')
        self.assertEqual(entry.status, EntryStatus.PENDING)
        self.assertEqual(entry.billing, Decimal('1000'))
        self.assertEqual(entry.created_at, entry.updated_at)
        self.assertEqual(entry.lifecycle, Active(status=EntryStatus.PENDING))

    def test_create_reports_only_missing_phone(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.manager.create(_draft(customer_phone=''))
        self.assertEqual(ctx.exception.kind, INVALID_INTAKE)
        self.assertEqual(ctx.exception.violations, ['missing-phone'])
        self.assertEqual(self.store.list(), [])

    def test_create_reports_every_intake_problem(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.manager.create(EntryDraft())
        self.assertEqual(
            ctx.exception.violations,
            ['missing-phone', 'missing-delivery-address', 'missing-service', 'non-positive-total', 'missing-before-photo'],
        )

    def test_zero_priced_services_are_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.manager.create(_draft(services=(ServiceLine(name='Free Check', price=Decimal('0')),)))
        self.assertEqual(ctx.exception.violations, ['non-positive-total'])

    def test_waiver_url_marks_waiver_signed(self) -> None:
        entry = self.manager.create(_draft(waiver_url='/uploads/waiver/w.pdf'))
        self.assertTrue(entry.waiver_signed)

    def test_release_moves_to_substantial_completion(self) -> None:
        entry = self.manager.create(_draft())
        form = ReleaseForm(
            after_photos=['after.jpg'],
            additional_billing=Decimal('150'),
            delivery_option=DeliveryOption.DELIVERY,
            delivery_address='9 Rizal Ave',
        )
        released = self.manager.release(entry.id, PASSING, form)
        self.assertEqual(released.status, EntryStatus.SUBSTANTIAL_COMPLETION)
        self.assertEqual(released.after_photos, ('after.jpg',))
        self.assertEqual(released.service_details, PASSING)
        self.assertEqual(released.delivery_address, '9 Rizal Ave')
        self.assertEqual(total_amount(released), Decimal('650'))
        self.assertGreater(released.updated_at, entry.updated_at)

    def test_release_failure_leaves_entry_unchanged(self) -> None:
        entry = self.manager.create(_draft())
        with self.assertRaises(ValidationError):
            self.manager.release(entry.id, replace(PASSING, qc_passed=False), ReleaseForm())
        self.assertEqual(self.manager.get(entry.id), entry)

    def test_release_only_from_pending(self) -> None:
        released = self._released()
        form = ReleaseForm(after_photos=['again.jpg'], delivery_option=DeliveryOption.PICKUP)
        with self.assertRaises(ValidationError) as ctx:
            self.manager.release(released.id, PASSING, form)
        self.assertEqual(ctx.exception.kind, INVALID_TRANSITION)

    def test_mark_done_requires_substantial_completion(self) -> None:
        entry = self.manager.create(_draft())
        with self.assertRaises(ValidationError) as ctx:
            self.manager.mark_done(entry.id)
        self.assertEqual(ctx.exception.violations, ['complete-from-pending'])

        done = self.manager.mark_done(self._released().id)
        self.assertEqual(done.status, EntryStatus.COMPLETED)

    def test_edit_refreshes_updated_at_only(self) -> None:
        entry = self.manager.create(_draft())
        edited = self.manager.edit(entry.id, {'customer_name': 'Ana C.', 'marked_as': MarkedAs.PAID})
        self.assertEqual(edited.customer_name, 'Ana C.')
        self.assertEqual(edited.marked_as, MarkedAs.PAID)
        self.assertEqual(edited.status, EntryStatus.PENDING)
        self.assertEqual(edited.created_at, entry.created_at)
        self.assertGreater(edited.updated_at, entry.updated_at)

    def test_edit_is_idempotent_apart_from_timestamp(self) -> None:
        entry = self.manager.create(_draft())
        first = self.manager.edit(entry.id, {'item_description': 'Blue runners'})
        second = self.manager.edit(entry.id, {'item_description': 'Blue runners'})
        self.assertEqual(replace(first, updated_at=second.updated_at), second)

    def test_edit_rejects_status_and_identity_fields(self) -> None:
        entry = self.manager.create(_draft())
        with self.assertRaises(ValidationError) as ctx:
            self.manager.edit(entry.id, {'status': EntryStatus.COMPLETED, 'created_at': START})
        self.assertEqual(ctx.exception.kind, INVALID_EDIT)
        self.assertEqual(ctx.exception.violations, ['created_at', 'status'])

    def test_edit_cannot_clear_after_photos_once_released(self) -> None:
        released = self._released()
        with self.assertRaises(ValidationError) as ctx:
            self.manager.edit(released.id, {'after_photos': ()})
        self.assertEqual(ctx.exception.violations, ['missing-after-photo'])

    def test_edit_refuses_to_null_required_fields(self) -> None:
        entry = self.manager.create(_draft())
        with self.assertRaises(ValidationError) as ctx:
            self.manager.edit(entry.id, {'customer_phone': None, 'waiver_signed': None})
        self.assertEqual(ctx.exception.kind, 'invalid-edit')
        self.assertEqual(ctx.exception.violations, ['null-customer-phone', 'null-waiver-signed'])

        cleared = self.manager.edit(entry.id, {'assigned_to': None, 'marked_as': None})
        self.assertIsNone(cleared.assigned_to)

    def test_edit_requires_address_when_switching_to_delivery(self) -> None:
        entry = self.manager.create(_draft())
        with self.assertRaises(ValidationError) as ctx:
            self.manager.edit(entry.id, {'delivery_option': DeliveryOption.DELIVERY, 'delivery_address': ''})
        self.assertEqual(ctx.exception.violations, ['missing-delivery-address'])

    def test_update_routes_status_change_through_release(self) -> None:
        entry = self.manager.create(_draft())
        with self.assertRaises(ValidationError) as ctx:
            self.manager.update(entry.id, {'status': EntryStatus.SUBSTANTIAL_COMPLETION})
        self.assertEqual(ctx.exception.kind, 'incomplete-service-steps')

        released = self.manager.update(
            entry.id,
            {
                'status': EntryStatus.SUBSTANTIAL_COMPLETION,
                'service_details': PASSING,
                'after_photos': ('after.jpg',),
                'delivery_option': DeliveryOption.PICKUP,
                'updated_at': START,
            },
        )
        self.assertEqual(released.status, EntryStatus.SUBSTANTIAL_COMPLETION)
        self.assertNotEqual(released.updated_at, START)

    def test_update_rejects_moving_backwards(self) -> None:
        released = self._released()
        with self.assertRaises(ValidationError) as ctx:
            self.manager.update(released.id, {'status': 'pending'})
        self.assertEqual(ctx.exception.violations, ['substantial-completion-to-pending'])

    def test_update_without_status_is_an_edit(self) -> None:
        entry = self.manager.create(_draft())
        updated = self.manager.update(entry.id, {'status': 'pending', 'assigned_to': 'Carlo'})
        self.assertEqual(updated.assigned_to, 'Carlo')

    def test_soft_delete_then_restore_keeps_status(self) -> None:
        released = self._released()
        self.manager.soft_delete(released.id)

        self.assertEqual(self.manager.list_active(), [])
        [deleted] = self.manager.list_deleted()
        self.assertIsInstance(deleted.lifecycle, Deleted)
        self.assertEqual(deleted.lifecycle.prior_status, EntryStatus.SUBSTANTIAL_COMPLETION)

        restored = self.manager.restore(released.id)
        self.assertEqual(restored.status, EntryStatus.SUBSTANTIAL_COMPLETION)
        self.assertIsNone(restored.deleted_at)
        self.assertEqual(replace(restored, updated_at=released.updated_at), released)
        self.assertEqual(self.manager.list_deleted(), [])

    def test_soft_delete_allowed_from_every_status_by_default(self) -> None:
        pending = self.manager.create(_draft())
        completed = self.manager.mark_done(self._released().id)
        for entry in (pending, completed):
            self.manager.soft_delete(entry.id)
        self.assertEqual({entry.id for entry in self.manager.list_deleted()}, {pending.id, completed.id})

    def test_soft_delete_statuses_are_configurable(self) -> None:
        manager = EntryLifecycleManager(
            self.store,
            soft_delete_statuses=['pending', 'completed'],
            clock=self.clock,
            id_factory=_ids(),
        )
        released = manager.release(
            manager.create(_draft()).id,
            PASSING,
            ReleaseForm(after_photos=['after.jpg'], delivery_option=DeliveryOption.PICKUP),
        )
        with self.assertRaises(ValidationError) as ctx:
            manager.soft_delete(released.id)
        self.assertEqual(ctx.exception.violations, ['soft-delete-from-substantial-completion'])

    def test_deleted_entry_is_not_reachable_as_active(self) -> None:
        entry = self.manager.create(_draft())
        self.manager.soft_delete(entry.id)
        with self.assertRaises(NotFoundError):
            self.manager.get(entry.id)
        with self.assertRaises(NotFoundError):
            self.manager.soft_delete(entry.id)

    def test_restore_requires_deleted_entry(self) -> None:
        entry = self.manager.create(_draft())
        with self.assertRaises(NotFoundError) as ctx:
            self.manager.restore(entry.id)
        self.assertEqual(ctx.exception.where, 'deleted')

    def test_permanent_delete_twice_raises_not_found(self) -> None:
        entry = self.manager.create(_draft())
        self.manager.soft_delete(entry.id)
        self.manager.permanent_delete(entry.id)
        with self.assertRaises(NotFoundError):
            self.manager.permanent_delete(entry.id)
        self.assertEqual(self.manager.list_deleted(), [])

    def test_permanent_delete_refuses_active_entries(self) -> None:
        entry = self.manager.create(_draft())
        with self.assertRaises(NotFoundError):
            self.manager.permanent_delete(entry.id)
        self.assertEqual(self.manager.get(entry.id), entry)

    def test_list_active_filters_by_status(self) -> None:
        pending = self.manager.create(_draft())
        released = self._released()
        self.assertEqual([e.id for e in self.manager.list_active(EntryStatus.PENDING)], [pending.id])
        self.assertEqual(
            [e.id for e in self.manager.list_active(EntryStatus.SUBSTANTIAL_COMPLETION)],
            [released.id],
        )


class TotalAmountTests(unittest.TestCase):
    def test_missing_amounts_count_as_zero(self) -> None:
        entry = EntryRecord(id='x', created_at=START, updated_at=START)
        self.assertEqual(total_amount(entry), Decimal('0'))

    def test_billing_and_additional_billing_add_up(self) -> None:
        entry = EntryRecord(
            id='x',
            created_at=START,
            updated_at=START,
            billing=Decimal('500'),
            additional_billing=Decimal('120.50'),
        )
        self.assertEqual(total_amount(entry), Decimal('620.50'))


class ReleaseCheckTests(unittest.TestCase):
    def test_reports_gate_and_form_problems_without_raising(self) -> None:
        result = release_check(ServiceDetails(), ReleaseForm())
        self.assertEqual(result['service_steps'], ['missing-received-by', 'missing-shoe-clean-answer', 'qc-not-passed'])
        self.assertEqual(result['release_fields'], ['missing-after-photo', 'missing-delivery-option'])

    def test_form_is_optional(self) -> None:
        self.assertEqual(release_check(PASSING), {'service_steps': [], 'release_fields': []})


if __name__ == '__main__':
    unittest.main()
