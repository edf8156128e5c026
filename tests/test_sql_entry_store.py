from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from taketwo.errors import NotFoundError, ValidationError
from taketwo.models import Answer, Base, DeliveryOption, Entry, EntryStatus, ReceivedBy
from taketwo.services.entry_service import EntryLifecycleManager
from taketwo.services.entry_store import EntryDraft, EntryRecord, ServiceLine
from taketwo.services.sql_entry_store import SqlEntryStore
from taketwo.services.workflow_service import ReleaseForm, ServiceDetails

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _record(entry_id: str, minutes: int = 0, **overrides) -> EntryRecord:
    values = dict(
        id=entry_id,
        created_at=START + timedelta(minutes=minutes),
        updated_at=START + timedelta(minutes=minutes),
        customer_name='Ben Reyes',
        customer_phone='09181234567',
        delivery_address='Unit 5B',
        services=(ServiceLine(name='Restoration', price=Decimal('800')),),
        before_photos=('b1.jpg', 'b2.jpg'),
        billing=Decimal('800'),
    )
    values.update(overrides)
    return EntryRecord(**values)


class SqlEntryStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine('sqlite://')
        Base.metadata.create_all(self.engine)
        self.db = Session(self.engine, expire_on_commit=False)
        self.store = SqlEntryStore(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def test_create_and_get_round_trips_every_column(self) -> None:
        details = ServiceDetails(received_by=ReceivedBy.GAMEVILLE, is_shoe_clean=Answer.NO, basic_cleaning=Answer.YES)
        self.store.create(_record('e1', service_details=details, delivery_option=DeliveryOption.DELIVERY))
        self.db.commit()

        loaded = self.store.get('e1')
        self.assertEqual(loaded.services, (ServiceLine(name='Restoration', price=Decimal('800')),))
        self.assertEqual(loaded.before_photos, ('b1.jpg', 'b2.jpg'))
        self.assertEqual(loaded.service_details, details)
        self.assertEqual(loaded.delivery_option, DeliveryOption.DELIVERY)
        self.assertEqual(loaded.status, EntryStatus.PENDING)
        self.assertEqual(loaded.billing, Decimal('800'))
        self.assertEqual(loaded.created_at, START)

    def test_duplicate_ids_are_rejected(self) -> None:
        self.store.create(_record('e1'))
        with self.assertRaises(ValidationError):
            self.store.create(_record('e1'))

    def test_list_orders_by_creation_time(self) -> None:
        self.store.create(_record('late', minutes=10))
        self.store.create(_record('early', minutes=1))
        self.assertEqual([entry.id for entry in self.store.list()], ['early', 'late'])

    def test_update_rejects_unknown_fields(self) -> None:
        self.store.create(_record('e1'))
        with self.assertRaises(ValidationError):
            self.store.update('e1', {'id': 'other'})

    def test_soft_delete_moves_between_sets(self) -> None:
        self.store.create(_record('e1'))
        self.store.soft_delete('e1', deleted_at=START + timedelta(hours=1))

        self.assertEqual(self.store.list(), [])
        self.assertEqual(self.store.get_deleted('e1').deleted_at, START + timedelta(hours=1))
        with self.assertRaises(NotFoundError):
            self.store.get('e1')
        with self.assertRaises(NotFoundError):
            self.store.update('e1', {'customer_name': 'X'})

        self.store.restore('e1')
        self.assertIsNone(self.store.get('e1').deleted_at)

    def test_deleted_list_shows_most_recent_first(self) -> None:
        for index, entry_id in enumerate(('a', 'b', 'c')):
            self.store.create(_record(entry_id, minutes=index))
            self.store.soft_delete(entry_id, deleted_at=START + timedelta(hours=index))
        self.assertEqual([entry.id for entry in self.store.list_deleted()], ['c', 'b', 'a'])

    def test_permanent_delete_removes_row(self) -> None:
        self.store.create(_record('e1'))
        self.store.soft_delete('e1', deleted_at=START)
        self.store.permanent_delete('e1')
        self.db.commit()

        self.assertIsNone(self.db.execute(select(Entry).where(Entry.id == 'e1')).scalar_one_or_none())
        with self.assertRaises(NotFoundError):
            self.store.permanent_delete('e1')

    def test_manager_release_persists_through_sql(self) -> None:
        manager = EntryLifecycleManager(self.store, id_factory=lambda: 'sql-1')
        entry = manager.create(
            EntryDraft(
                customer_phone='0917',
                delivery_address='123 St',
                services=(ServiceLine(name='Deep Clean', price=Decimal('450')),),
                before_photos=('b.jpg',),
            )
        )
        details = ServiceDetails(received_by=ReceivedBy.TAKETWO, is_shoe_clean=Answer.YES, qc_passed=True)
        form = ReleaseForm(
            after_photos=['a1.jpg', 'a2.jpg'],
            additional_billing=Decimal('50'),
            delivery_option=DeliveryOption.PICKUP,
        )
        manager.release(entry.id, details, form)
        self.db.commit()

        row = self.db.get(Entry, 'sql-1')
        self.assertEqual(row.status, EntryStatus.SUBSTANTIAL_COMPLETION)
        self.assertEqual(row.after_photos, ['a1.jpg', 'a2.jpg'])
        self.assertEqual(row.service_details['qcPassed'], True)
        self.assertEqual(row.additional_billing, Decimal('50'))


if __name__ == '__main__':
    unittest.main()
