from decimal import Decimal

from sqlalchemy import select

from taketwo.db import SessionLocal, engine
from taketwo.models import Base, Principal, PrincipalRole
from taketwo.security.passwords import hash_password
from taketwo.services.entry_store import EntryDraft, ServiceLine
from taketwo.services.sql_entry_store import SqlEntryStore
from taketwo.services.store_factory import build_lifecycle_manager

DEMO_ENTRIES = [
    EntryDraft(
        customer_name='Ana Cruz',
        customer_phone='09171234567',
        delivery_address='12 Mabini St, Quezon City',
        item_description='White leather sneakers',
        shoe_condition='Yellowed soles',
        services=(ServiceLine(name='Deep Clean', price=Decimal('450')),),
        before_photos=('/uploads/photo/demo-before-1.jpg',),
    ),
    EntryDraft(
        customer_name='Ben Reyes',
        customer_phone='09181234567',
        delivery_address='Unit 5B, Katipunan Ave',
        item_description='Suede boots',
        shoe_condition='Scuffed toe, loose sole',
        services=(
            ServiceLine(name='Restoration', price=Decimal('800')),
            ServiceLine(name='Reglue', price=Decimal('200')),
        ),
        before_photos=('/uploads/photo/demo-before-2.jpg',),
        waiver_url='/uploads/waiver/demo-waiver.pdf',
    ),
]


def seed() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        admin = db.execute(select(Principal).where(Principal.email == 'admin@taketwo.local')).scalar_one_or_none()
        if not admin:
            db.add(
                Principal(
                    email='admin@taketwo.local',
                    password_hash=hash_password('adminpass'),
                    first_name='TakeTwo',
                    last_name='Admin',
                    role=PrincipalRole.ADMIN,
                    active=True,
                )
            )

        manager = build_lifecycle_manager(SqlEntryStore(db))
        if not manager.list_active():
            for draft in DEMO_ENTRIES:
                manager.create(draft, actor='seed')

        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
