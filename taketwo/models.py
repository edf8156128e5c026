from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    false,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PrincipalRole(str, Enum):
    ADMIN = 'ADMIN'
    STAFF = 'STAFF'


class EntryStatus(str, Enum):
    PENDING = 'pending'
    SUBSTANTIAL_COMPLETION = 'substantial-completion'
    COMPLETED = 'completed'


# Forward order of the workflow; soft delete and restore sit outside it.
STATUS_ORDER: tuple[EntryStatus, ...] = (
    EntryStatus.PENDING,
    EntryStatus.SUBSTANTIAL_COMPLETION,
    EntryStatus.COMPLETED,
)


class MarkedAs(str, Enum):
    PAID_DELIVERED = 'paid-delivered'
    PAID = 'paid'
    DELIVERED = 'delivered'
    IN_PROGRESS = 'in-progress'


class DeliveryOption(str, Enum):
    PICKUP = 'pickup'
    DELIVERY = 'delivery'


class ReceivedBy(str, Enum):
    TAKETWO = 'taketwo'
    GAMEVILLE = 'gameville'


class ServiceType(str, Enum):
    RESTORATION = 'restoration'
    DEEP_CLEANING = 'deep-cleaning'


class Answer(str, Enum):
    YES = 'yes'
    NO = 'no'


def _new_entry_id() -> str:
    return uuid.uuid4().hex


class Principal(Base):
    __tablename__ = 'principals'

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str | None] = mapped_column(Text)
    last_name: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    role: Mapped[PrincipalRole] = mapped_column(SQLEnum(PrincipalRole, name='principal_role'), nullable=False)
    # New registrations wait for an admin to activate them.
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class WebSession(Base):
    __tablename__ = 'web_sessions'

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True)
    session_token: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    principal_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('principals.id'), nullable=False)
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Entry(Base):
    __tablename__ = 'entries'

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_entry_id)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False, default='')
    customer_phone: Mapped[str] = mapped_column(Text, nullable=False, default='')
    customer_email: Mapped[str] = mapped_column(Text, nullable=False, default='')
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False, default='')
    item_description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    shoe_condition: Mapped[str] = mapped_column(Text, nullable=False, default='')
    services: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    assigned_to: Mapped[str | None] = mapped_column(Text)
    before_photos: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    after_photos: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    waiver_url: Mapped[str | None] = mapped_column(Text)
    waiver_signed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    service_details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    billing: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    additional_billing: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    delivery_option: Mapped[DeliveryOption | None] = mapped_column(
        SQLEnum(DeliveryOption, name='delivery_option', values_callable=lambda e: [m.value for m in e])
    )
    status: Mapped[EntryStatus] = mapped_column(
        SQLEnum(EntryStatus, name='entry_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EntryStatus.PENDING,
    )
    marked_as: Mapped[MarkedAs | None] = mapped_column(
        SQLEnum(MarkedAs, name='entry_marked_as', values_callable=lambda e: [m.value for m in e])
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Non-null while the entry sits in the deleted set; status keeps the pre-delete value.
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)


class AuthEvent(Base):
    __tablename__ = 'auth_events'

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True)
    attempted_email: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(Text)
    principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuditLog(Base):
    __tablename__ = 'audit_logs'

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True)
    actor_principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    action: Mapped[str] = mapped_column(Text, nullable=False)
    entry_id: Mapped[str | None] = mapped_column(String(32))
    ip: Mapped[str | None] = mapped_column(String(64))
    meta: Mapped[dict] = mapped_column('metadata', JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
