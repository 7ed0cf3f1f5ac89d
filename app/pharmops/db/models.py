import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator, CHAR

from app.pharmops.core.clock import utcnow


class GUID(TypeDecorator):
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class Base(DeclarativeBase):
    pass


class Pharmacy(Base):
    __tablename__ = "pharmacies"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    branches = relationship("Branch", back_populates="pharmacy")
    settings = relationship("PharmacySettings", back_populates="pharmacy", uselist=False)


class Branch(Base):
    __tablename__ = "branches"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    pharmacy_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("pharmacies.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    pharmacy = relationship("Pharmacy", back_populates="branches")


class PharmacySettings(Base):
    __tablename__ = "pharmacy_settings"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    pharmacy_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("pharmacies.id"), unique=True, index=True, nullable=False
    )
    require_sale_short_code: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    short_code_expiry_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    pharmacy = relationship("Pharmacy", back_populates="settings")


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    pharmacy_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    branch_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),)


class PendingSale(Base):
    __tablename__ = "pending_sales"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    pharmacy_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    branch_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    short_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    finalized: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    lines = relationship("PendingSaleLine", back_populates="sale", order_by="PendingSaleLine.line_no")


class PendingSaleLine(Base):
    __tablename__ = "pending_sale_lines"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    sale_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("pending_sales.id", ondelete="CASCADE"), index=True, nullable=False
    )
    line_no: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    # no FK: the inventory record can be removed while a reservation is outstanding
    inventory_item_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    sale = relationship("PendingSale", back_populates="lines")

    __table_args__ = (CheckConstraint("quantity > 0", name="ck_pending_sale_lines_quantity_positive"),)


class CleanupRunRecord(Base):
    __tablename__ = "expired_sale_cleanup_runs"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    cleanup_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    operation_type: Mapped[str] = mapped_column(String(20), nullable=False)
    triggered_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    restored_count: Mapped[int] = mapped_column(Integer, nullable=False)
    restored_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    pharmacy_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    branch_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("restored_count >= 0", name="ck_cleanup_runs_restored_count"),
        CheckConstraint("operation_type IN ('manual', 'automatic')", name="ck_cleanup_runs_operation_type"),
    )


Index("ix_pending_sales_expiry_scan", PendingSale.pharmacy_id, PendingSale.finalized, PendingSale.created_at)
Index("ix_cleanup_runs_cleanup_date", CleanupRunRecord.cleanup_date)
Index("ix_cleanup_runs_scope", CleanupRunRecord.pharmacy_id, CleanupRunRecord.branch_id)
