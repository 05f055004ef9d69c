from __future__ import annotations

import datetime as dt

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from phucloi_agent.common.db import Base

# Receivable / payable lifecycle: PENDING → PARTIAL → PAID, OVERDUE set by the ERP batch.
DEBT_STATUSES = ("PENDING", "PARTIAL", "PAID", "OVERDUE")


class CementType(Base):
    __tablename__ = "cement_types"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    code: Mapped[str] = mapped_column(sa.String(16), unique=True, index=True)  # PCB30, PCB40, PC50 …
    name: Mapped[str] = mapped_column(sa.String(128))


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    company_name: Mapped[str] = mapped_column(sa.String(256), index=True)
    contact_person: Mapped[str | None] = mapped_column(sa.String(128), nullable=True)
    phone: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    customer_type: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    credit_limit: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    payment_terms: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)  # days
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    receivables: Mapped[list[Receivable]] = relationship(back_populates="customer")


class Factory(Base):
    """Cement factory; the supplier side of every purchase and payable."""

    __tablename__ = "factories"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    code: Mapped[str] = mapped_column(sa.String(32), unique=True, index=True)
    name: Mapped[str] = mapped_column(sa.String(256), index=True)
    phone: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    payment_terms: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True, nullable=False)

    payables: Mapped[list[Payable]] = relationship(back_populates="factory")


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    customer_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("customers.id"), index=True)
    cement_type_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("cement_types.id"), index=True)
    quantity: Mapped[float] = mapped_column(sa.Float, nullable=False)  # tons
    unit_price: Mapped[float] = mapped_column(sa.Float, nullable=False)
    total_amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    sale_date: Mapped[dt.date] = mapped_column(sa.Date, index=True, nullable=False)
    payment_status: Mapped[str] = mapped_column(sa.String(16), default="PENDING", nullable=False)


class Purchase(Base):
    __tablename__ = "purchases"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    factory_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("factories.id"), index=True)
    cement_type_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("cement_types.id"), index=True)
    quantity: Mapped[float] = mapped_column(sa.Float, nullable=False)  # tons
    unit_price: Mapped[float] = mapped_column(sa.Float, nullable=False)
    total_amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    purchase_date: Mapped[dt.date] = mapped_column(sa.Date, index=True, nullable=False)


class Receivable(Base):
    __tablename__ = "receivables"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    customer_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("customers.id"), index=True)
    sale_id: Mapped[str | None] = mapped_column(sa.String(36), sa.ForeignKey("sales.id"), nullable=True)
    original_amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    paid_amount: Mapped[float] = mapped_column(sa.Float, default=0.0, nullable=False)
    remaining_amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    due_date: Mapped[dt.date] = mapped_column(sa.Date, index=True, nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), index=True, default="PENDING", nullable=False)

    customer: Mapped[Customer] = relationship(back_populates="receivables")


class Payable(Base):
    __tablename__ = "payables"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    factory_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("factories.id"), index=True)
    purchase_id: Mapped[str | None] = mapped_column(sa.String(36), sa.ForeignKey("purchases.id"), nullable=True)
    original_amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    paid_amount: Mapped[float] = mapped_column(sa.Float, default=0.0, nullable=False)
    remaining_amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    due_date: Mapped[dt.date] = mapped_column(sa.Date, index=True, nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), index=True, default="PENDING", nullable=False)

    factory: Mapped[Factory] = relationship(back_populates="payables")
