"""Read-only query interface over the operational store.

The aggregation layer depends on ``OperationalStore`` only; ``SqlAlchemyStore``
implements it against the ERP schema in ``phucloi_agent.common.models``.
Each method issues one grouped query inside its own read session, which is
rolled back and closed before the method returns, so no connection is held
while the caller talks to the language model.

Any driver error, timeout or malformed row is raised as
``StoreUnavailableError`` so callers can tell "store failed" from "no data".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from phucloi_agent.common.db import read_session
from phucloi_agent.common.models import (
    CementType,
    Customer,
    Factory,
    Payable,
    Purchase,
    Receivable,
    Sale,
)
from phucloi_agent.query.types import EntityKind

log = logging.getLogger("phucloi.query.store")


class StoreUnavailableError(RuntimeError):
    """The operational store could not answer (down, timed out, bad data)."""


@dataclass(frozen=True)
class PartyRow:
    party_id: str
    name: str


@dataclass(frozen=True)
class BalanceRow:
    party_id: str
    name: str
    remaining_amount: float
    open_items: int
    phone: str | None = None


@dataclass(frozen=True)
class OpenReceivableRow:
    receivable_id: str
    customer_id: str
    customer_name: str
    remaining_amount: float
    due_date: date
    phone: str | None = None


@dataclass(frozen=True)
class TypeTotalRow:
    cement_type: str
    quantity: float
    amount: float
    count: int


class OperationalStore(Protocol):
    def list_parties(self, kind: EntityKind) -> list[PartyRow]:
        ...

    def unpaid_balances(self, kind: EntityKind, party_id: str | None = None) -> list[BalanceRow]:
        """Unpaid receivables per customer (``customer``) or payables per factory (``supplier``)."""
        ...

    def open_receivables_due_before(self, cutoff: date, customer_id: str | None = None) -> list[OpenReceivableRow]:
        ...

    def sales_by_cement_type(
        self, start: date | None, end: date | None, cement_type: str | None = None
    ) -> list[TypeTotalRow]:
        ...

    def purchases_by_cement_type(
        self, start: date | None, end: date | None, cement_type: str | None = None
    ) -> list[TypeTotalRow]:
        ...


def _number(value: Any, column: str) -> float:
    if value is None:
        raise StoreUnavailableError(f"malformed row: {column} is NULL")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise StoreUnavailableError(f"malformed row: {column}={value!r}") from e


def _text(value: Any, column: str) -> str:
    if value is None or str(value).strip() == "":
        raise StoreUnavailableError(f"malformed row: {column} is empty")
    return str(value)


class SqlAlchemyStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _fetch(self, stmt: Any, label: str) -> list[Any]:
        try:
            with read_session(self.engine) as session:
                return list(session.execute(stmt).all())
        except SQLAlchemyError as e:
            log.warning("store_query_failed", extra={"query": label, "error": str(e)})
            raise StoreUnavailableError(f"store query '{label}' failed") from e

    def list_parties(self, kind: EntityKind) -> list[PartyRow]:
        if kind == "customer":
            stmt = select(Customer.id, Customer.company_name).where(Customer.is_active.is_(True))
        else:
            stmt = select(Factory.id, Factory.name).where(Factory.is_active.is_(True))
        rows = self._fetch(stmt, f"list_parties:{kind}")
        return [PartyRow(party_id=_text(r[0], "id"), name=_text(r[1], "name")) for r in rows]

    def unpaid_balances(self, kind: EntityKind, party_id: str | None = None) -> list[BalanceRow]:
        if kind == "customer":
            party, debt, fk = Customer, Receivable, Receivable.customer_id
            name_col, phone_col = Customer.company_name, Customer.phone
        else:
            party, debt, fk = Factory, Payable, Payable.factory_id
            name_col, phone_col = Factory.name, Factory.phone

        stmt = (
            select(party.id, name_col, phone_col, func.sum(debt.remaining_amount), func.count(debt.id))
            .join(debt, fk == party.id)
            .where(debt.status != "PAID", debt.remaining_amount > 0)
            .group_by(party.id, name_col, phone_col)
        )
        if party_id is not None:
            stmt = stmt.where(party.id == party_id)

        rows = self._fetch(stmt, f"unpaid_balances:{kind}")
        return [
            BalanceRow(
                party_id=_text(r[0], "id"),
                name=_text(r[1], "name"),
                phone=r[2],
                remaining_amount=_number(r[3], "remaining_amount"),
                open_items=int(r[4] or 0),
            )
            for r in rows
        ]

    def open_receivables_due_before(self, cutoff: date, customer_id: str | None = None) -> list[OpenReceivableRow]:
        stmt = (
            select(
                Receivable.id,
                Customer.id,
                Customer.company_name,
                Customer.phone,
                Receivable.remaining_amount,
                Receivable.due_date,
            )
            .join(Customer, Receivable.customer_id == Customer.id)
            .where(
                Receivable.status != "PAID",
                Receivable.remaining_amount > 0,
                Receivable.due_date < cutoff,
            )
        )
        if customer_id is not None:
            stmt = stmt.where(Customer.id == customer_id)

        rows = self._fetch(stmt, "open_receivables_due_before")
        out: list[OpenReceivableRow] = []
        for r in rows:
            if r[5] is None:
                raise StoreUnavailableError("malformed row: due_date is NULL")
            out.append(
                OpenReceivableRow(
                    receivable_id=_text(r[0], "id"),
                    customer_id=_text(r[1], "customer_id"),
                    customer_name=_text(r[2], "company_name"),
                    phone=r[3],
                    remaining_amount=_number(r[4], "remaining_amount"),
                    due_date=r[5],
                )
            )
        return out

    def _by_type(self, model: Any, date_col: Any, start: date | None, end: date | None,
                 cement_type: str | None, label: str) -> list[TypeTotalRow]:
        stmt = (
            select(CementType.code, func.sum(model.quantity), func.sum(model.total_amount), func.count(model.id))
            .join(CementType, model.cement_type_id == CementType.id)
            .group_by(CementType.code)
        )
        if start is not None:
            stmt = stmt.where(date_col >= start)
        if end is not None:
            stmt = stmt.where(date_col < end)
        if cement_type is not None:
            stmt = stmt.where(CementType.code == cement_type)

        rows = self._fetch(stmt, label)
        return [
            TypeTotalRow(
                cement_type=_text(r[0], "code"),
                quantity=_number(r[1], "quantity"),
                amount=_number(r[2], "total_amount"),
                count=int(r[3] or 0),
            )
            for r in rows
        ]

    def sales_by_cement_type(
        self, start: date | None, end: date | None, cement_type: str | None = None
    ) -> list[TypeTotalRow]:
        return self._by_type(Sale, Sale.sale_date, start, end, cement_type, "sales_by_cement_type")

    def purchases_by_cement_type(
        self, start: date | None, end: date | None, cement_type: str | None = None
    ) -> list[TypeTotalRow]:
        return self._by_type(Purchase, Purchase.purchase_date, start, end, cement_type, "purchases_by_cement_type")
