from __future__ import annotations

import socket
import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

import httpx
import pytest
import uvicorn
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from phucloi_agent.common.db import Base, db_session
from phucloi_agent.common.models import (
    CementType,
    Customer,
    Factory,
    Payable,
    Purchase,
    Receivable,
    Sale,
)
from phucloi_agent.common.utils import new_uuid
from phucloi_agent.query.store import (
    BalanceRow,
    OpenReceivableRow,
    PartyRow,
    SqlAlchemyStore,
    TypeTotalRow,
)

TODAY = date(2026, 10, 17)
NOW = datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)


def get_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


def run_uvicorn_in_thread(app: Any, port: int) -> tuple[uvicorn.Server, threading.Thread]:
    config = uvicorn.Config(
        app,
        host="127.0.0.1",
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config=config)
    server.install_signal_handlers = False  # required when running in a thread

    t = threading.Thread(target=server.run, daemon=True)
    t.start()

    # Wait until server is ready
    for _ in range(50):
        try:
            r = httpx.get(f"http://127.0.0.1:{port}/healthz", timeout=1.0)
            if r.status_code == 200:
                break
        except Exception:
            pass
        time.sleep(0.1)
    else:
        server.should_exit = True
        t.join(timeout=2)
        raise RuntimeError("uvicorn did not start")

    return server, t


def stop_uvicorn(server: uvicorn.Server, thread: threading.Thread) -> None:
    server.should_exit = True
    thread.join(timeout=5)


# ---- Operational store fixtures ----


class StoreData:
    """Insert helpers for the operational schema (one committed session per call)."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._types: dict[str, str] = {}

    def _add(self, *objs: Any) -> None:
        with db_session(self.engine) as s:
            s.add_all(objs)

    def cement_type(self, code: str) -> str:
        if code not in self._types:
            type_id = new_uuid()
            self._add(CementType(id=type_id, code=code, name=f"Xi măng {code}"))
            self._types[code] = type_id
        return self._types[code]

    def customer(self, name: str, phone: str | None = None, is_active: bool = True) -> str:
        cid = new_uuid()
        self._add(Customer(id=cid, company_name=name, phone=phone, is_active=is_active))
        return cid

    def factory(self, name: str, code: str | None = None) -> str:
        fid = new_uuid()
        self._add(Factory(id=fid, code=code or fid[:8], name=name))
        return fid

    def receivable(self, customer_id: str, remaining: float, due: date, status: str = "PENDING") -> str:
        rid = new_uuid()
        self._add(Receivable(
            id=rid, customer_id=customer_id, original_amount=remaining, paid_amount=0.0,
            remaining_amount=remaining, due_date=due, status=status,
        ))
        return rid

    def payable(self, factory_id: str, remaining: float, due: date, status: str = "PENDING") -> str:
        pid = new_uuid()
        self._add(Payable(
            id=pid, factory_id=factory_id, original_amount=remaining, paid_amount=0.0,
            remaining_amount=remaining, due_date=due, status=status,
        ))
        return pid

    def sale(self, code: str, quantity: float, amount: float, day: date, customer_id: str | None = None) -> str:
        type_id = self.cement_type(code)
        customer_id = customer_id or self.customer(f"Khách lẻ {new_uuid()[:6]}")
        sid = new_uuid()
        self._add(Sale(
            id=sid, customer_id=customer_id, cement_type_id=type_id, quantity=quantity,
            unit_price=amount / quantity if quantity else 0.0, total_amount=amount, sale_date=day,
        ))
        return sid

    def purchase(self, code: str, quantity: float, amount: float, day: date, factory_id: str | None = None) -> str:
        type_id = self.cement_type(code)
        factory_id = factory_id or self.factory(f"Nhà máy {new_uuid()[:6]}")
        pid = new_uuid()
        self._add(Purchase(
            id=pid, factory_id=factory_id, cement_type_id=type_id, quantity=quantity,
            unit_price=amount / quantity if quantity else 0.0, total_amount=amount, purchase_date=day,
        ))
        return pid


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite shared across threads and sessions."""
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def data(engine: Engine) -> StoreData:
    return StoreData(engine)


@pytest.fixture
def sql_store(engine: Engine) -> SqlAlchemyStore:
    return SqlAlchemyStore(engine)


@dataclass
class FakeStore:
    """In-memory ``OperationalStore`` returning canned grouped rows."""

    customers: list[PartyRow] = field(default_factory=list)
    suppliers: list[PartyRow] = field(default_factory=list)
    receivable_balances: list[BalanceRow] = field(default_factory=list)
    payable_balances: list[BalanceRow] = field(default_factory=list)
    open_receivables: list[OpenReceivableRow] = field(default_factory=list)
    sales: dict[tuple[date | None, date | None], list[TypeTotalRow]] = field(default_factory=dict)
    purchases: list[TypeTotalRow] = field(default_factory=list)
    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)

    def list_parties(self, kind):
        self.calls.append(("list_parties", (kind,)))
        return list(self.customers if kind == "customer" else self.suppliers)

    def unpaid_balances(self, kind, party_id=None):
        self.calls.append(("unpaid_balances", (kind, party_id)))
        rows = self.receivable_balances if kind == "customer" else self.payable_balances
        return [r for r in rows if party_id is None or r.party_id == party_id]

    def open_receivables_due_before(self, cutoff, customer_id=None):
        self.calls.append(("open_receivables_due_before", (cutoff, customer_id)))
        return [
            r for r in self.open_receivables
            if r.due_date < cutoff and (customer_id is None or r.customer_id == customer_id)
        ]

    def sales_by_cement_type(self, start, end, cement_type=None):
        self.calls.append(("sales_by_cement_type", (start, end, cement_type)))
        rows = self.sales.get((start, end), [])
        return [r for r in rows if cement_type is None or r.cement_type == cement_type]

    def purchases_by_cement_type(self, start, end, cement_type=None):
        self.calls.append(("purchases_by_cement_type", (start, end, cement_type)))
        return [r for r in self.purchases if cement_type is None or r.cement_type == cement_type]


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()
