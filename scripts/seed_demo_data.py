"""Seed a Phúc Lợi operational store with demo data.

Usage:
    STORE_DB_DSN=sqlite:///./phucloi.db python scripts/seed_demo_data.py --months 6
"""
from __future__ import annotations

import argparse
import os
import random
import sys
from datetime import date, timedelta

from sqlalchemy.orm import Session

from phucloi_agent.common.db import Base, db_session, make_engine
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

CEMENT_TYPES = [
    ("PCB30", "Xi măng PCB30"),
    ("PCB40", "Xi măng PCB40"),
    ("PC40", "Xi măng PC40"),
    ("PC50", "Xi măng PC50"),
]

FACTORIES = [
    ("XUAN_THANH", "Xi măng Xuân Thành", 30),
    ("HOANG_THACH", "Xi măng Hoàng Thạch", 45),
    ("BUT_SON", "Xi măng Bút Sơn", 30),
    ("NGHI_SON", "Xi măng Nghi Sơn", 30),
    ("CHIN_FON", "Xi măng Chinfon", 30),
]

CUSTOMERS = [
    "Công ty TNHH Bê tông Hải Phòng",
    "Công ty CP Xây dựng Hòa Phát",
    "Trạm trộn Thủy Nguyên",
    "Công ty TNHH Vật liệu An Dương",
    "Công ty CP Bê tông Kiến An",
    "Trạm trộn Đồ Sơn",
    "Công ty TNHH Xây dựng Tiên Lãng",
    "Công ty CP Hạ tầng Lạch Tray",
]

_PRICE_PER_TON = {"PCB30": 1_250_000, "PCB40": 1_380_000, "PC40": 1_420_000, "PC50": 1_550_000}


def _month_start(d: date, back: int) -> date:
    y, m = d.year, d.month - back
    while m <= 0:
        m += 12
        y -= 1
    return date(y, m, 1)


def seed(session: Session, today: date, months: int = 6, rng: random.Random | None = None) -> dict[str, int]:
    rng = rng or random.Random(42)

    types = {code: CementType(id=new_uuid(), code=code, name=name) for code, name in CEMENT_TYPES}
    factories = [
        Factory(id=new_uuid(), code=code, name=name, payment_terms=terms) for code, name, terms in FACTORIES
    ]
    customers = [
        Customer(id=new_uuid(), company_name=name, phone=f"0912{i:06d}", payment_terms=30)
        for i, name in enumerate(CUSTOMERS, start=1)
    ]
    session.add_all([*types.values(), *factories, *customers])
    session.flush()

    counts = {"sales": 0, "purchases": 0, "receivables": 0, "payables": 0}
    first = _month_start(today, months - 1)
    day = first
    while day <= today:
        if day.weekday() < 6:
            code = rng.choice(list(types))
            factory = rng.choice(factories)
            qty = float(rng.randint(80, 160))
            purchase = Purchase(
                id=new_uuid(), factory_id=factory.id, cement_type_id=types[code].id, quantity=qty,
                unit_price=_PRICE_PER_TON[code] * 0.9, total_amount=qty * _PRICE_PER_TON[code] * 0.9,
                purchase_date=day,
            )
            session.add(purchase)
            counts["purchases"] += 1
            if rng.random() < 0.3:
                paid = rng.random() < 0.6
                session.add(Payable(
                    id=new_uuid(), factory_id=factory.id, purchase_id=purchase.id,
                    original_amount=purchase.total_amount,
                    paid_amount=purchase.total_amount if paid else 0.0,
                    remaining_amount=0.0 if paid else purchase.total_amount,
                    due_date=day + timedelta(days=factory.payment_terms or 30),
                    status="PAID" if paid else "PENDING",
                ))
                counts["payables"] += 1

            for _ in range(rng.randint(1, 3)):
                customer = rng.choice(customers)
                sale_qty = float(rng.randint(10, 45))
                sale = Sale(
                    id=new_uuid(), customer_id=customer.id, cement_type_id=types[code].id, quantity=sale_qty,
                    unit_price=_PRICE_PER_TON[code], total_amount=sale_qty * _PRICE_PER_TON[code], sale_date=day,
                )
                session.add(sale)
                counts["sales"] += 1
                if rng.random() < 0.4:
                    paid_ratio = rng.choice([0.0, 0.0, 0.5, 1.0])
                    paid_amount = round(sale.total_amount * paid_ratio, 0)
                    session.add(Receivable(
                        id=new_uuid(), customer_id=customer.id, sale_id=sale.id,
                        original_amount=sale.total_amount, paid_amount=paid_amount,
                        remaining_amount=sale.total_amount - paid_amount,
                        due_date=day + timedelta(days=customer.payment_terms or 30),
                        status="PAID" if paid_ratio == 1.0 else ("PARTIAL" if paid_ratio else "PENDING"),
                    ))
                    counts["receivables"] += 1
        day += timedelta(days=1)
    return counts


def run(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed Phuc Loi demo data")
    parser.add_argument("--dsn", default=os.getenv("STORE_DB_DSN"))
    parser.add_argument("--months", type=int, default=6)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args(argv)

    if not args.dsn:
        print("STORE_DB_DSN (or --dsn) is required", file=sys.stderr)
        return 2

    engine = make_engine(args.dsn)
    Base.metadata.create_all(engine)
    with db_session(engine) as session:
        counts = seed(session, date.today(), months=max(args.months, 1), rng=random.Random(args.seed))
    print(f"Seeded: {counts}")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
