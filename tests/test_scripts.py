"""Tests for the seed_demo_data and ask scripts."""

from __future__ import annotations

import importlib
import random
import sys
from pathlib import Path

from conftest import NOW, TODAY

from phucloi_agent.common.db import db_session
from phucloi_agent.query import Intent, QueryProcessor

# Make scripts/ importable
_scripts_dir = str(Path(__file__).resolve().parent.parent / "scripts")
if _scripts_dir not in sys.path:
    sys.path.insert(0, _scripts_dir)

seed_demo_data = importlib.import_module("seed_demo_data")
ask = importlib.import_module("ask")


def test_seed_is_deterministic_and_answerable(engine, sql_store):
    with db_session(engine) as session:
        counts = seed_demo_data.seed(session, TODAY, months=3, rng=random.Random(7))
    assert counts["sales"] > 0
    assert counts["purchases"] > 0

    processor = QueryProcessor(store=sql_store, today=lambda: TODAY, now=lambda: NOW)
    sales = processor.process_query("Tháng này bán được bao nhiêu tấn?")
    assert sales.intent is Intent.MONTHLY_SALES_VOLUME
    assert sales.data["is_empty"] is False
    assert sales.data["total_quantity"] > 0

    stock = processor.process_query("Tồn kho hiện tại")
    assert all(row["on_hand"] >= 0 for row in stock.data["by_type"])

    debtors = processor.process_query("Ai đang nợ tôi nhiều nhất?")
    amounts = [row["remaining_amount"] for row in debtors.data["rows"]]
    assert amounts == sorted(amounts, reverse=True)


def test_seed_requires_dsn(monkeypatch):
    monkeypatch.delenv("STORE_DB_DSN", raising=False)
    assert seed_demo_data.run([]) == 2


def test_ask_requires_dsn(monkeypatch):
    monkeypatch.delenv("STORE_DB_DSN", raising=False)
    assert ask.run(["Tồn kho hiện tại"]) == 2


def test_seed_then_ask(tmp_path, capsys):
    dsn = f"sqlite:///{tmp_path / 'demo.db'}"
    assert seed_demo_data.run(["--dsn", dsn, "--months", "2"]) == 0

    assert ask.run(["Tồn kho hiện tại", "--dsn", dsn, "--prompt"]) == 0
    out = capsys.readouterr().out
    assert '"intent": "CURRENT_INVENTORY"' in out
    assert "--- system ---" in out
    assert "Dữ liệu:" in out


def test_ask_reports_unavailable_store(tmp_path):
    dsn = f"sqlite:///{tmp_path / 'empty.db'}"
    assert ask.run(["Ai đang nợ tôi nhiều nhất?", "--dsn", dsn]) == 3
