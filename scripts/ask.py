"""Ask the AI query engine a question from the command line.

Prints the grounded outcome (intent, data, note) as JSON, plus the rendered
model prompt with ``--prompt``.

Usage:
    STORE_DB_DSN=sqlite:///./phucloi.db python scripts/ask.py "Ai đang nợ tôi nhiều nhất?"
"""
from __future__ import annotations

import argparse
import json
import os
import sys

from phucloi_agent.common.db import make_engine
from phucloi_agent.common.logging import configure_logging
from phucloi_agent.common.settings import get_settings
from phucloi_agent.query import QueryProcessor, SqlAlchemyStore, StoreUnavailableError
from phucloi_agent.query.prompts import SYSTEM_PROMPT, render_user_message


def run(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ask the Phuc Loi AI query engine")
    parser.add_argument("question")
    parser.add_argument("--dsn", default=os.getenv("STORE_DB_DSN"))
    parser.add_argument("--prompt", action="store_true", help="also print the prompt for the model")
    args = parser.parse_args(argv)

    if not args.dsn:
        print("STORE_DB_DSN (or --dsn) is required", file=sys.stderr)
        return 2

    settings = get_settings()
    configure_logging("WARNING")
    engine = make_engine(args.dsn, settings.store_statement_timeout_seconds)
    processor = QueryProcessor.from_settings(SqlAlchemyStore(engine), settings)
    try:
        outcome = processor.process_query(args.question)
    except StoreUnavailableError as e:
        print(f"store unavailable: {e}", file=sys.stderr)
        return 3

    print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2, default=str))
    if args.prompt:
        print("\n--- system ---\n" + SYSTEM_PROMPT)
        print("--- user ---\n" + render_user_message(args.question, outcome))
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
