"""Phúc Lợi AI query engine – natural-language question → grounded data context.

Provides:
  - classify: rule-table intent classifier (closed ``Intent`` enum)
  - ParameterExtractor: month / threshold / limit / name extraction
  - EntityResolver: exact-then-fuzzy customer / factory lookup
  - AggregationDispatcher: one deterministic aggregation per intent
  - assemble: bounded canonical JSON context
  - QueryProcessor / process_query: the composed entry point

Design:
  The engine is READ-ONLY and never produces prose; the language model is
  called by the outer HTTP layer with the payload built here.
"""

from phucloi_agent.query.intents import INTENT_RULES, IntentRule, classify
from phucloi_agent.query.orchestrator import QueryProcessor, process_query
from phucloi_agent.query.store import OperationalStore, SqlAlchemyStore, StoreUnavailableError
from phucloi_agent.query.types import Intent, MatchConfidence, QueryOutcome

__all__ = [
    "INTENT_RULES", "IntentRule", "classify",
    "QueryProcessor", "process_query",
    "OperationalStore", "SqlAlchemyStore", "StoreUnavailableError",
    "Intent", "MatchConfidence", "QueryOutcome",
]
