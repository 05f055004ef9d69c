"""Query orchestrator – the single entry point of the AI query engine.

    question → classify → (UNKNOWN: stop) → extract (+ resolve names)
             → aggregate → assemble → QueryOutcome

Stateless per call and read-only. ``StoreUnavailableError`` is the only
exception callers should expect; every other degradation (unknown intent,
unresolved name, defaulted month, negative stock) comes back as a note.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import partial

from phucloi_agent.common.settings import Settings
from phucloi_agent.common.utils import local_today, utcnow
from phucloi_agent.query.aggregate import AggregationDispatcher
from phucloi_agent.query.context import assemble
from phucloi_agent.query.entities import EntityResolver
from phucloi_agent.query.intents import classify
from phucloi_agent.query.params import ParameterExtractor
from phucloi_agent.query.store import OperationalStore
from phucloi_agent.query.types import EntityRef, Intent, MatchConfidence, QueryOutcome

log = logging.getLogger("phucloi.query.orchestrator")

UNRECOGNIZED_NOTE = "unrecognized question"


def entity_note(ref: EntityRef) -> str | None:
    match = ref.match
    if match is None or match.confidence is MatchConfidence.NONE:
        return f"{ref.kind} '{ref.raw_name}' not found; name filter ignored"
    if match.confidence is MatchConfidence.AMBIGUOUS:
        names = ", ".join(match.candidates)
        return f"{ref.kind} '{ref.raw_name}' is ambiguous ({names}); name filter ignored"
    if match.confidence is MatchConfidence.FUZZY:
        return f"{ref.kind} '{ref.raw_name}' matched to '{match.display_name}'"
    return None


@dataclass
class QueryProcessor:
    store: OperationalStore
    business_timezone: str = "Asia/Ho_Chi_Minh"
    default_limit: int = 10
    max_limit: int = 50
    match_threshold: float = 0.80
    ambiguity_margin: float = 0.03
    context_max_bytes: int = 16384
    today: Callable[[], date] | None = None
    now: Callable[[], datetime] = utcnow

    resolver: EntityResolver = field(init=False, repr=False)
    extractor: ParameterExtractor = field(init=False, repr=False)
    dispatcher: AggregationDispatcher = field(init=False, repr=False)

    def __post_init__(self) -> None:
        today = self.today or partial(local_today, self.business_timezone)
        self.resolver = EntityResolver(
            store=self.store, threshold=self.match_threshold, ambiguity_margin=self.ambiguity_margin
        )
        self.extractor = ParameterExtractor(
            resolver=self.resolver, today=today, default_limit=self.default_limit, max_limit=self.max_limit
        )
        self.dispatcher = AggregationDispatcher(
            store=self.store, today=today, now=self.now, default_limit=self.default_limit
        )

    @classmethod
    def from_settings(cls, store: OperationalStore, settings: Settings) -> QueryProcessor:
        return cls(
            store=store,
            business_timezone=settings.business_timezone,
            default_limit=settings.default_result_limit,
            max_limit=settings.max_result_limit,
            match_threshold=settings.entity_match_threshold,
            ambiguity_margin=settings.entity_ambiguity_margin,
            context_max_bytes=settings.context_max_bytes,
        )

    def process_query(self, question: str) -> QueryOutcome:
        intent = classify(question or "")
        if intent is Intent.UNKNOWN:
            return QueryOutcome(intent=Intent.UNKNOWN, data=None, note=UNRECOGNIZED_NOTE)

        params = self.extractor.extract(question, intent)
        notes = list(params.assumptions)
        if params.entity_ref is not None:
            note = entity_note(params.entity_ref)
            if note:
                notes.append(note)

        result = self.dispatcher.aggregate(intent, params)
        notes.extend(result.notes)

        payload = assemble(intent, result, max_bytes=self.context_max_bytes)
        if payload.truncated:
            notes.append(f"context truncated: {payload.data['rows_omitted']} rows omitted")

        log.info(
            "query_processed",
            extra={"intent": intent.value, "is_empty": result.is_empty, "notes": len(notes)},
        )
        return QueryOutcome(intent=intent, data=payload.data, note="; ".join(notes) or None)


def process_query(question: str, store: OperationalStore, settings: Settings | None = None) -> QueryOutcome:
    """One-shot helper: build a processor for ``store`` and answer ``question``."""
    if settings is None:
        return QueryProcessor(store=store).process_query(question)
    return QueryProcessor.from_settings(store, settings).process_query(question)
