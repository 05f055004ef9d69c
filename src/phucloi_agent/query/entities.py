"""Entity resolver: noisy name fragment → customer / factory record.

Exact (case- and diacritic-insensitive) lookup first, then a fuzzy pass with
rapidfuzz. Two candidates scoring within ``ambiguity_margin`` of each other
are never split arbitrarily: the reference is reported as ``AMBIGUOUS``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from rapidfuzz import fuzz

from phucloi_agent.common.utils import normalize_for_match
from phucloi_agent.query.store import OperationalStore, PartyRow
from phucloi_agent.query.types import EntityKind, EntityMatch, MatchConfidence

log = logging.getLogger("phucloi.query.entities")

# Legal-form words that carry no identity ("Công ty TNHH Hòa Phát" ≈ "Hòa Phát").
_NOISE_TOKENS = frozenset({"cong", "ty", "cty", "tnhh", "co", "phan", "cp", "xi", "mang", "nha", "may"})


def _core_tokens(normalized: str) -> str:
    tokens = [t for t in normalized.split() if t not in _NOISE_TOKENS]
    return " ".join(tokens) or normalized


def _score(target: str, candidate: str) -> float:
    """Similarity in [0, 1]: containment via token-set ratio, typos via ratio."""
    target_core = _core_tokens(target)
    candidate_core = _core_tokens(candidate)
    containment = fuzz.token_set_ratio(target_core, candidate_core)
    edit = fuzz.ratio(target_core, candidate_core)
    return max(containment, edit) / 100.0


@dataclass
class EntityResolver:
    store: OperationalStore
    threshold: float = 0.80
    ambiguity_margin: float = 0.03

    def resolve(self, raw_name: str, kind: EntityKind) -> EntityMatch:
        target = normalize_for_match(raw_name)
        if not target:
            return EntityMatch(confidence=MatchConfidence.NONE)

        parties = self.store.list_parties(kind)
        normalized = [(p, normalize_for_match(p.name)) for p in parties]

        exact = [p for p, name in normalized if name == target]
        if len(exact) == 1:
            return EntityMatch(
                confidence=MatchConfidence.EXACT,
                resolved_id=exact[0].party_id,
                display_name=exact[0].name,
                score=1.0,
            )
        if len(exact) > 1:
            log.info("entity_ambiguous_exact", extra={"kind": kind, "raw_name": raw_name, "count": len(exact)})
            return EntityMatch(
                confidence=MatchConfidence.AMBIGUOUS,
                score=1.0,
                candidates=tuple(sorted(p.name for p in exact)),
            )

        scored: list[tuple[float, PartyRow]] = sorted(
            ((_score(target, name), p) for p, name in normalized),
            key=lambda item: (-item[0], normalize_for_match(item[1].name)),
        )
        above = [(s, p) for s, p in scored if s >= self.threshold]
        if not above:
            return EntityMatch(confidence=MatchConfidence.NONE, score=scored[0][0] if scored else 0.0)

        best_score, best = above[0]
        tied = [p for s, p in above if best_score - s < self.ambiguity_margin]
        if len(tied) > 1:
            # "Hòa Phát" vs {"Hòa Phát", "Hòa Phát Hải Dương"}: the core-name match is not a guess.
            target_core = _core_tokens(target)
            same_core = [p for p in tied if _core_tokens(normalize_for_match(p.name)) == target_core]
            if len(same_core) == 1:
                tied = same_core
                best = same_core[0]
        if len(tied) > 1:
            log.info("entity_ambiguous_fuzzy", extra={"kind": kind, "raw_name": raw_name, "count": len(tied)})
            return EntityMatch(
                confidence=MatchConfidence.AMBIGUOUS,
                score=best_score,
                candidates=tuple(p.name for p in tied),
            )
        return EntityMatch(
            confidence=MatchConfidence.FUZZY,
            resolved_id=best.party_id,
            display_name=best.name,
            score=best_score,
        )
