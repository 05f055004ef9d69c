"""Rule-table intent classifier for Vietnamese business questions.

The table is data: ``INTENT_RULES`` is an ordered tuple of ``IntentRule``.
A rule matches when *every* one of its phrase groups has at least one phrase
present in the normalized question (diacritics stripped, lowercase, single
spaces). The first matching rule wins, so more specific intents are declared
before generic ones:

  * ``OVERDUE_RECEIVABLES`` before ``TOP_DEBTORS`` ("nợ quá 90 ngày")
  * ``SUPPLIER_PAYABLES`` before ``TOP_DEBTORS`` ("nợ nhà máy nhiều nhất")
  * ``REVENUE_COMPARISON`` before ``MONTHLY_SALES_VOLUME``

Phrases are regular expressions over the normalized text and are matched on
word boundaries. Nothing matching yields ``Intent.UNKNOWN``.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from phucloi_agent.common.utils import normalize_for_match
from phucloi_agent.query.types import Intent

log = logging.getLogger("phucloi.query.intents")

_DEBT_WORDS = ("no", "cong no", "con no", "dang no", "phai thu")


@dataclass(frozen=True)
class IntentRule:
    intent: Intent
    groups: tuple[tuple[str, ...], ...]
    name: str = ""

    def compiled(self) -> tuple[re.Pattern[str], ...]:
        return tuple(
            re.compile(r"(?<![a-z0-9])(?:" + "|".join(group) + r")(?![a-z0-9])")
            for group in self.groups
        )


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        Intent.OVERDUE_RECEIVABLES,
        (("qua han", "tre han", "het han", "no xau", "no qua"),),
        name="overdue_explicit",
    ),
    IntentRule(
        Intent.OVERDUE_RECEIVABLES,
        (_DEBT_WORDS, (r"\d+ ngay",)),
        name="overdue_day_count",
    ),
    IntentRule(
        Intent.SUPPLIER_PAYABLES,
        (("phai tra", "no nha may", "no nha cung cap", "no nha san xuat",
          # First-person debtor only; "mình" doubles as a given name ("chị Minh").
          r"(?:toi|chung toi|chung ta) (?:dang |con )?no"),),
        name="payables_explicit",
    ),
    IntentRule(
        Intent.SUPPLIER_PAYABLES,
        (_DEBT_WORDS, ("nha may", "nha cung cap", "nha san xuat")),
        name="payables_supplier_debt",
    ),
    IntentRule(
        Intent.TOP_DEBTORS,
        (_DEBT_WORDS, ("nhieu nhat", "top", "lon nhat", "cao nhat", "nhieu")),
        name="top_debtors",
    ),
    IntentRule(
        Intent.REVENUE_COMPARISON,
        (("so sanh", "so voi", "tang truong", "chenh lech", "tang hay giam"), ("doanh thu", "doanh so")),
        name="revenue_comparison",
    ),
    IntentRule(
        Intent.CURRENT_INVENTORY,
        (("kho", "ton kho", "ton", "hang ton", "con lai bao nhieu xi mang"),),
        name="inventory",
    ),
    IntentRule(
        Intent.MONTHLY_SALES_VOLUME,
        (("ban", "ban duoc", "ban ra", "xuat ban", "xuat hang", "giao"), ("thang", "tan", "bao nhieu", "san luong")),
        name="monthly_sales_sold",
    ),
    IntentRule(
        Intent.MONTHLY_SALES_VOLUME,
        (("san luong", "doanh thu", "doanh so"), ("thang",)),
        name="monthly_sales_output",
    ),
    IntentRule(
        Intent.TOP_DEBTORS,
        (("cong no", "con no", "dang no", "phai thu", "no bao nhieu", "no toi"),),
        name="debtors_generic",
    ),
)

_COMPILED: tuple[tuple[IntentRule, tuple[re.Pattern[str], ...]], ...] = tuple(
    (rule, rule.compiled()) for rule in INTENT_RULES
)


def match_rule(text: str) -> IntentRule | None:
    """Return the first rule matching ``text`` (raw question), if any."""
    normalized = normalize_for_match(text)
    if not normalized:
        return None
    for rule, patterns in _COMPILED:
        if all(p.search(normalized) for p in patterns):
            return rule
    return None


def classify(text: str) -> Intent:
    rule = match_rule(text)
    if rule is None:
        log.info("intent_unknown", extra={"question": text})
        return Intent.UNKNOWN
    log.info("intent_matched", extra={"intent": rule.intent.value, "rule": rule.name})
    return rule.intent
