"""Parameter extraction from Vietnamese questions, guided by the intent.

Extraction never fails: unparseable or absent parameters fall back to the
per-intent defaults below, and a default that changes what is queried is
recorded in ``QueryParameters.assumptions``.

  MONTHLY_SALES_VOLUME  date_range ← month phrase, default current month
  REVENUE_COMPARISON    date_range ← latest month mentioned, default current month
  OVERDUE_RECEIVABLES   threshold_days ← "N ngày" / "N tuần" / "N tháng", default 0
  TOP_DEBTORS           limit, customer reference
  SUPPLIER_PAYABLES     limit, factory reference
  CURRENT_INVENTORY     cement type code
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from phucloi_agent.common.utils import normalize_for_match
from phucloi_agent.query.entities import EntityResolver
from phucloi_agent.query.types import DateRange, EntityKind, EntityRef, Intent, QueryParameters

log = logging.getLogger("phucloi.query.params")

_MONTH_RE = re.compile(
    r"(?<![a-z0-9])thang (?:(nay)|(truoc|vua roi|vua qua|roi)|(\d{1,2})(?: (?:nam )?(\d{4}))?)(?![a-z0-9])"
)
_DAYS_RE = re.compile(r"(?<![a-z0-9])(\d{1,4}) ngay(?![a-z0-9])")
_WEEKS_RE = re.compile(r"(?<![a-z0-9])(\d{1,2}) tuan(?![a-z0-9])")
_MONTHS_THRESHOLD_RE = re.compile(r"(?<![a-z0-9])(\d{1,2}) thang(?![a-z0-9])")
# "quá hạn trên ba tháng": a threshold was asked for even if its number is not parseable.
_THRESHOLD_HINT_RE = re.compile(
    r"(?<![a-z0-9])(?:qua|tren|hon)(?: han)?(?: (?:tren|hon))? (?!han )[a-z0-9]+ (?:ngay|tuan|thang)(?![a-z0-9])"
)
_TOP_RE = re.compile(
    r"(?<![a-z0-9])(?:top (\d{1,3})|(\d{1,3}) (?:khach hang|khach|nha may|nha cung cap|cong ty|doanh nghiep))(?![a-z0-9])"
)
_CEMENT_RE = re.compile(r"(?<![a-z0-9])(pcb|pc) ?(\d{2})(?![a-z0-9])")

_CUSTOMER_MARKERS: tuple[tuple[str, ...], ...] = (
    ("khach", "hang"),
    ("cong", "ty"),
    ("cty",),
    ("doanh", "nghiep"),
)
_SUPPLIER_MARKERS: tuple[tuple[str, ...], ...] = (
    ("nha", "cung", "cap"),
    ("nha", "may"),
    ("xi", "mang"),
)
# Honorifics only count when followed by a capitalized name ("anh Tuấn", not "chỉ tính").
_PERSON_MARKERS: tuple[tuple[str, ...], ...] = (("ong",), ("ba",), ("anh",), ("chi",))

_NAME_STOP_WORDS = frozenset({
    "no", "con", "dang", "co", "da", "bao", "nhieu", "hien", "thang", "nao", "toi", "minh",
    "phai", "la", "nay", "tong", "qua", "tra", "thu", "bi", "duoc", "top", "nhat", "kia",
    "do", "ay", "chua", "van", "het", "bay", "gio", "tien", "cua", "voi", "va", "trong",
})
_MAX_NAME_TOKENS = 6


def month_range(year: int, month: int) -> DateRange:
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return DateRange(start=start, end=end)


def previous_month(rng: DateRange) -> DateRange:
    if rng.start.month == 1:
        return month_range(rng.start.year - 1, 12)
    return month_range(rng.start.year, rng.start.month - 1)


def parse_month_phrases(text: str, today: date) -> tuple[list[DateRange], list[str]]:
    """All month references in order of appearance, plus malformed phrases."""
    normalized = normalize_for_match(text)
    current = month_range(today.year, today.month)
    found: list[DateRange] = []
    malformed: list[str] = []
    for m in _MONTH_RE.finditer(normalized):
        this_month, last_month, num, year = m.groups()
        if this_month:
            found.append(current)
        elif last_month:
            found.append(previous_month(current))
        else:
            month = int(num)
            if not 1 <= month <= 12:
                malformed.append(m.group(0))
                continue
            if year:
                found.append(month_range(int(year), month))
            elif month > today.month:
                # "tháng 11" asked in March means last November.
                found.append(month_range(today.year - 1, month))
            else:
                found.append(month_range(today.year, month))
    return found, malformed


def parse_threshold_days(text: str) -> int | None:
    normalized = normalize_for_match(text)
    m = _DAYS_RE.search(normalized)
    if m:
        return int(m.group(1))
    m = _WEEKS_RE.search(normalized)
    if m:
        return int(m.group(1)) * 7
    m = _MONTHS_THRESHOLD_RE.search(normalized)
    if m:
        return int(m.group(1)) * 30
    return None


def parse_limit(text: str) -> int | None:
    m = _TOP_RE.search(normalize_for_match(text))
    if not m:
        return None
    return int(m.group(1) or m.group(2))


def parse_cement_type(text: str) -> str | None:
    m = _CEMENT_RE.search(normalize_for_match(text))
    if not m:
        return None
    return f"{m.group(1).upper()}{m.group(2)}"


def _match_marker(norm_tokens: list[str], i: int, markers: tuple[tuple[str, ...], ...]) -> int:
    for marker in markers:
        if tuple(norm_tokens[i : i + len(marker)]) == marker:
            return len(marker)
    return 0


def parse_entity_name(text: str, kind: EntityKind) -> str | None:
    """Name fragment following a customer/supplier marker, in original spelling."""
    raw_tokens = re.findall(r"\w+", text)
    norm_tokens = [normalize_for_match(t) for t in raw_tokens]
    markers = _CUSTOMER_MARKERS if kind == "customer" else _SUPPLIER_MARKERS

    for i in range(len(norm_tokens)):
        width = _match_marker(norm_tokens, i, markers)
        person = False
        if not width and kind == "customer":
            width = _match_marker(norm_tokens, i, _PERSON_MARKERS)
            person = bool(width)
        if not width:
            continue

        j = i + width
        if person and (j >= len(raw_tokens) or not raw_tokens[j][:1].isupper()):
            continue
        name: list[str] = []
        while j < len(raw_tokens) and len(name) < _MAX_NAME_TOKENS:
            if norm_tokens[j] in _NAME_STOP_WORDS or _CEMENT_RE.fullmatch(norm_tokens[j]):
                break
            name.append(raw_tokens[j])
            j += 1
        if name:
            return " ".join(name)
    return None


@dataclass
class ParameterExtractor:
    resolver: EntityResolver | None = None
    today: Callable[[], date] = date.today
    default_limit: int = 10
    max_limit: int = 50

    def _clamp_limit(self, value: int | None) -> int:
        if value is None:
            return self.default_limit
        return max(1, min(value, self.max_limit))

    def _entity(self, text: str, kind: EntityKind) -> EntityRef | None:
        raw = parse_entity_name(text, kind)
        if raw is None:
            return None
        ref = EntityRef(kind=kind, raw_name=raw)
        if self.resolver is not None:
            ref.match = self.resolver.resolve(raw, kind)
        return ref

    def _month_or_default(self, text: str, today: date, params: QueryParameters, *, latest: bool) -> None:
        ranges, malformed = parse_month_phrases(text, today)
        if ranges:
            chosen = max(ranges, key=lambda r: r.start) if latest else ranges[0]
            params.date_range = chosen
            used = {chosen, previous_month(chosen)} if latest else {chosen}
            for rng in ranges:
                if rng in used:
                    continue
                used.add(rng)
                if latest:
                    params.assumptions.append(
                        f"month {rng.start:%Y-%m} ignored, compared {chosen.start:%Y-%m}"
                        f" with {previous_month(chosen).start:%Y-%m}"
                    )
                else:
                    params.assumptions.append(f"month {rng.start:%Y-%m} ignored, used {chosen.start:%Y-%m}")
            return
        params.date_range = month_range(today.year, today.month)
        label = f"{today.year}-{today.month:02d}"
        if malformed:
            params.assumptions.append(
                f"unrecognized month phrase '{malformed[0]}', assumed current month ({label})"
            )
        else:
            params.assumptions.append(f"no month given, assumed current month ({label})")

    def extract(self, text: str, intent: Intent) -> QueryParameters:
        params = QueryParameters()
        today = self.today()

        if intent is Intent.MONTHLY_SALES_VOLUME:
            self._month_or_default(text, today, params, latest=False)
            params.cement_type = parse_cement_type(text)
        elif intent is Intent.REVENUE_COMPARISON:
            self._month_or_default(text, today, params, latest=True)
        elif intent is Intent.OVERDUE_RECEIVABLES:
            threshold = parse_threshold_days(text)
            params.threshold_days = threshold if threshold is not None else 0
            if threshold is None:
                hint = _THRESHOLD_HINT_RE.search(normalize_for_match(text))
                if hint:
                    params.assumptions.append(
                        f"unrecognized overdue threshold '{hint.group(0)}', listed everything past due"
                    )
            params.limit = self._clamp_limit(parse_limit(text))
            params.entity_ref = self._entity(text, "customer")
        elif intent is Intent.TOP_DEBTORS:
            params.limit = self._clamp_limit(parse_limit(text))
            params.entity_ref = self._entity(text, "customer")
        elif intent is Intent.SUPPLIER_PAYABLES:
            params.limit = self._clamp_limit(parse_limit(text))
            params.entity_ref = self._entity(text, "supplier")
        elif intent is Intent.CURRENT_INVENTORY:
            params.cement_type = parse_cement_type(text)

        log.debug("params_extracted", extra={"intent": intent.value, "assumptions": params.assumptions})
        return params
