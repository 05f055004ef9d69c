"""Types shared by the AI query engine.

``Intent`` is a closed enumeration: every consumer must handle ``UNKNOWN``.
Aggregation results are one dataclass per intent so the payload shape of each
intent is fixed and reviewable; sequences are always lists, never ``None``.
"""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Literal

EntityKind = Literal["customer", "supplier"]


class Intent(str, enum.Enum):
    TOP_DEBTORS = "TOP_DEBTORS"
    MONTHLY_SALES_VOLUME = "MONTHLY_SALES_VOLUME"
    OVERDUE_RECEIVABLES = "OVERDUE_RECEIVABLES"
    REVENUE_COMPARISON = "REVENUE_COMPARISON"
    CURRENT_INVENTORY = "CURRENT_INVENTORY"
    SUPPLIER_PAYABLES = "SUPPLIER_PAYABLES"
    UNKNOWN = "UNKNOWN"


class MatchConfidence(str, enum.Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    AMBIGUOUS = "ambiguous"
    NONE = "none"


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DateRange:
    """Half-open ``[start, end)`` range of business-local dates."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def is_calendar_month(self) -> bool:
        if self.start.day != 1 or self.end.day != 1:
            return False
        months = (self.end.year - self.start.year) * 12 + self.end.month - self.start.month
        return months == 1

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class EntityMatch:
    confidence: MatchConfidence
    resolved_id: str | None = None
    display_name: str | None = None
    score: float = 0.0
    candidates: tuple[str, ...] = ()

    @property
    def is_resolved(self) -> bool:
        return self.confidence in (MatchConfidence.EXACT, MatchConfidence.FUZZY)


@dataclass
class EntityRef:
    kind: EntityKind
    raw_name: str
    match: EntityMatch | None = None

    @property
    def resolved_id(self) -> str | None:
        if self.match is not None and self.match.is_resolved:
            return self.match.resolved_id
        return None


@dataclass
class QueryParameters:
    date_range: DateRange | None = None
    entity_ref: EntityRef | None = None
    threshold_days: int | None = None
    limit: int | None = None
    cement_type: str | None = None
    # Defaults that materially changed the query, reported back to the user.
    assumptions: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Aggregation results
# ---------------------------------------------------------------------------

@dataclass
class AggregationResult:
    intent: Intent
    generated_at: datetime
    is_empty: bool
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["intent"] = self.intent.value
        data["generated_at"] = self.generated_at.isoformat()
        data.pop("notes")
        return data


@dataclass
class PartyBalance:
    party_id: str
    name: str
    remaining_amount: float
    phone: str | None = None
    open_items: int = 0


@dataclass
class DebtRankingResult(AggregationResult):
    """TOP_DEBTORS and SUPPLIER_PAYABLES: balances ranked by amount."""

    rows: list[PartyBalance] = field(default_factory=list)
    total_remaining: float = 0.0
    limit: int = 10
    filtered_party_id: str | None = None


@dataclass
class SalesByType:
    cement_type: str
    quantity: float
    revenue: float
    order_count: int


@dataclass
class MonthlySalesResult(AggregationResult):
    period_start: str = ""
    period_end: str = ""
    by_type: list[SalesByType] = field(default_factory=list)
    total_quantity: float = 0.0
    total_revenue: float = 0.0
    order_count: int = 0


@dataclass
class OverdueItem:
    receivable_id: str
    customer_id: str
    customer_name: str
    remaining_amount: float
    due_date: str
    days_overdue: int
    phone: str | None = None


@dataclass
class OverdueResult(AggregationResult):
    rows: list[OverdueItem] = field(default_factory=list)
    threshold_days: int = 0
    as_of: str = ""
    count: int = 0
    total_overdue: float = 0.0
    limit: int = 10


@dataclass
class PeriodRevenue:
    start: str
    end: str
    revenue: float
    quantity: float


@dataclass
class RevenueComparisonResult(AggregationResult):
    current: PeriodRevenue | None = None
    previous: PeriodRevenue | None = None
    delta_percent: float = 0.0
    delta_computable: bool = False


@dataclass
class StockByType:
    cement_type: str
    purchased: float
    sold: float
    on_hand: float


@dataclass
class InventoryResult(AggregationResult):
    as_of: str = ""
    by_type: list[StockByType] = field(default_factory=list)
    total_purchased: float = 0.0
    total_sold: float = 0.0
    total_on_hand: float = 0.0


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

@dataclass
class ContextPayload:
    data: dict[str, Any]
    text: str
    truncated: bool = False


@dataclass
class QueryOutcome:
    intent: Intent
    data: dict[str, Any] | None
    note: str | None = None

    def __post_init__(self) -> None:
        if (self.data is None) != (self.intent is Intent.UNKNOWN):
            raise ValueError("data must be None exactly when intent is UNKNOWN")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"intent": self.intent.value, "data": self.data}
        if self.note:
            out["note"] = self.note
        return out
