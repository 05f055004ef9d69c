"""Aggregation dispatcher: (intent, parameters) → typed result.

Each intent maps to exactly one handler issuing a fixed, small number of
grouped queries against the injected ``OperationalStore``. Every number in a
result comes from those queries; handlers only sort, cap and subtract.
``StoreUnavailableError`` from the store is propagated untouched.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from phucloi_agent.common.utils import utcnow
from phucloi_agent.query.params import month_range, previous_month
from phucloi_agent.query.store import BalanceRow, OperationalStore
from phucloi_agent.query.types import (
    AggregationResult,
    DateRange,
    DebtRankingResult,
    Intent,
    InventoryResult,
    MonthlySalesResult,
    OverdueItem,
    OverdueResult,
    PartyBalance,
    PeriodRevenue,
    QueryParameters,
    RevenueComparisonResult,
    SalesByType,
    StockByType,
)

log = logging.getLogger("phucloi.query.aggregate")


def _round(value: float) -> float:
    # Float sums of VND amounts / tons carry binary noise; 4 decimals is below any real unit.
    return round(value, 4)


def rank_balances(rows: list[BalanceRow], limit: int) -> list[PartyBalance]:
    """Descending by amount; equal amounts ascending by name; at most ``limit``."""
    ordered = sorted(rows, key=lambda r: (-r.remaining_amount, r.name, r.party_id))
    return [
        PartyBalance(
            party_id=r.party_id,
            name=r.name,
            remaining_amount=_round(r.remaining_amount),
            phone=r.phone,
            open_items=r.open_items,
        )
        for r in ordered[:limit]
    ]


def preceding_period(current: DateRange) -> DateRange:
    if current.is_calendar_month():
        return previous_month(current)
    return DateRange(start=current.start - timedelta(days=current.days), end=current.start)


@dataclass
class AggregationDispatcher:
    store: OperationalStore
    today: Callable[[], date] = date.today
    now: Callable[[], datetime] = utcnow
    default_limit: int = 10
    _handlers: dict[Intent, Callable[[QueryParameters], AggregationResult]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._handlers = {
            Intent.TOP_DEBTORS: self._top_debtors,
            Intent.MONTHLY_SALES_VOLUME: self._monthly_sales,
            Intent.OVERDUE_RECEIVABLES: self._overdue_receivables,
            Intent.REVENUE_COMPARISON: self._revenue_comparison,
            Intent.CURRENT_INVENTORY: self._current_inventory,
            Intent.SUPPLIER_PAYABLES: self._supplier_payables,
        }

    def aggregate(self, intent: Intent, params: QueryParameters) -> AggregationResult:
        handler = self._handlers.get(intent)
        if handler is None:
            raise ValueError(f"no aggregation for intent {intent.value}")
        result = handler(params)
        log.info(
            "aggregation_done",
            extra={"intent": intent.value, "is_empty": result.is_empty, "notes": len(result.notes)},
        )
        return result

    # -- debts ----------------------------------------------------------------

    def _ranking(self, intent: Intent, params: QueryParameters) -> DebtRankingResult:
        kind = "supplier" if intent is Intent.SUPPLIER_PAYABLES else "customer"
        limit = params.limit or self.default_limit
        party_id = params.entity_ref.resolved_id if params.entity_ref else None

        rows = self.store.unpaid_balances(kind, party_id=party_id)
        ranked = rank_balances(rows, limit)
        return DebtRankingResult(
            intent=intent,
            generated_at=self.now(),
            is_empty=not ranked,
            rows=ranked,
            total_remaining=_round(sum(r.remaining_amount for r in rows)),
            limit=limit,
            filtered_party_id=party_id,
        )

    def _top_debtors(self, params: QueryParameters) -> AggregationResult:
        return self._ranking(Intent.TOP_DEBTORS, params)

    def _supplier_payables(self, params: QueryParameters) -> AggregationResult:
        return self._ranking(Intent.SUPPLIER_PAYABLES, params)

    def _overdue_receivables(self, params: QueryParameters) -> AggregationResult:
        today = self.today()
        threshold = max(params.threshold_days or 0, 0)
        limit = params.limit or self.default_limit
        customer_id = params.entity_ref.resolved_id if params.entity_ref else None

        # (today - due).days > threshold  ⇔  due < today - threshold
        cutoff = today - timedelta(days=threshold)
        rows = self.store.open_receivables_due_before(cutoff, customer_id=customer_id)
        items = [
            OverdueItem(
                receivable_id=r.receivable_id,
                customer_id=r.customer_id,
                customer_name=r.customer_name,
                remaining_amount=_round(r.remaining_amount),
                due_date=r.due_date.isoformat(),
                days_overdue=(today - r.due_date).days,
                phone=r.phone,
            )
            for r in rows
        ]
        items.sort(key=lambda i: (-i.days_overdue, -i.remaining_amount, i.customer_name, i.receivable_id))
        return OverdueResult(
            intent=Intent.OVERDUE_RECEIVABLES,
            generated_at=self.now(),
            is_empty=not items,
            rows=items[:limit],
            threshold_days=threshold,
            as_of=today.isoformat(),
            count=len(items),
            total_overdue=_round(sum(i.remaining_amount for i in items)),
            limit=limit,
        )

    # -- sales ----------------------------------------------------------------

    def _period(self, params: QueryParameters) -> DateRange:
        if params.date_range is not None:
            return params.date_range
        today = self.today()
        return month_range(today.year, today.month)

    def _monthly_sales(self, params: QueryParameters) -> AggregationResult:
        period = self._period(params)
        rows = self.store.sales_by_cement_type(period.start, period.end, cement_type=params.cement_type)
        by_type = sorted(
            (
                SalesByType(
                    cement_type=r.cement_type,
                    quantity=_round(r.quantity),
                    revenue=_round(r.amount),
                    order_count=r.count,
                )
                for r in rows
            ),
            key=lambda s: (-s.quantity, s.cement_type),
        )
        return MonthlySalesResult(
            intent=Intent.MONTHLY_SALES_VOLUME,
            generated_at=self.now(),
            is_empty=not by_type,
            period_start=period.start.isoformat(),
            period_end=period.end.isoformat(),
            by_type=by_type,
            total_quantity=_round(sum(r.quantity for r in rows)),
            total_revenue=_round(sum(r.amount for r in rows)),
            order_count=sum(r.count for r in rows),
        )

    def _revenue_comparison(self, params: QueryParameters) -> AggregationResult:
        current = self._period(params)
        previous = preceding_period(current)
        cur_rows = self.store.sales_by_cement_type(current.start, current.end)
        prev_rows = self.store.sales_by_cement_type(previous.start, previous.end)

        cur_revenue = _round(sum(r.amount for r in cur_rows))
        prev_revenue = _round(sum(r.amount for r in prev_rows))
        computable = prev_revenue != 0
        delta = round((cur_revenue - prev_revenue) / prev_revenue * 100, 2) if computable else 0.0

        notes: list[str] = []
        if not computable:
            notes.append(
                f"revenue delta not computable: no revenue in previous period "
                f"{previous.start.isoformat()}..{previous.end.isoformat()}"
            )
        return RevenueComparisonResult(
            intent=Intent.REVENUE_COMPARISON,
            generated_at=self.now(),
            is_empty=not cur_rows and not prev_rows,
            notes=notes,
            current=PeriodRevenue(
                start=current.start.isoformat(),
                end=current.end.isoformat(),
                revenue=cur_revenue,
                quantity=_round(sum(r.quantity for r in cur_rows)),
            ),
            previous=PeriodRevenue(
                start=previous.start.isoformat(),
                end=previous.end.isoformat(),
                revenue=prev_revenue,
                quantity=_round(sum(r.quantity for r in prev_rows)),
            ),
            delta_percent=delta,
            delta_computable=computable,
        )

    # -- inventory ------------------------------------------------------------

    def _current_inventory(self, params: QueryParameters) -> AggregationResult:
        purchased = {r.cement_type: r.quantity for r in self.store.purchases_by_cement_type(
            None, None, cement_type=params.cement_type)}
        sold = {r.cement_type: r.quantity for r in self.store.sales_by_cement_type(
            None, None, cement_type=params.cement_type)}

        notes: list[str] = []
        by_type: list[StockByType] = []
        for code in sorted(set(purchased) | set(sold)):
            bought = _round(purchased.get(code, 0.0))
            out = _round(sold.get(code, 0.0))
            on_hand = _round(bought - out)
            if on_hand < 0:
                notes.append(
                    f"data inconsistency: {code} sold {out:g} exceeds purchased {bought:g}; "
                    f"on-hand {on_hand:g} reported as 0"
                )
                log.warning("inventory_negative", extra={"cement_type": code, "on_hand": on_hand})
                on_hand = 0.0
            by_type.append(StockByType(cement_type=code, purchased=bought, sold=out, on_hand=on_hand))

        return InventoryResult(
            intent=Intent.CURRENT_INVENTORY,
            generated_at=self.now(),
            is_empty=not by_type,
            notes=notes,
            as_of=self.today().isoformat(),
            by_type=by_type,
            total_purchased=_round(sum(s.purchased for s in by_type)),
            total_sold=_round(sum(s.sold for s in by_type)),
            total_on_hand=_round(sum(s.on_hand for s in by_type)),
        )
