"""Parameter extraction: month phrases, thresholds, limits, names, defaults."""
from __future__ import annotations

from datetime import date

from phucloi_agent.query.params import (
    ParameterExtractor,
    month_range,
    parse_cement_type,
    parse_entity_name,
    parse_limit,
    parse_month_phrases,
    parse_threshold_days,
)
from phucloi_agent.query.types import DateRange, Intent

TODAY = date(2026, 10, 17)


def _extractor(**kw) -> ParameterExtractor:
    return ParameterExtractor(today=lambda: TODAY, **kw)


def test_month_range_half_open():
    assert month_range(2026, 12) == DateRange(date(2026, 12, 1), date(2027, 1, 1))
    assert month_range(2026, 2).days == 28


def test_month_phrases_relative_and_explicit():
    ranges, malformed = parse_month_phrases("tháng này và tháng trước", TODAY)
    assert ranges == [month_range(2026, 10), month_range(2026, 9)]
    assert malformed == []

    ranges, _ = parse_month_phrases("Tháng 1/2025 bán bao nhiêu?", TODAY)
    assert ranges == [month_range(2025, 1)]

    ranges, _ = parse_month_phrases("tháng 3 năm 2024", TODAY)
    assert ranges == [month_range(2024, 3)]


def test_future_month_without_year_means_last_year():
    ranges, _ = parse_month_phrases("tháng 11", TODAY)
    assert ranges == [month_range(2025, 11)]


def test_previous_month_wraps_year():
    ranges, _ = parse_month_phrases("tháng trước", date(2026, 1, 5))
    assert ranges == [month_range(2025, 12)]


def test_malformed_month_is_reported():
    ranges, malformed = parse_month_phrases("tháng 13 bán được bao nhiêu", TODAY)
    assert ranges == []
    assert malformed == ["thang 13"]


def test_threshold_days():
    assert parse_threshold_days("Khách hàng nào nợ quá 90 ngày?") == 90
    assert parse_threshold_days("nợ quá 2 tháng") == 60
    assert parse_threshold_days("nợ quá hạn") is None
    assert parse_threshold_days("Khách hàng nào quá hạn trên 3 tháng?") == 90
    assert parse_threshold_days("nợ quá 2 tuần") == 14


def test_limit_and_cement_type():
    assert parse_limit("Top 5 khách hàng nợ nhiều nhất") == 5
    assert parse_limit("3 nhà máy mình nợ nhiều nhất") == 3
    assert parse_limit("Ai nợ nhiều nhất") is None
    assert parse_cement_type("Còn bao nhiêu xi măng PCB40 trong kho?") == "PCB40"
    assert parse_cement_type("tồn kho pc-50") == "PC50"
    assert parse_cement_type("tồn kho") is None


def test_entity_name_extraction():
    assert parse_entity_name("Công ty Hòa Phát còn nợ bao nhiêu?", "customer") == "Hòa Phát"
    assert parse_entity_name("Khách hàng Trạm trộn Thủy Nguyên đang nợ bao nhiêu", "customer") == "Trạm trộn Thủy Nguyên"
    assert parse_entity_name("Anh Tuấn nợ bao nhiêu?", "customer") == "Tuấn"
    assert parse_entity_name("Khách hàng nào nợ nhiều nhất?", "customer") is None
    assert parse_entity_name("Ai đang nợ tôi nhiều nhất?", "customer") is None
    assert parse_entity_name("Mình còn nợ nhà máy Hoàng Thạch bao nhiêu?", "supplier") == "Hoàng Thạch"


def test_honorific_needs_capitalized_name():
    assert parse_entity_name("chỉ tính khách hàng nào nợ nhiều nhất", "customer") is None


def test_monthly_sales_defaults_to_current_month_with_note():
    params = _extractor().extract("Bán được bao nhiêu tấn?", Intent.MONTHLY_SALES_VOLUME)
    assert params.date_range == month_range(2026, 10)
    assert params.assumptions == ["no month given, assumed current month (2026-10)"]


def test_monthly_sales_explicit_month_has_no_note():
    params = _extractor().extract("Tháng trước bán được bao nhiêu tấn PCB30?", Intent.MONTHLY_SALES_VOLUME)
    assert params.date_range == month_range(2026, 9)
    assert params.cement_type == "PCB30"
    assert params.assumptions == []


def test_malformed_month_degrades_to_default():
    params = _extractor().extract("Tháng 13 bán được bao nhiêu?", Intent.MONTHLY_SALES_VOLUME)
    assert params.date_range == month_range(2026, 10)
    assert "unrecognized month phrase 'thang 13'" in params.assumptions[0]


def test_revenue_comparison_uses_latest_month():
    params = _extractor().extract("So sánh doanh thu tháng trước với tháng này", Intent.REVENUE_COMPARISON)
    assert params.date_range == month_range(2026, 10)


def test_overdue_threshold_default_zero():
    params = _extractor().extract("Danh sách nợ quá hạn", Intent.OVERDUE_RECEIVABLES)
    assert params.threshold_days == 0
    assert params.limit == 10


def test_limit_clamped():
    params = _extractor(max_limit=20).extract("Top 500 khách hàng nợ nhiều nhất", Intent.TOP_DEBTORS)
    assert params.limit == 20
    params = _extractor().extract("Top 0 khách hàng nợ nhiều nhất", Intent.TOP_DEBTORS)
    assert params.limit == 1


def test_only_intent_relevant_fields_are_extracted():
    params = _extractor().extract("Còn bao nhiêu PCB40 trong kho tháng này?", Intent.CURRENT_INVENTORY)
    assert params.cement_type == "PCB40"
    assert params.date_range is None
    assert params.limit is None


def test_entity_ref_without_resolver_is_unresolved():
    params = _extractor().extract("Công ty Hòa Phát còn nợ bao nhiêu?", Intent.TOP_DEBTORS)
    assert params.entity_ref is not None
    assert params.entity_ref.kind == "customer"
    assert params.entity_ref.raw_name == "Hòa Phát"
    assert params.entity_ref.resolved_id is None


def test_overdue_threshold_in_months_after_tren():
    params = _extractor().extract("Khách hàng nào quá hạn trên 3 tháng?", Intent.OVERDUE_RECEIVABLES)
    assert params.threshold_days == 90
    assert params.assumptions == []


def test_unparsed_overdue_threshold_is_noted():
    params = _extractor().extract("Khách hàng nào quá hạn trên ba tháng?", Intent.OVERDUE_RECEIVABLES)
    assert params.threshold_days == 0
    assert len(params.assumptions) == 1
    assert "unrecognized overdue threshold 'qua han tren ba thang'" in params.assumptions[0]


def test_overdue_this_month_is_not_a_threshold():
    params = _extractor().extract("Khách hàng nào quá hạn tháng này?", Intent.OVERDUE_RECEIVABLES)
    assert params.threshold_days == 0
    assert params.assumptions == []


def test_revenue_comparison_notes_ignored_month():
    params = _extractor().extract("So sánh doanh thu tháng 9 với tháng 7", Intent.REVENUE_COMPARISON)
    assert params.date_range == month_range(2026, 9)
    assert params.assumptions == ["month 2026-07 ignored, compared 2026-09 with 2026-08"]


def test_revenue_comparison_adjacent_months_have_no_note():
    params = _extractor().extract("So sánh doanh thu tháng trước với tháng này", Intent.REVENUE_COMPARISON)
    assert params.assumptions == []


def test_monthly_sales_notes_second_month():
    params = _extractor().extract("Bán được bao nhiêu tấn tháng 8 và tháng 9?", Intent.MONTHLY_SALES_VOLUME)
    assert params.date_range == month_range(2026, 8)
    assert params.assumptions == ["month 2026-09 ignored, used 2026-08"]
