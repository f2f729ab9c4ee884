from datetime import date
from decimal import Decimal

from pipeline.distribution import (
    MonthlyRevenue,
    aggregate_forecast,
    calculate_monthly_distribution,
    month_span,
    yearly_summary,
)


def test_month_span_counts_calendar_months_inclusively():
    assert month_span(date(2025, 1, 15), date(2025, 3, 20)) == 3
    assert month_span(date(2025, 1, 31), date(2025, 2, 1)) == 2
    assert month_span(date(2025, 6, 1), date(2025, 6, 30)) == 1
    assert month_span(date(2024, 11, 10), date(2025, 2, 5)) == 4


def test_even_split_over_three_months():
    entries = calculate_monthly_distribution(Decimal("12000"), Decimal("0.13"), date(2025, 1, 15), date(2025, 3, 20))

    assert [(e.year, e.month) for e in entries] == [(2025, 1), (2025, 2), (2025, 3)]
    assert all(e.sales_amount == Decimal("4000.00") for e in entries)
    assert all(e.margin_amount == Decimal("520.00") for e in entries)
    assert all(e.is_forecast for e in entries)


def test_single_month_gets_whole_amount():
    entries = calculate_monthly_distribution(Decimal("1000"), Decimal("0.13"), date(2025, 6, 1), date(2025, 6, 1))

    assert len(entries) == 1
    assert entries[0].sales_amount == Decimal("1000.00")
    assert entries[0].margin_amount == Decimal("130.00")


def test_distribution_crosses_year_boundary():
    entries = calculate_monthly_distribution(Decimal("6000"), Decimal("0.10"), date(2024, 11, 10), date(2025, 4, 2))

    assert [(e.year, e.month) for e in entries] == [
        (2024, 11), (2024, 12), (2025, 1), (2025, 2), (2025, 3), (2025, 4),
    ]


def test_closing_month_before_starting_month_gives_nothing():
    assert calculate_monthly_distribution(Decimal("1000"), Decimal("0.13"), date(2025, 5, 1), date(2025, 3, 31)) == []


def test_uneven_split_rounds_each_month_independently():
    entries = calculate_monthly_distribution(Decimal("100.00"), Decimal("0.13"), date(2025, 1, 1), date(2025, 3, 1))

    assert all(e.sales_amount == Decimal("33.33") for e in entries)
    assert all(e.margin_amount == Decimal("4.33") for e in entries)
    total = sum(e.sales_amount for e in entries)
    assert abs(total - Decimal("100.00")) <= Decimal("0.01") * len(entries)


def test_aggregate_sums_by_month_and_year():
    first = calculate_monthly_distribution(Decimal("12000"), Decimal("0.13"), date(2025, 11, 1), date(2026, 1, 31))
    second = calculate_monthly_distribution(Decimal("3000"), Decimal("0.20"), date(2025, 12, 1), date(2026, 2, 1))

    summary = aggregate_forecast(first + second)

    by_month = {(m.year, m.month): m for m in summary.by_month}
    assert by_month[(2025, 11)].sales_amount == Decimal("4000.00")
    assert by_month[(2025, 12)].sales_amount == Decimal("5000.00")
    assert by_month[(2025, 12)].margin_amount == Decimal("720.00")
    assert by_month[(2026, 2)].sales_amount == Decimal("1000.00")

    for year in summary.by_year:
        months = [m for m in summary.by_month if m.year == year.year]
        assert year.sales_amount == sum(m.sales_amount for m in months)
        assert year.margin_amount == sum(m.margin_amount for m in months)


def test_aggregate_filters_by_year_range():
    entries = calculate_monthly_distribution(Decimal("2400"), Decimal("0.13"), date(2024, 12, 1), date(2026, 1, 1))

    summary = aggregate_forecast(entries, start_year=2025, end_year=2025)

    assert {m.year for m in summary.by_month} == {2025}
    assert len(summary.by_month) == 12
    assert [y.year for y in summary.by_year] == [2025]


def test_yearly_summary_counts_months():
    entries = [
        MonthlyRevenue(2025, 11, Decimal("100.00"), Decimal("13.00")),
        MonthlyRevenue(2025, 12, Decimal("100.00"), Decimal("13.00")),
        MonthlyRevenue(2026, 1, Decimal("100.00"), Decimal("13.00")),
    ]

    summary = yearly_summary(entries)

    assert [(y.year, y.months, y.sales_amount) for y in summary] == [
        (2025, 2, Decimal("200.00")),
        (2026, 1, Decimal("100.00")),
    ]
    assert summary[0].as_dict()["gross_margin_amount"] == "26.00"
