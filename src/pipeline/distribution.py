"""Monthly revenue spread of a weighted deal amount.

Revenue is recognised linearly: the weighted amount is split evenly over
every calendar month between the starting and closing dates (both months
included). Each month is rounded to cents on its own, so the months may
drift from the total by a few cents; stored forecasts depend on that.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from pipeline.utils import money, to_decimal

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class MonthlyRevenue:
    year: int
    month: int
    sales_amount: Decimal
    margin_amount: Decimal
    is_forecast: bool = True

    def as_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "sales_amount": str(self.sales_amount),
            "gross_margin_amount": str(self.margin_amount),
            "is_forecast": self.is_forecast,
        }


@dataclass
class YearlyRevenue:
    year: int
    sales_amount: Decimal = ZERO
    margin_amount: Decimal = ZERO
    months: int = 0

    def as_dict(self) -> dict:
        return {
            "year": self.year,
            "sales_amount": str(self.sales_amount),
            "gross_margin_amount": str(self.margin_amount),
            "months": self.months,
        }


@dataclass
class ForecastSummary:
    by_month: list[MonthlyRevenue] = field(default_factory=list)
    by_year: list[YearlyRevenue] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "by_month": [
                {key: value for key, value in row.as_dict().items() if key != "is_forecast"}
                for row in self.by_month
            ],
            "by_year": [
                {key: value for key, value in row.as_dict().items() if key != "months"}
                for row in self.by_year
            ],
        }


def _first_of_month(value: date) -> date:
    return value.replace(day=1)


def _add_months(value: date, months: int) -> date:
    index = value.month - 1 + months
    return value.replace(year=value.year + index // 12, month=index % 12 + 1, day=1)


def month_span(starting_date: date, closing_date: date) -> int:
    """Inclusive number of calendar months covered by the two dates."""
    start = _first_of_month(starting_date)
    end = _first_of_month(closing_date)
    return (end.year - start.year) * 12 + (end.month - start.month) + 1


def calculate_monthly_distribution(
    weighted_amount,
    margin_percentage,
    starting_date: date,
    closing_date: date,
) -> list[MonthlyRevenue]:
    """Split ``weighted_amount`` evenly over every month in range.

    Returns an empty list when the closing month precedes the starting month.
    """
    months = month_span(starting_date, closing_date)
    if months <= 0:
        return []

    monthly_sales = to_decimal(weighted_amount) / months
    monthly_margin = monthly_sales * to_decimal(margin_percentage)
    sales_amount = money(monthly_sales)
    margin_amount = money(monthly_margin)

    start = _first_of_month(starting_date)
    distribution = []
    for offset in range(months):
        current = _add_months(start, offset)
        distribution.append(
            MonthlyRevenue(
                year=current.year,
                month=current.month,
                sales_amount=sales_amount,
                margin_amount=margin_amount,
            )
        )
    return distribution


def aggregate_forecast(
    entries: Iterable,
    start_year: int | None = None,
    end_year: int | None = None,
) -> ForecastSummary:
    """Roll monthly entries up by month, then by year.

    ``entries`` are ``MonthlyRevenue`` items or ``RevenueDistribution`` rows.
    Yearly totals are always the sum of the monthly totals.
    """
    monthly: dict[tuple[int, int], list[Decimal]] = defaultdict(lambda: [ZERO, ZERO])
    for entry in entries:
        if start_year is not None and entry.year < start_year:
            continue
        if end_year is not None and entry.year > end_year:
            continue
        totals = monthly[(entry.year, entry.month)]
        totals[0] += to_decimal(entry.sales_amount)
        totals[1] += to_decimal(_margin_of(entry))

    by_month = [
        MonthlyRevenue(year=year, month=month, sales_amount=money(sales), margin_amount=money(margin))
        for (year, month), (sales, margin) in sorted(monthly.items())
    ]
    return ForecastSummary(by_month=by_month, by_year=_roll_up_years(by_month))


def yearly_summary(entries: Iterable) -> list[YearlyRevenue]:
    """Per-year totals and month counts of one opportunity's distribution."""
    return aggregate_forecast(entries).by_year


def _roll_up_years(by_month: list[MonthlyRevenue]) -> list[YearlyRevenue]:
    years: dict[int, YearlyRevenue] = {}
    for row in by_month:
        summary = years.setdefault(row.year, YearlyRevenue(year=row.year))
        summary.sales_amount += row.sales_amount
        summary.margin_amount += row.margin_amount
        summary.months += 1
    return [
        YearlyRevenue(
            year=summary.year,
            sales_amount=money(summary.sales_amount),
            margin_amount=money(summary.margin_amount),
            months=summary.months,
        )
        for summary in sorted(years.values(), key=lambda s: s.year)
    ]


def _margin_of(entry) -> Decimal:
    # Stored rows name the column gross_margin_amount.
    if hasattr(entry, "margin_amount"):
        return entry.margin_amount
    return entry.gross_margin_amount
