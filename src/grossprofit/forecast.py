"""Weekly rollups, day-of-week averages and sales anomalies for one month.

Reads finished StoreResult values; never feeds back into the calculation.
"""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

from grossprofit.models import StoreResult
from grossprofit.numeric import safe_divide


@dataclass(frozen=True)
class WeekRange:
    week_number: int
    start_day: int
    end_day: int


@dataclass(frozen=True)
class WeeklySummary:
    week_number: int
    start_day: int
    end_day: int
    total_sales: float
    total_gross_profit: float
    gross_profit_rate: float
    days: int  # days with sales


@dataclass(frozen=True)
class DayOfWeekAverage:
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    average_sales: float
    count: int


@dataclass(frozen=True)
class Anomaly:
    day: int
    value: float
    mean: float
    std_dev: float
    z_score: float
    is_anomaly: bool


@dataclass(frozen=True)
class ForecastInput:
    year: int
    month: int
    daily_sales: Dict[int, float] = field(default_factory=dict)
    daily_gross_profit: Dict[int, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ForecastResult:
    weekly_summaries: Tuple[WeeklySummary, ...]
    day_of_week_averages: Tuple[DayOfWeekAverage, ...]
    anomalies: Tuple[Anomaly, ...]


def calculate_std_dev(values: Sequence[float]) -> Tuple[float, float]:
    """Population mean and standard deviation; (0, 0) for no values."""

    if not values:
        return 0.0, 0.0
    n = len(values)
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    return mean, math.sqrt(variance)


def _sunday_index(year: int, month: int, day: int) -> int:
    return (calendar.weekday(year, month, day) + 1) % 7


def get_week_ranges(year: int, month: int) -> List[WeekRange]:
    """Monday-to-Sunday weeks, the first and last clipped to the month."""

    days_in_month = calendar.monthrange(year, month)[1]
    weeks: List[WeekRange] = []
    day = 1
    while day <= days_in_month:
        until_sunday = 6 - calendar.weekday(year, month, day)
        end = min(day + until_sunday, days_in_month)
        weeks.append(WeekRange(week_number=len(weeks) + 1, start_day=day, end_day=end))
        day = end + 1
    return weeks


def calculate_weekly_summaries(inp: ForecastInput) -> List[WeeklySummary]:
    out: List[WeeklySummary] = []
    for w in get_week_ranges(inp.year, inp.month):
        sales = gp = 0.0
        days = 0
        for d in range(w.start_day, w.end_day + 1):
            s = float(inp.daily_sales.get(d, 0.0))
            if s > 0:
                days += 1
            sales += s
            gp += float(inp.daily_gross_profit.get(d, 0.0))
        out.append(
            WeeklySummary(
                week_number=w.week_number,
                start_day=w.start_day,
                end_day=w.end_day,
                total_sales=sales,
                total_gross_profit=gp,
                gross_profit_rate=safe_divide(gp, sales),
                days=days,
            )
        )
    return out


def calculate_day_of_week_averages(inp: ForecastInput) -> List[DayOfWeekAverage]:
    totals = [0.0] * 7
    counts = [0] * 7
    for d in range(1, calendar.monthrange(inp.year, inp.month)[1] + 1):
        s = float(inp.daily_sales.get(d, 0.0))
        if s > 0:
            dow = _sunday_index(inp.year, inp.month, d)
            totals[dow] += s
            counts[dow] += 1
    return [
        DayOfWeekAverage(day_of_week=i, average_sales=safe_divide(totals[i], counts[i]), count=counts[i])
        for i in range(7)
    ]


def detect_anomalies(daily_sales: Mapping[int, float], threshold: float = 2.0) -> List[Anomaly]:
    """Days whose sales sit more than ``threshold`` standard deviations from the mean.

    Only days with positive sales are considered; fewer than three of them,
    or zero spread, yields no anomalies.
    """

    entries = sorted((d, float(v)) for d, v in daily_sales.items() if v > 0)
    if len(entries) < 3:
        return []
    mean, std = calculate_std_dev([v for _, v in entries])
    if std == 0:
        return []

    out: List[Anomaly] = []
    for day, value in entries:
        z = (value - mean) / std
        if abs(z) > threshold:
            out.append(Anomaly(day=day, value=value, mean=mean, std_dev=std, z_score=z, is_anomaly=True))
    return out


def calculate_forecast(inp: ForecastInput) -> ForecastResult:
    return ForecastResult(
        weekly_summaries=tuple(calculate_weekly_summaries(inp)),
        day_of_week_averages=tuple(calculate_day_of_week_averages(inp)),
        anomalies=tuple(detect_anomalies(inp.daily_sales)),
    )


def build_forecast_input(result: StoreResult, year: int, month: int) -> ForecastInput:
    # Daily gross profit is a rough sales minus purchase cost.
    sales = {d: rec.sales for d, rec in result.daily.items()}
    gp = {d: rec.sales - rec.purchase.cost for d, rec in result.daily.items()}
    return ForecastInput(year=int(year), month=int(month), daily_sales=sales, daily_gross_profit=gp)
