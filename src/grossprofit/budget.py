from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping

from grossprofit.models import DailyCumulative
from grossprofit.numeric import safe_divide


@dataclass(frozen=True)
class BudgetAnalysis:
    budget_achievement_rate: float
    budget_progress_rate: float
    budget_elapsed_rate: float
    average_daily_sales: float
    projected_sales: float
    projected_achievement: float
    remaining_budget: float
    daily_cumulative: Dict[int, DailyCumulative]


def cumulative_budget(budget_daily: Mapping[int, float], through_day: int) -> float:
    return sum(float(budget_daily.get(d, 0.0)) for d in range(1, int(through_day) + 1))


def calculate_budget_analysis(
    total_sales: float,
    budget: float,
    budget_daily: Mapping[int, float],
    sales_daily: Mapping[int, float],
    elapsed_days: int,
    sales_days: int,
    days_in_month: int,
) -> BudgetAnalysis:
    """Budget progress for a (possibly partial) month.

    Achievement compares sales with the whole month's budget; progress compares
    them with the budget accrued through ``elapsed_days`` only.
    """

    achievement = safe_divide(total_sales, budget)

    elapsed_budget = cumulative_budget(budget_daily, elapsed_days)
    progress = safe_divide(total_sales, elapsed_budget)
    elapsed_rate = safe_divide(elapsed_budget, budget)

    # Average over days that actually had sales; remaining days are projected at that pace.
    avg = safe_divide(total_sales, sales_days)
    remaining_days = int(days_in_month) - int(elapsed_days)
    projected = float(total_sales) + avg * remaining_days

    cum: Dict[int, DailyCumulative] = {}
    cum_sales = 0.0
    cum_budget = 0.0
    for d in range(1, int(days_in_month) + 1):
        cum_sales += float(sales_daily.get(d, 0.0))
        cum_budget += float(budget_daily.get(d, 0.0))
        cum[d] = DailyCumulative(sales=cum_sales, budget=cum_budget)

    return BudgetAnalysis(
        budget_achievement_rate=achievement,
        budget_progress_rate=progress,
        budget_elapsed_rate=elapsed_rate,
        average_daily_sales=avg,
        projected_sales=projected,
        projected_achievement=safe_divide(projected, budget),
        remaining_budget=float(budget) - float(total_sales),
        daily_cumulative=cum,
    )
