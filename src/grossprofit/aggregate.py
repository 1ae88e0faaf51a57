from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, Optional, Sequence

from grossprofit.budget import calculate_budget_analysis
from grossprofit.errors import EmptyAggregateError
from grossprofit.models import (
    AGGREGATE_STORE_ID,
    ZERO_PAIR,
    Category,
    ConsumableDaily,
    CostPricePair,
    DailyRecord,
    StoreResult,
    SupplierTotal,
    TransferDetails,
    TransferTotals,
)
from grossprofit.numeric import safe_divide
from grossprofit.valuation import calculate_discount_rate, calculate_inv_method

logger = logging.getLogger("grossprofit.aggregate")


def merge_daily_record(a: DailyRecord, b: DailyRecord) -> DailyRecord:
    """Combine two stores' records for the same day.

    Numbers add, supplier breakdowns add by code, consumable items and
    transfer breakdown entries are concatenated (duplicates kept).
    """

    suppliers = dict(a.supplier_breakdown)
    for code, pair in b.supplier_breakdown.items():
        suppliers[code] = suppliers.get(code, ZERO_PAIR) + pair

    return DailyRecord(
        day=a.day,
        sales=a.sales + b.sales,
        core_sales=a.core_sales + b.core_sales,
        gross_sales=a.gross_sales + b.gross_sales,
        purchase=a.purchase + b.purchase,
        delivery_sales=a.delivery_sales + b.delivery_sales,
        inter_store_in=a.inter_store_in + b.inter_store_in,
        inter_store_out=a.inter_store_out + b.inter_store_out,
        inter_department_in=a.inter_department_in + b.inter_department_in,
        inter_department_out=a.inter_department_out + b.inter_department_out,
        flowers=a.flowers + b.flowers,
        direct_produce=a.direct_produce + b.direct_produce,
        consumable=ConsumableDaily(
            cost=a.consumable.cost + b.consumable.cost,
            items=a.consumable.items + b.consumable.items,
        ),
        discount_amount=a.discount_amount + b.discount_amount,
        discount_absolute=a.discount_absolute + b.discount_absolute,
        customers=a.customers + b.customers,
        supplier_breakdown=suppliers,
        transfer_breakdown=a.transfer_breakdown + b.transfer_breakdown,
    )


def _sum_inventory(values: Sequence[Optional[float]], require_all: bool) -> Optional[float]:
    present = [v for v in values if v is not None]
    if not present:
        return None
    if require_all and len(present) != len(values):
        return None
    return float(sum(present))


def _sum_field(results: Iterable[StoreResult], name: str) -> float:
    return float(sum(getattr(r, name) for r in results))


def aggregate_store_results(
    results: Sequence[StoreResult],
    days_in_month: int,
    require_all_inventory: bool = False,
) -> StoreResult:
    """Roll per-store results up into one synthetic ``"aggregate"`` result.

    The Inventory method is recomputed from the summed totals; the Estimation
    method is summed from the stores, since each store's figure already
    carries its own markup and discount context.

    Opening/closing inventory is the sum over stores that report a count and
    is present when any store reports one. With ``require_all_inventory`` it
    is present only when every store reports one.
    """

    results = list(results)
    if not results:
        raise EmptyAggregateError()

    daily: Dict[int, DailyRecord] = {}
    categories: Dict[Category, CostPricePair] = {}
    suppliers: Dict[str, SupplierTotal] = {}
    budget_daily: Dict[int, float] = {}
    transfers = TransferTotals()

    for r in results:
        for day, rec in r.daily.items():
            existing = daily.get(day)
            daily[day] = rec if existing is None else merge_daily_record(existing, rec)

        for cat, pair in r.category_totals.items():
            categories[cat] = categories.get(cat, ZERO_PAIR) + pair

        for code, st in r.supplier_totals.items():
            ex = suppliers.get(code)
            if ex is None:
                suppliers[code] = st
            else:
                suppliers[code] = replace(ex, cost=ex.cost + st.cost, price=ex.price + st.price)

        for day, val in r.budget_daily.items():
            budget_daily[day] = budget_daily.get(day, 0.0) + float(val)

        transfers = transfers + r.transfer_details.totals()

    suppliers = {code: st.with_markup() for code, st in suppliers.items()}

    total_sales = _sum_field(results, "total_sales")
    total_core_sales = _sum_field(results, "total_core_sales")
    delivery_price = _sum_field(results, "delivery_sales_price")
    delivery_cost = _sum_field(results, "delivery_sales_cost")
    total_cost = _sum_field(results, "total_cost")
    total_discount = _sum_field(results, "total_discount")
    total_consumable = _sum_field(results, "total_consumable")
    purchase_cost = _sum_field(results, "total_purchase_cost")
    purchase_price = _sum_field(results, "total_purchase_price")
    budget = _sum_field(results, "budget")
    gp_budget = _sum_field(results, "gross_profit_budget")
    total_customers = sum(r.total_customers for r in results)

    # The furthest-advanced store defines "today" for the aggregate.
    elapsed_days = max(r.elapsed_days for r in results)
    sales_days = max(r.sales_days for r in results)

    opening = _sum_inventory([r.opening_inventory for r in results], require_all_inventory)
    closing = _sum_inventory([r.closing_inventory for r in results], require_all_inventory)

    inv = calculate_inv_method(opening, closing, total_cost, total_sales)

    est_cogs = _sum_field(results, "est_method_cogs")
    est_margin = _sum_field(results, "est_method_margin")
    est_closing = _sum_inventory(
        [r.est_method_closing_inventory for r in results], require_all_inventory
    )

    # Markups come from supplier purchases only; transfers carry no markup.
    core_price = sum(st.price for st in suppliers.values())
    core_cost = sum(st.cost for st in suppliers.values())
    delivered = categories.get(Category.FLOWERS, ZERO_PAIR) + categories.get(Category.DIRECT_PRODUCE, ZERO_PAIR)
    all_price = core_price + delivered.price
    all_cost = core_cost + delivered.cost

    ba = calculate_budget_analysis(
        total_sales=total_sales,
        budget=budget,
        budget_daily=budget_daily,
        sales_daily={d: rec.sales for d, rec in daily.items()},
        elapsed_days=elapsed_days,
        sales_days=sales_days,
        days_in_month=days_in_month,
    )

    over_delivery = _sum_field(results, "over_delivery_amount")

    logger.debug(
        "aggregated %d stores: sales=%.2f opening=%s closing=%s",
        len(results),
        total_sales,
        opening,
        closing,
    )

    return StoreResult(
        store_id=AGGREGATE_STORE_ID,
        opening_inventory=opening,
        closing_inventory=closing,
        total_sales=total_sales,
        total_core_sales=total_core_sales,
        delivery_sales_price=delivery_price,
        flower_sales_price=_sum_field(results, "flower_sales_price"),
        direct_produce_sales_price=_sum_field(results, "direct_produce_sales_price"),
        gross_sales=_sum_field(results, "gross_sales"),
        total_cost=total_cost,
        inventory_cost=_sum_field(results, "inventory_cost"),
        delivery_sales_cost=delivery_cost,
        total_purchase_cost=purchase_cost,
        total_purchase_price=purchase_price,
        inv_method_cogs=inv.cogs,
        inv_method_gross_profit=inv.gross_profit,
        inv_method_gross_profit_rate=inv.gross_profit_rate,
        est_method_cogs=est_cogs,
        est_method_margin=est_margin,
        est_method_margin_rate=safe_divide(est_margin, total_core_sales),
        est_method_closing_inventory=est_closing,
        total_customers=total_customers,
        average_customers_per_day=safe_divide(total_customers, sales_days),
        total_discount=total_discount,
        discount_rate=calculate_discount_rate(total_sales, total_discount),
        discount_loss_cost=_sum_field(results, "discount_loss_cost"),
        average_markup_rate=safe_divide(all_price - all_cost, all_price),
        core_markup_rate=safe_divide(core_price - core_cost, core_price),
        total_consumable=total_consumable,
        consumable_rate=safe_divide(total_consumable, total_sales),
        budget=budget,
        gross_profit_budget=gp_budget,
        gross_profit_rate_budget=safe_divide(gp_budget, budget),
        budget_daily=budget_daily,
        daily=dict(sorted(daily.items())),
        category_totals=categories,
        supplier_totals=suppliers,
        transfer_details=TransferDetails.from_totals(transfers),
        elapsed_days=elapsed_days,
        sales_days=sales_days,
        average_daily_sales=ba.average_daily_sales,
        projected_sales=ba.projected_sales,
        projected_achievement=ba.projected_achievement,
        budget_achievement_rate=ba.budget_achievement_rate,
        budget_progress_rate=ba.budget_progress_rate,
        budget_elapsed_rate=ba.budget_elapsed_rate,
        remaining_budget=ba.remaining_budget,
        daily_cumulative=ba.daily_cumulative,
        is_over_delivery=any(r.is_over_delivery for r in results),
        over_delivery_amount=over_delivery,
    )

