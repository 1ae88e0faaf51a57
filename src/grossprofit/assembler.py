from __future__ import annotations

import logging
from typing import Dict

from grossprofit.budget import calculate_budget_analysis
from grossprofit.models import (
    ZERO_PAIR,
    AppSettings,
    Category,
    CostPricePair,
    ImportedData,
    MonthlyAccumulator,
    StoreResult,
    TransferDetails,
)
from grossprofit.numeric import safe_divide
from grossprofit.valuation import (
    calculate_core_sales,
    calculate_discount_impact,
    calculate_discount_rate,
    calculate_est_method,
    calculate_inv_method,
)

logger = logging.getLogger("grossprofit.assembler")


def _add_to_category(m: Dict[Category, CostPricePair], cat: Category, pair: CostPricePair) -> None:
    m[cat] = m.get(cat, ZERO_PAIR) + pair


def finalize_category_totals(acc: MonthlyAccumulator) -> Dict[Category, CostPricePair]:
    """Running category map plus delivery, consumable and transfer subtotals (new mapping)."""

    out = dict(acc.category_totals)
    t = acc.transfer_totals
    _add_to_category(out, Category.FLOWERS, CostPricePair(acc.total_flower_cost, acc.total_flower_price))
    _add_to_category(
        out, Category.DIRECT_PRODUCE, CostPricePair(acc.total_direct_produce_cost, acc.total_direct_produce_price)
    )
    _add_to_category(out, Category.CONSUMABLES, CostPricePair(acc.total_consumable, 0.0))
    _add_to_category(out, Category.INTER_STORE, t.inter_store_in + t.inter_store_out)
    _add_to_category(out, Category.INTER_DEPARTMENT, t.inter_department_in + t.inter_department_out)
    return out


def assemble_store_result(
    store_id: str,
    acc: MonthlyAccumulator,
    data: ImportedData,
    settings: AppSettings,
    days_in_month: int,
) -> StoreResult:
    inv_cfg = data.inventory.get(store_id)
    budget_data = data.budget.get(store_id)
    opening = inv_cfg.opening_inventory if inv_cfg else None
    closing = inv_cfg.closing_inventory if inv_cfg else None

    delivery_price = acc.total_flower_price + acc.total_direct_produce_price
    delivery_cost = acc.total_flower_cost + acc.total_direct_produce_cost

    core = calculate_core_sales(acc.total_sales, acc.total_flower_price, acc.total_direct_produce_price)

    # Purchases that become sellable inventory; delivery-sale goods bypass it.
    inventory_cost = acc.total_cost - delivery_cost

    gross_sales = acc.total_sales + acc.total_discount
    discount_rate = calculate_discount_rate(acc.total_sales, acc.total_discount)

    # Transfers count as purchases for markup purposes.
    transfer = acc.transfer_totals.combined
    all_price = acc.total_purchase_price + delivery_price + transfer.price
    all_cost = acc.total_purchase_cost + delivery_cost + transfer.cost
    average_markup = safe_divide(all_price - all_cost, all_price)
    core_price = acc.total_purchase_price + transfer.price
    core_cost = acc.total_purchase_cost + transfer.cost
    # Unknown markup falls back to the configured default, not zero.
    core_markup = safe_divide(core_price - core_cost, core_price, settings.default_markup_rate)

    inv = calculate_inv_method(
        opening_inventory=opening,
        closing_inventory=closing,
        total_purchase_cost=acc.total_cost,
        total_sales=acc.total_sales,
    )
    est = calculate_est_method(
        core_sales=core.core_sales,
        discount_rate=discount_rate,
        markup_rate=core_markup,
        consumable_cost=acc.total_consumable,
        opening_inventory=opening,
        inventory_purchase_cost=inventory_cost,
    )
    discount_loss = calculate_discount_impact(core.core_sales, core_markup, discount_rate)

    supplier_totals = {code: st.with_markup() for code, st in acc.supplier_totals.items()}

    budget = budget_data.total if budget_data else float(settings.default_budget)
    budget_daily = dict(budget_data.daily) if budget_data else {}
    gp_budget = 0.0
    if inv_cfg and inv_cfg.gross_profit_budget is not None:
        gp_budget = float(inv_cfg.gross_profit_budget)

    ba = calculate_budget_analysis(
        total_sales=acc.total_sales,
        budget=budget,
        budget_daily=budget_daily,
        sales_daily={d: rec.sales for d, rec in acc.daily.items()},
        elapsed_days=acc.elapsed_days,
        sales_days=acc.sales_days,
        days_in_month=days_in_month,
    )

    logger.debug(
        "store %s assembled: sales=%.2f inv_cogs=%s est_cogs=%.2f",
        store_id,
        acc.total_sales,
        inv.cogs,
        est.cogs,
    )

    return StoreResult(
        store_id=store_id,
        opening_inventory=opening,
        closing_inventory=closing,
        total_sales=acc.total_sales,
        total_core_sales=core.core_sales,
        delivery_sales_price=delivery_price,
        flower_sales_price=acc.total_flower_price,
        direct_produce_sales_price=acc.total_direct_produce_price,
        gross_sales=gross_sales,
        total_cost=acc.total_cost,
        inventory_cost=inventory_cost,
        delivery_sales_cost=delivery_cost,
        total_purchase_cost=acc.total_purchase_cost,
        total_purchase_price=acc.total_purchase_price,
        inv_method_cogs=inv.cogs,
        inv_method_gross_profit=inv.gross_profit,
        inv_method_gross_profit_rate=inv.gross_profit_rate,
        est_method_cogs=est.cogs,
        est_method_margin=est.margin,
        est_method_margin_rate=est.margin_rate,
        est_method_closing_inventory=est.closing_inventory,
        total_customers=acc.total_customers,
        average_customers_per_day=safe_divide(acc.total_customers, acc.sales_days),
        total_discount=acc.total_discount,
        discount_rate=discount_rate,
        discount_loss_cost=discount_loss,
        average_markup_rate=average_markup,
        core_markup_rate=core_markup,
        total_consumable=acc.total_consumable,
        consumable_rate=safe_divide(acc.total_consumable, acc.total_sales),
        budget=budget,
        gross_profit_budget=gp_budget,
        gross_profit_rate_budget=safe_divide(gp_budget, budget),
        budget_daily=budget_daily,
        daily=dict(acc.daily),
        category_totals=finalize_category_totals(acc),
        supplier_totals=supplier_totals,
        transfer_details=TransferDetails.from_totals(acc.transfer_totals),
        elapsed_days=acc.elapsed_days,
        sales_days=acc.sales_days,
        average_daily_sales=ba.average_daily_sales,
        projected_sales=ba.projected_sales,
        projected_achievement=ba.projected_achievement,
        budget_achievement_rate=ba.budget_achievement_rate,
        budget_progress_rate=ba.budget_progress_rate,
        budget_elapsed_rate=ba.budget_elapsed_rate,
        remaining_budget=ba.remaining_budget,
        daily_cumulative=ba.daily_cumulative,
        is_over_delivery=core.is_over_delivery,
        over_delivery_amount=core.over_delivery_amount,
    )
