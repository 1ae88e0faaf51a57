"""Cost-of-goods-sold valuation.

Two independent methods are always computed side by side:

- Inventory method: exact, needs physically counted opening and closing
  inventory. Scope is all sales and all purchases (flowers and direct
  produce included).
- Estimation method: approximates COGS from core sales, markup rate and
  discount rate. Scope is inventory sales only; its "margin" is an
  inventory-estimation indicator, not an actual gross profit.

Neither is preferred over the other; callers surface both.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from grossprofit.numeric import safe_divide


@dataclass(frozen=True)
class InvMethodResult:
    cogs: Optional[float]
    gross_profit: Optional[float]
    gross_profit_rate: Optional[float]


@dataclass(frozen=True)
class EstMethodResult:
    gross_sales: float
    cogs: float
    margin: float
    margin_rate: float
    closing_inventory: Optional[float]


@dataclass(frozen=True)
class CoreSales:
    core_sales: float
    is_over_delivery: bool = False
    over_delivery_amount: float = 0.0


def calculate_inv_method(
    opening_inventory: Optional[float],
    closing_inventory: Optional[float],
    total_purchase_cost: float,
    total_sales: float,
) -> InvMethodResult:
    """COGS = opening + purchases - closing; undefined without both counts."""

    if opening_inventory is None or closing_inventory is None:
        return InvMethodResult(cogs=None, gross_profit=None, gross_profit_rate=None)

    cogs = float(opening_inventory) + float(total_purchase_cost) - float(closing_inventory)
    gross_profit = float(total_sales) - cogs
    return InvMethodResult(
        cogs=cogs,
        gross_profit=gross_profit,
        gross_profit_rate=safe_divide(gross_profit, total_sales),
    )


def calculate_est_method(
    core_sales: float,
    discount_rate: float,
    markup_rate: float,
    consumable_cost: float,
    opening_inventory: Optional[float],
    inventory_purchase_cost: float,
) -> EstMethodResult:
    """Estimate COGS and closing inventory from markup and discount rates.

    gross sales   = core sales / (1 - discount rate)
    estimated cogs = gross sales * (1 - markup rate) + consumables
    margin        = core sales - estimated cogs
    closing inv.  = opening + inventory purchases - estimated cogs
    """

    divisor = 1.0 - float(discount_rate)
    # A discount rate of 1 (or more) leaves nothing to gross up.
    gross_sales = float(core_sales) / divisor if divisor > 0 else float(core_sales)

    cogs = gross_sales * (1.0 - float(markup_rate)) + float(consumable_cost)
    margin = float(core_sales) - cogs
    closing = None
    if opening_inventory is not None:
        closing = float(opening_inventory) + float(inventory_purchase_cost) - cogs

    return EstMethodResult(
        gross_sales=gross_sales,
        cogs=cogs,
        margin=margin,
        margin_rate=safe_divide(margin, core_sales),
        closing_inventory=closing,
    )


def calculate_core_sales(total_sales: float, flower_price: float, direct_produce_price: float) -> CoreSales:
    """Sales excluding delivery-sale revenue (flowers, direct produce), clamped to [0, sales]."""

    core = float(total_sales) - float(flower_price) - float(direct_produce_price)
    if core < 0:
        return CoreSales(core_sales=0.0, is_over_delivery=True, over_delivery_amount=-core)
    if core > total_sales:
        # Negative delivery figures (returns) must not inflate core sales.
        core = float(total_sales)
    return CoreSales(core_sales=core)


def calculate_discount_rate(sales: float, discount: float) -> float:
    """Discount rate on a price basis: discount / (sales + discount)."""

    return safe_divide(discount, float(sales) + float(discount))


def calculate_discount_impact(core_sales: float, markup_rate: float, discount_rate: float) -> float:
    """Cost-basis loss from markdowns: (1 - markup) * core * d / (1 - d)."""

    divisor = 1.0 - float(discount_rate)
    return (1.0 - float(markup_rate)) * float(core_sales) * safe_divide(
        discount_rate, divisor if divisor > 0 else 1.0
    )
