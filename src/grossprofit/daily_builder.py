from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import reduce
from typing import Dict, Iterable, Mapping, Optional, Tuple

from grossprofit.models import (
    ZERO_CONSUMABLE,
    ZERO_PAIR,
    Category,
    ConsumableDaily,
    CostPricePair,
    DailyRecord,
    DiscountDay,
    ImportedData,
    MonthlyAccumulator,
    PurchaseDay,
    SalesDay,
    SpecialSalesDay,
    SupplierTotal,
    TransferBreakdown,
    TransferDay,
    TransferEntry,
    TransferRecord,
    TransferTotals,
    daily_total_cost,
    sum_pairs,
)
from grossprofit.numeric import safe_int, safe_number
from grossprofit.valuation import calculate_core_sales

logger = logging.getLogger("grossprofit.daily_builder")

_NO_TRANSFERS = TransferDay()


@dataclass(frozen=True)
class _DaySlices:
    day: int
    purchase: Optional[PurchaseDay] = None
    sales: Optional[SalesDay] = None
    discount: Optional[DiscountDay] = None
    transfer_in: Optional[TransferDay] = None
    transfer_out: Optional[TransferDay] = None
    flowers: Optional[SpecialSalesDay] = None
    direct_produce: Optional[SpecialSalesDay] = None
    consumable: Optional[ConsumableDaily] = None


def _day_slices(store_id: str, data: ImportedData, day: int) -> _DaySlices:
    return _DaySlices(
        day=day,
        purchase=data.slice("purchase", store_id, day),
        sales=data.slice("sales", store_id, day),
        discount=data.slice("discount", store_id, day),
        transfer_in=data.slice("inter_store_in", store_id, day),
        transfer_out=data.slice("inter_store_out", store_id, day),
        flowers=data.slice("flowers", store_id, day),
        direct_produce=data.slice("direct_produce", store_id, day),
        consumable=data.slice("consumables", store_id, day),
    )


def _pair(cost: object, price: object) -> CostPricePair:
    return CostPricePair(cost=safe_number(cost), price=safe_number(price))


def _special_pair(entry: Optional[SpecialSalesDay]) -> CostPricePair:
    if entry is None:
        return ZERO_PAIR
    return _pair(entry.cost, entry.price)


def _transfer_entries(records: Iterable[TransferRecord]) -> Tuple[CostPricePair, Tuple[TransferEntry, ...]]:
    entries = tuple(
        TransferEntry(
            from_location=str(r.from_store_id),
            to_location=str(r.to_store_id),
            cost=safe_number(r.cost),
            price=safe_number(r.price),
        )
        for r in records
    )
    return sum_pairs(CostPricePair(cost=e.cost, price=e.price) for e in entries), entries


def _fold_suppliers(
    acc: MonthlyAccumulator,
    purchase: Optional[PurchaseDay],
    supplier_categories: Mapping[str, Category],
) -> Tuple[Dict[str, CostPricePair], Dict[str, SupplierTotal], Dict[Category, CostPricePair]]:
    breakdown: Dict[str, CostPricePair] = {}
    if purchase is None or not purchase.suppliers:
        return breakdown, acc.supplier_totals, acc.category_totals

    totals = dict(acc.supplier_totals)
    categories = dict(acc.category_totals)
    for code, sup in purchase.suppliers.items():
        pair = _pair(sup.cost, sup.price)
        breakdown[code] = pair

        existing = totals.get(code)
        if existing is None:
            existing = SupplierTotal(
                supplier_code=code,
                supplier_name=str(sup.name or code),
                category=supplier_categories.get(code, Category.OTHER),
            )
        # markup_rate is left alone here; it is recomputed once totals are final.
        totals[code] = replace(existing, cost=existing.cost + pair.cost, price=existing.price + pair.price)
        categories[existing.category] = categories.get(existing.category, ZERO_PAIR) + pair

    return breakdown, totals, categories


def _has_activity(
    sales: float,
    purchase: CostPricePair,
    delivery_sales: CostPricePair,
    transfers: TransferTotals,
    discount_absolute: float,
    consumable: ConsumableDaily,
) -> bool:
    return (
        sales > 0
        or purchase.cost != 0
        or delivery_sales.cost != 0
        or transfers.inter_store_in.cost != 0
        or transfers.inter_store_out.cost != 0
        or transfers.inter_department_in.cost != 0
        or transfers.inter_department_out.cost != 0
        or discount_absolute != 0
        or consumable.cost != 0
    )


def _fold_day(acc: MonthlyAccumulator, s: _DaySlices, supplier_categories: Mapping[str, Category]) -> MonthlyAccumulator:
    day = s.day

    purchase = _pair(s.purchase.total.cost, s.purchase.total.price) if s.purchase else ZERO_PAIR
    day_sales = safe_number(s.sales.sales) if s.sales else 0.0
    customers = safe_int(s.sales.customers) if s.sales else 0

    flowers = _special_pair(s.flowers)
    direct_produce = _special_pair(s.direct_produce)
    delivery_sales = flowers + direct_produce

    t_in = s.transfer_in or _NO_TRANSFERS
    t_out = s.transfer_out or _NO_TRANSFERS
    isi, isi_entries = _transfer_entries(t_in.inter_store_in)
    idi, idi_entries = _transfer_entries(t_in.inter_department_in)
    iso, iso_entries = _transfer_entries(t_out.inter_store_out)
    ido, ido_entries = _transfer_entries(t_out.inter_department_out)
    transfers = TransferTotals(
        inter_store_in=isi,
        inter_store_out=iso,
        inter_department_in=idi,
        inter_department_out=ido,
    )

    consumable = ZERO_CONSUMABLE
    if s.consumable is not None:
        consumable = ConsumableDaily(cost=safe_number(s.consumable.cost), items=tuple(s.consumable.items))

    discount_amount = safe_number(s.discount.discount) if s.discount else 0.0
    discount_absolute = abs(discount_amount)

    core_sales = calculate_core_sales(day_sales, flowers.price, direct_produce.price).core_sales
    gross_sales = day_sales + discount_absolute

    supplier_breakdown, supplier_totals, category_totals = _fold_suppliers(acc, s.purchase, supplier_categories)

    daily = acc.daily
    total_cost = acc.total_cost
    elapsed_days = acc.elapsed_days
    sales_days = acc.sales_days
    if _has_activity(day_sales, purchase, delivery_sales, transfers, discount_absolute, consumable):
        rec = DailyRecord(
            day=day,
            sales=day_sales,
            core_sales=core_sales,
            gross_sales=gross_sales,
            purchase=purchase,
            delivery_sales=delivery_sales,
            inter_store_in=isi,
            inter_store_out=iso,
            inter_department_in=idi,
            inter_department_out=ido,
            flowers=flowers,
            direct_produce=direct_produce,
            consumable=consumable,
            discount_amount=discount_amount,
            discount_absolute=discount_absolute,
            customers=customers,
            supplier_breakdown=supplier_breakdown,
            transfer_breakdown=TransferBreakdown(
                inter_store_in=isi_entries,
                inter_store_out=iso_entries,
                inter_department_in=idi_entries,
                inter_department_out=ido_entries,
            ),
        )
        daily = {**acc.daily, day: rec}
        # Total cost only accrues on days that produced a record.
        total_cost += daily_total_cost(rec)
        elapsed_days = day
        if day_sales > 0:
            sales_days += 1

    return replace(
        acc,
        daily=daily,
        category_totals=category_totals,
        supplier_totals=supplier_totals,
        total_sales=acc.total_sales + day_sales,
        total_cost=total_cost,
        total_flower_price=acc.total_flower_price + flowers.price,
        total_flower_cost=acc.total_flower_cost + flowers.cost,
        total_direct_produce_price=acc.total_direct_produce_price + direct_produce.price,
        total_direct_produce_cost=acc.total_direct_produce_cost + direct_produce.cost,
        total_purchase_cost=acc.total_purchase_cost + purchase.cost,
        total_purchase_price=acc.total_purchase_price + purchase.price,
        total_discount=acc.total_discount + discount_absolute,
        total_consumable=acc.total_consumable + consumable.cost,
        total_customers=acc.total_customers + customers,
        sales_days=sales_days,
        elapsed_days=elapsed_days,
        transfer_totals=acc.transfer_totals + transfers,
    )


def build_daily_records(
    store_id: str,
    data: ImportedData,
    days_in_month: int,
    supplier_categories: Optional[Mapping[str, Category]] = None,
) -> MonthlyAccumulator:
    """Fold one store's day slices 1..days_in_month into a monthly accumulator.

    Days with no economic activity produce no DailyRecord at all.
    """

    cats: Mapping[str, Category] = supplier_categories or {}
    acc = reduce(
        lambda a, day: _fold_day(a, _day_slices(store_id, data, day), cats),
        range(1, max(0, int(days_in_month)) + 1),
        MonthlyAccumulator(),
    )
    logger.debug(
        "store %s: %d active days, elapsed=%d, sales_days=%d, total_sales=%.2f",
        store_id,
        len(acc.daily),
        acc.elapsed_days,
        acc.sales_days,
        acc.total_sales,
    )
    return acc
