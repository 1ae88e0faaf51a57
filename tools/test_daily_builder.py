from __future__ import annotations

import math

from grossprofit.daily_builder import build_daily_records
from grossprofit.models import (
    Category,
    ConsumableDaily,
    ConsumableItem,
    CostPricePair,
    DiscountDay,
    ImportedData,
    PurchaseDay,
    SalesDay,
    SpecialSalesDay,
    StoreInfo,
    SupplierPurchase,
    TransferDay,
    TransferRecord,
)


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def _close(a: float, b: float, tol: float = 1e-9) -> bool:
    return abs(float(a) - float(b)) <= tol


def _data(**tables) -> ImportedData:
    return ImportedData(stores={"01": StoreInfo(store_id="01", name="Test Store")}, **tables)


def test_inactive_days_are_not_recorded() -> None:
    data = _data(
        sales={"01": {1: SalesDay(sales=1000.0), 2: SalesDay(sales=0.0, customers=12), 3: SalesDay(sales=500.0)}},
    )
    acc = build_daily_records("01", data, 3)
    _assert(sorted(acc.daily) == [1, 3], f"day 2 has no activity and must be absent, got {sorted(acc.daily)}")
    _assert(acc.elapsed_days == 3, "elapsed days is the last recorded day")
    _assert(acc.sales_days == 2, "sales days counts recorded days with sales")
    _assert(_close(acc.total_sales, 1500.0), "total sales")
    # Customers on a suppressed day still count toward the month.
    _assert(acc.total_customers == 12, "customers accrue on every day")


def test_non_finite_input_is_coerced() -> None:
    data = _data(
        sales={"01": {1: SalesDay(sales=float("nan")), 2: SalesDay(sales=200.0)}},
        purchase={"01": {2: PurchaseDay(total=CostPricePair(cost=float("inf"), price=300.0))}},
    )
    acc = build_daily_records("01", data, 2)
    _assert(1 not in acc.daily, "a NaN-only day carries no activity")
    _assert(_close(acc.total_sales, 200.0), "NaN sales count as zero")
    _assert(math.isfinite(acc.total_cost) and _close(acc.total_cost, 0.0), "Inf cost counts as zero")
    _assert(_close(acc.total_purchase_price, 300.0), "finite price survives")


def test_discount_only_day_is_recorded() -> None:
    data = _data(discount={"01": {4: DiscountDay(sales=0.0, discount=-80.0)}})
    acc = build_daily_records("01", data, 5)
    rec = acc.daily.get(4)
    _assert(rec is not None, "a markdown alone makes the day active")
    _assert(_close(rec.discount_amount, -80.0) and _close(rec.discount_absolute, 80.0), "signed and absolute discount")
    _assert(_close(rec.gross_sales, 80.0), "gross sales = sales + |discount|")
    _assert(acc.sales_days == 0, "no sales days without sales")
    _assert(acc.elapsed_days == 4, "elapsed follows the recorded day")


def test_suppliers_and_categories() -> None:
    purchase = PurchaseDay(
        suppliers={
            "0001": SupplierPurchase(name="Market", cost=600.0, price=1000.0),
            "0999": SupplierPurchase(name="Misc", cost=50.0, price=60.0),
        },
        total=CostPricePair(cost=650.0, price=1060.0),
    )
    data = _data(purchase={"01": {1: purchase, 2: purchase}}, sales={"01": {1: SalesDay(sales=900.0)}})
    acc = build_daily_records("01", data, 2, supplier_categories={"0001": Category.MARKET})

    _assert(acc.supplier_totals["0001"].category is Category.MARKET, "mapped supplier category")
    _assert(acc.supplier_totals["0999"].category is Category.OTHER, "unmapped supplier defaults to other")
    _assert(_close(acc.supplier_totals["0001"].cost, 1200.0), "supplier cost accrues across days")
    _assert(acc.supplier_totals["0001"].markup_rate == 0.0, "markup is only computed at assembly")
    _assert(acc.category_totals[Category.MARKET] == CostPricePair(cost=1200.0, price=2000.0), "category running total")
    _assert(acc.daily[1].supplier_breakdown["0999"] == CostPricePair(cost=50.0, price=60.0), "per-day breakdown")
    _assert(_close(acc.total_cost, 1300.0), "purchase-only day 2 is recorded and adds cost")


def test_transfers_and_delivery_sales() -> None:
    t_in = TransferDay(
        inter_store_in=(TransferRecord(day=1, cost=300.0, price=400.0, from_store_id="02", to_store_id="01"),),
        inter_department_in=(
            TransferRecord(day=1, cost=10.0, price=20.0, from_store_id="01", to_store_id="01", is_department_transfer=True),
        ),
    )
    t_out = TransferDay(
        inter_store_out=(TransferRecord(day=1, cost=-100.0, price=-150.0, from_store_id="01", to_store_id="03"),),
    )
    data = _data(
        sales={"01": {1: SalesDay(sales=50.0)}},
        inter_store_in={"01": {1: t_in}},
        inter_store_out={"01": {1: t_out}},
        flowers={"01": {1: SpecialSalesDay(price=100.0, cost=80.0)}},
        consumables={
            "01": {1: ConsumableDaily(cost=25.0, items=(ConsumableItem("81257", "C1", "Bags", 5, 25.0),))}
        },
    )
    acc = build_daily_records("01", data, 1)
    rec = acc.daily[1]

    _assert(rec.inter_store_in == CostPricePair(cost=300.0, price=400.0), "inbound store transfer pair")
    _assert(rec.inter_store_out == CostPricePair(cost=-100.0, price=-150.0), "outbound store transfer pair")
    _assert(len(rec.transfer_breakdown.inter_store_in) == 1, "entry kept in the breakdown")
    _assert(rec.transfer_breakdown.inter_store_out[0].to_location == "03", "entry keeps its destination")
    _assert(rec.delivery_sales == CostPricePair(cost=80.0, price=100.0), "delivery sales = flowers + direct produce")
    _assert(rec.core_sales == 0.0, "core sales are clamped at zero when deliveries exceed sales")
    # 300 - 100 + 10 transfers, 80 delivery, 25 consumables
    _assert(_close(acc.total_cost, 315.0), f"total cost covers every cost stream, got {acc.total_cost}")
    _assert(acc.transfer_totals.inter_department_in == CostPricePair(cost=10.0, price=20.0), "department transfer")


def test_days_past_month_end_are_ignored() -> None:
    data = _data(sales={"01": {1: SalesDay(sales=10.0), 31: SalesDay(sales=99.0)}})
    acc = build_daily_records("01", data, 28)
    _assert(sorted(acc.daily) == [1], "only days 1..days_in_month are folded")
    _assert(_close(acc.total_sales, 10.0), "later days contribute nothing")


def test_unknown_store_is_empty() -> None:
    acc = build_daily_records("zz", _data(sales={"01": {1: SalesDay(sales=10.0)}}), 30)
    _assert(acc.daily == {} and acc.total_sales == 0.0 and acc.elapsed_days == 0, "no data -> empty accumulator")


def main() -> None:
    tests = [
        test_inactive_days_are_not_recorded,
        test_non_finite_input_is_coerced,
        test_discount_only_day_is_recorded,
        test_suppliers_and_categories,
        test_transfers_and_delivery_sales,
        test_days_past_month_end_are_ignored,
        test_unknown_store_is_empty,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
