from __future__ import annotations

from grossprofit.valuation import (
    calculate_core_sales,
    calculate_discount_impact,
    calculate_discount_rate,
    calculate_est_method,
    calculate_inv_method,
)


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def _close(a: float, b: float, tol: float = 1e-9) -> bool:
    return abs(float(a) - float(b)) <= tol


def test_inventory_method_requires_both_counts() -> None:
    r = calculate_inv_method(500.0, 300.0, 1600.0, 3000.0)
    _assert(_close(r.cogs, 1800.0), "cogs = opening + purchases - closing")
    _assert(_close(r.gross_profit, 1200.0), "gross profit = sales - cogs")
    _assert(_close(r.gross_profit_rate, 0.4), "rate = gp / sales")

    for opening, closing in ((None, 300.0), (500.0, None), (None, None)):
        r = calculate_inv_method(opening, closing, 1600.0, 3000.0)
        _assert(
            r.cogs is None and r.gross_profit is None and r.gross_profit_rate is None,
            f"missing count ({opening}, {closing}) leaves every output absent",
        )

    r = calculate_inv_method(0.0, 0.0, 100.0, 0.0)
    _assert(r.cogs == 100.0 and r.gross_profit_rate == 0.0, "zero counts are present, zero sales gives rate 0")


def test_estimation_method() -> None:
    r = calculate_est_method(
        core_sales=900.0,
        discount_rate=0.1,
        markup_rate=0.3,
        consumable_cost=10.0,
        opening_inventory=2000.0,
        inventory_purchase_cost=700.0,
    )
    _assert(_close(r.gross_sales, 1000.0), "gross sales = core / (1 - d)")
    _assert(_close(r.cogs, 710.0), "cogs = gross * (1 - markup) + consumables")
    _assert(_close(r.margin, 190.0), "margin = core - cogs")
    _assert(_close(r.margin_rate, 190.0 / 900.0), "margin rate against core sales")
    _assert(_close(r.closing_inventory, 1990.0), "closing = opening + purchases - cogs")

    r = calculate_est_method(900.0, 0.1, 0.3, 10.0, None, 700.0)
    _assert(r.closing_inventory is None, "no opening count, no estimated closing")


def test_estimation_full_discount_does_not_blow_up() -> None:
    r = calculate_est_method(500.0, 1.0, 0.25, 0.0, None, 0.0)
    _assert(_close(r.gross_sales, 500.0), "a 100% discount rate falls back to core sales")
    _assert(_close(r.cogs, 375.0), "cogs from the fallback gross sales")


def test_core_sales_clamp() -> None:
    c = calculate_core_sales(1000.0, 100.0, 50.0)
    _assert(_close(c.core_sales, 850.0) and not c.is_over_delivery, "core = sales - deliveries")

    c = calculate_core_sales(100.0, 80.0, 70.0)
    _assert(c.core_sales == 0.0 and c.is_over_delivery, "over-delivery clamps to zero")
    _assert(_close(c.over_delivery_amount, 50.0), "over-delivery amount is the shortfall")

    c = calculate_core_sales(100.0, -40.0, 0.0)
    _assert(_close(c.core_sales, 100.0), "negative deliveries never push core above sales")


def test_discount_rate_and_impact() -> None:
    _assert(_close(calculate_discount_rate(950.0, 50.0), 0.05), "rate = discount / (sales + discount)")
    _assert(calculate_discount_rate(0.0, 0.0) == 0.0, "no sales, no discount -> 0")

    loss = calculate_discount_impact(core_sales=950.0, markup_rate=0.3, discount_rate=0.05)
    _assert(_close(loss, 0.7 * 950.0 * 0.05 / 0.95), "loss = (1 - m) * core * d / (1 - d)")
    _assert(calculate_discount_impact(1000.0, 0.3, 0.0) == 0.0, "no markdown, no loss")


def main() -> None:
    tests = [
        test_inventory_method_requires_both_counts,
        test_estimation_method,
        test_estimation_full_discount_does_not_blow_up,
        test_core_sales_clamp,
        test_discount_rate_and_impact,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
