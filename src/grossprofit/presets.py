from __future__ import annotations

import calendar
import random
from typing import Any, Dict, List

from grossprofit.models import AppSettings, Category

DEFAULT_SETTINGS = AppSettings()

# Supplier template shared by the CLI sample generator and tools/.
SAMPLE_SUPPLIERS: Dict[str, tuple] = {
    "0001": ("市場仕入A", Category.MARKET, 0.24),
    "0002": ("市場仕入B", Category.MARKET, 0.22),
    "0101": ("LFC", Category.LFC, 0.30),
    "0201": ("サラダクラブ", Category.SALAD_CLUB, 0.33),
    "0301": ("加工品センター", Category.PROCESSED, 0.28),
    "0401": ("直伝便", Category.DIRECT_DELIVERY, 0.20),
    "0901": ("その他仕入", Category.OTHER, 0.25),
}


def default_supplier_category_map() -> Dict[str, Category]:
    return {code: cat for code, (_, cat, _) in SAMPLE_SUPPLIERS.items()}


def _money(v: float) -> float:
    return float(round(v))


def _budget_curve(rng: random.Random, year: int, month: int, days: int, total: float) -> Dict[int, float]:
    # Weekends carry more of the month's budget.
    weights: List[float] = []
    for d in range(1, days + 1):
        wd = calendar.weekday(year, month, d)
        w = 1.35 if wd >= 5 else 1.0
        weights.append(w * rng.uniform(0.95, 1.05))
    scale = total / sum(weights) if weights else 0.0
    return {d: _money(w * scale) for d, w in enumerate(weights, start=1)}


def sample_request(
    stores: int = 3,
    days: int = 0,
    seed: int = 20260101,
    year: int = DEFAULT_SETTINGS.target_year,
    month: int = DEFAULT_SETTINGS.target_month,
    data_end_day: int | None = None,
) -> Dict[str, Any]:
    """Build a synthetic ``{data, settings, daysInMonth}`` request body.

    ``days`` is the number of days with imported data (0 = whole month).
    Roughly one store in three has no physical inventory counts, so both
    valuation methods and the aggregate inventory rule get exercised.
    """

    rng = random.Random(int(seed))
    days_in_month = calendar.monthrange(int(year), int(month))[1]
    active_days = days_in_month if days <= 0 else min(int(days), days_in_month)
    store_ids = [f"{i + 1:02d}" for i in range(max(1, int(stores)))]

    data: Dict[str, Any] = {
        "stores": {},
        "purchase": {},
        "sales": {},
        "discount": {},
        "interStoreIn": {},
        "interStoreOut": {},
        "flowers": {},
        "directProduce": {},
        "consumables": {},
        "inventory": {},
        "budget": {},
    }

    for idx, sid in enumerate(store_ids):
        data["stores"][sid] = {"code": sid, "name": f"店舗{sid}"}
        base_sales = rng.uniform(150_000.0, 260_000.0)
        purchase: Dict[str, Any] = {}
        sales: Dict[str, Any] = {}
        discount: Dict[str, Any] = {}
        t_in: Dict[str, Any] = {}
        t_out: Dict[str, Any] = {}
        flowers: Dict[str, Any] = {}
        produce: Dict[str, Any] = {}
        consumables: Dict[str, Any] = {}

        for d in range(1, active_days + 1):
            wd = calendar.weekday(int(year), int(month), d)
            # A closed day now and then exercises the day-suppression rule.
            if rng.random() < 0.03:
                continue
            day_sales = _money(base_sales * (1.3 if wd >= 5 else 1.0) * rng.uniform(0.85, 1.15))
            customers = int(day_sales / rng.uniform(1800.0, 2400.0))
            sales[str(d)] = {"sales": day_sales, "customers": customers}

            disc = _money(day_sales * rng.uniform(0.005, 0.025))
            discount[str(d)] = {"sales": day_sales, "discount": -disc, "customers": customers}

            suppliers: Dict[str, Any] = {}
            tc = tp = 0.0
            for code, (name, _cat, markup) in SAMPLE_SUPPLIERS.items():
                if rng.random() < 0.25:
                    continue
                price = _money(day_sales * rng.uniform(0.08, 0.16))
                cost = _money(price * (1.0 - markup * rng.uniform(0.9, 1.1)))
                suppliers[code] = {"name": name, "cost": cost, "price": price}
                tc += cost
                tp += price
            purchase[str(d)] = {"suppliers": suppliers, "total": {"cost": tc, "price": tp}}

            fp = _money(day_sales * rng.uniform(0.01, 0.03))
            flowers[str(d)] = {"price": fp, "cost": _money(fp * DEFAULT_SETTINGS.flower_cost_rate)}
            dp = _money(day_sales * rng.uniform(0.02, 0.05))
            produce[str(d)] = {"price": dp, "cost": _money(dp * DEFAULT_SETTINGS.direct_produce_cost_rate)}

            if rng.random() < 0.2:
                consumables[str(d)] = {
                    "cost": 3200.0,
                    "items": [
                        {"accountCode": "81257", "itemCode": "C001", "itemName": "レジ袋", "quantity": 40, "cost": 3200.0}
                    ],
                }

            if len(store_ids) > 1 and rng.random() < 0.15:
                other = store_ids[(idx + 1) % len(store_ids)]
                price = _money(rng.uniform(8_000.0, 20_000.0))
                cost = _money(price * 0.75)
                t_in[str(d)] = {
                    "interStoreIn": [
                        {"day": d, "cost": cost, "price": price, "fromStoreId": other, "toStoreId": sid}
                    ],
                }
                t_out[str(d)] = {
                    "interStoreOut": [
                        {"day": d, "cost": -cost, "price": -price, "fromStoreId": sid, "toStoreId": other}
                    ],
                }

        data["purchase"][sid] = purchase
        data["sales"][sid] = sales
        data["discount"][sid] = discount
        data["interStoreIn"][sid] = t_in
        data["interStoreOut"][sid] = t_out
        data["flowers"][sid] = flowers
        data["directProduce"][sid] = produce
        data["consumables"][sid] = consumables

        month_budget = _money(base_sales * days_in_month * rng.uniform(0.95, 1.08))
        data["budget"][sid] = {
            "total": month_budget,
            "daily": {str(k): v for k, v in _budget_curve(rng, int(year), int(month), days_in_month, month_budget).items()},
        }

        opening = _money(rng.uniform(4_000_000.0, 7_000_000.0))
        has_counts = idx % 3 != 2
        data["inventory"][sid] = {
            "openingInventory": opening if has_counts else None,
            "closingInventory": _money(opening * rng.uniform(0.9, 1.1)) if has_counts else None,
            "grossProfitBudget": _money(month_budget * DEFAULT_SETTINGS.target_gross_profit_rate),
        }

    settings = {
        "targetYear": int(year),
        "targetMonth": int(month),
        "targetGrossProfitRate": DEFAULT_SETTINGS.target_gross_profit_rate,
        "warningThreshold": DEFAULT_SETTINGS.warning_threshold,
        "flowerCostRate": DEFAULT_SETTINGS.flower_cost_rate,
        "directProduceCostRate": DEFAULT_SETTINGS.direct_produce_cost_rate,
        "defaultMarkupRate": DEFAULT_SETTINGS.default_markup_rate,
        "defaultBudget": DEFAULT_SETTINGS.default_budget,
        "supplierCategoryMap": {code: cat.value for code, cat in default_supplier_category_map().items()},
        "dataEndDay": data_end_day,
    }
    return {"type": "calculate", "data": data, "settings": settings, "daysInMonth": days_in_month}
