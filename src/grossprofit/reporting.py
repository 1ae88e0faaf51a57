from __future__ import annotations

from typing import Mapping, Optional

from grossprofit.models import CATEGORY_ORDER, AppSettings, StoreResult
from grossprofit.presets import DEFAULT_SETTINGS


def format_money(x: float) -> str:
    return f"{x:,.0f}"


def format_percent(x: float) -> str:
    return f"{x * 100:.2f}%"


def format_optional(x: Optional[float], percent: bool = False) -> str:
    if x is None:
        return "-"
    return format_percent(x) if percent else format_money(x)


def rate_status(rate: Optional[float], settings: AppSettings = DEFAULT_SETTINGS) -> str:
    """Classify a gross profit rate against the target and warning thresholds."""

    if rate is None:
        return "unknown"
    if rate >= settings.target_gross_profit_rate:
        return "ok"
    if rate >= settings.warning_threshold:
        return "warning"
    return "danger"


def print_store_result(r: StoreResult, settings: AppSettings = DEFAULT_SETTINGS, name: str = "") -> None:
    title = f"{name} ({r.store_id})" if name and name != r.store_id else r.store_id
    print(f"\n=== {title}  経過 {r.elapsed_days} 日 / 営業 {r.sales_days} 日 ===")
    print(
        "  ".join(
            [
                f"売上 {format_money(r.total_sales)}",
                f"コア売上 {format_money(r.total_core_sales)}",
                f"売変 {format_money(r.total_discount)} ({format_percent(r.discount_rate)})",
                f"客数 {r.total_customers}",
            ]
        )
    )
    if r.is_over_delivery:
        print(f"  ! 納品売上が売上を超過: {format_money(r.over_delivery_amount)}")

    inv_status = rate_status(r.inv_method_gross_profit_rate, settings)
    print(
        f"在庫法: 原価 {format_optional(r.inv_method_cogs)}"
        f"  粗利 {format_optional(r.inv_method_gross_profit)}"
        f"  粗利率 {format_optional(r.inv_method_gross_profit_rate, percent=True)} [{inv_status}]"
    )
    print(
        f"推定法: 原価 {format_money(r.est_method_cogs)}"
        f"  マージン {format_money(r.est_method_margin)}"
        f"  率 {format_percent(r.est_method_margin_rate)}"
        f"  推定期末在庫 {format_optional(r.est_method_closing_inventory)}"
    )
    print(
        f"値入率: 平均 {format_percent(r.average_markup_rate)}  コア {format_percent(r.core_markup_rate)}"
        f"  売変ロス原価 {format_money(r.discount_loss_cost)}  消耗品 {format_money(r.total_consumable)}"
    )
    print(
        f"予算 {format_money(r.budget)}  達成率 {format_percent(r.budget_achievement_rate)}"
        f"  進捗率 {format_percent(r.budget_progress_rate)}"
        f"  着地予測 {format_money(r.projected_sales)} ({format_percent(r.projected_achievement)})"
        f"  残予算 {format_money(r.remaining_budget)}"
    )

    td = r.transfer_details
    print(
        f"移動: 店間入 {format_money(td.inter_store_in.cost)}  店間出 {format_money(td.inter_store_out.cost)}"
        f"  部門間入 {format_money(td.inter_department_in.cost)}  部門間出 {format_money(td.inter_department_out.cost)}"
    )

    cats = [(c, r.category_totals[c]) for c in CATEGORY_ORDER if c in r.category_totals]
    if cats:
        print("カテゴリ:")
        for cat, pair in cats:
            print(f"- {cat.value}: 原価 {format_money(pair.cost)}  売価 {format_money(pair.price)}")


def print_results(
    results: Mapping[str, StoreResult],
    aggregate: Optional[StoreResult] = None,
    settings: AppSettings = DEFAULT_SETTINGS,
    names: Optional[Mapping[str, str]] = None,
) -> None:
    if not results:
        print("店舗データがありません。")
        return
    for sid, r in results.items():
        print_store_result(r, settings, name=(names or {}).get(sid, ""))
    if aggregate is not None:
        print_store_result(aggregate, settings, name="全店合計")
