from __future__ import annotations

from grossprofit.forecast import (
    ForecastInput,
    build_forecast_input,
    calculate_day_of_week_averages,
    calculate_forecast,
    calculate_std_dev,
    calculate_weekly_summaries,
    detect_anomalies,
    get_week_ranges,
)
from grossprofit.models import AppSettings, CostPricePair, ImportedData, PurchaseDay, SalesDay, StoreInfo
from grossprofit.orchestrator import calculate_store_result


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def _close(a: float, b: float, tol: float = 1e-9) -> bool:
    return abs(float(a) - float(b)) <= tol


def test_week_ranges_clip_to_month() -> None:
    # 2026-01-01 is a Thursday.
    weeks = get_week_ranges(2026, 1)
    spans = [(w.start_day, w.end_day) for w in weeks]
    _assert(spans == [(1, 4), (5, 11), (12, 18), (19, 25), (26, 31)], f"unexpected weeks {spans}")
    _assert([w.week_number for w in weeks] == [1, 2, 3, 4, 5], "weeks are numbered from 1")

    # 2026-02-01 is a Sunday, so the first week is one day long.
    _assert(get_week_ranges(2026, 2)[0].end_day == 1, "single-day first week")


def test_weekly_summaries() -> None:
    inp = ForecastInput(
        year=2026,
        month=1,
        daily_sales={1: 100.0, 2: 200.0, 5: 400.0},
        daily_gross_profit={1: 25.0, 2: 50.0, 5: 80.0},
    )
    w = calculate_weekly_summaries(inp)
    _assert(_close(w[0].total_sales, 300.0) and w[0].days == 2, "first week totals")
    _assert(_close(w[0].gross_profit_rate, 0.25), "first week rate")
    _assert(_close(w[1].gross_profit_rate, 0.2), "second week rate")
    _assert(w[2].total_sales == 0.0 and w[2].gross_profit_rate == 0.0, "empty week")


def test_day_of_week_averages_start_on_sunday() -> None:
    # Jan 4 and Jan 11 are Sundays, Jan 1 is a Thursday.
    inp = ForecastInput(year=2026, month=1, daily_sales={1: 90.0, 4: 100.0, 11: 300.0})
    avgs = calculate_day_of_week_averages(inp)
    _assert(len(avgs) == 7 and avgs[0].day_of_week == 0, "seven buckets, Sunday first")
    _assert(_close(avgs[0].average_sales, 200.0) and avgs[0].count == 2, "Sunday average")
    _assert(_close(avgs[4].average_sales, 90.0), "Thursday average")
    _assert(avgs[1].count == 0 and avgs[1].average_sales == 0.0, "no Mondays with sales")


def test_anomalies() -> None:
    sales = {d: 100.0 for d in range(1, 11)}
    sales[11] = 1000.0
    found = detect_anomalies(sales)
    _assert([a.day for a in found] == [11], f"only the spike is flagged, got {[a.day for a in found]}")
    _assert(found[0].z_score > 2.0 and found[0].is_anomaly, "z-score above the threshold")

    _assert(detect_anomalies({1: 10.0, 2: 1000.0}) == [], "fewer than three sales days")
    _assert(detect_anomalies({1: 50.0, 2: 50.0, 3: 50.0}) == [], "no spread, no anomalies")
    _assert(detect_anomalies({1: 0.0, 2: 0.0, 3: 0.0, 4: 500.0}) == [], "zero-sales days are ignored")

    mean, std = calculate_std_dev([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
    _assert(_close(mean, 5.0) and _close(std, 2.0), "population standard deviation")
    _assert(calculate_std_dev([]) == (0.0, 0.0), "empty input")


def test_forecast_from_store_result() -> None:
    data = ImportedData(
        stores={"01": StoreInfo(store_id="01")},
        sales={"01": {1: SalesDay(sales=1000.0), 2: SalesDay(sales=500.0)}},
        purchase={"01": {1: PurchaseDay(total=CostPricePair(cost=700.0, price=1000.0))}},
    )
    r = calculate_store_result("01", data, AppSettings(), 31)
    inp = build_forecast_input(r, 2026, 1)
    _assert(inp.daily_gross_profit == {1: 300.0, 2: 500.0}, "sales minus purchase cost per day")

    f = calculate_forecast(inp)
    _assert(len(f.weekly_summaries) == 5 and len(f.day_of_week_averages) == 7, "full month layout")
    _assert(f.anomalies == (), "two days cannot produce anomalies")


def main() -> None:
    tests = [
        test_week_ranges_clip_to_month,
        test_weekly_summaries,
        test_day_of_week_averages_start_on_sunday,
        test_anomalies,
        test_forecast_from_store_result,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
