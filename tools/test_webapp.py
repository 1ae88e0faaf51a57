from __future__ import annotations

import time

from fastapi.testclient import TestClient

from grossprofit import webapp
from grossprofit.presets import sample_request
from grossprofit.webapp import create_app


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def _client() -> TestClient:
    return TestClient(create_app())


def test_root_and_defaults() -> None:
    client = _client()
    r = client.get("/")
    _assert(r.status_code == 200 and "/api/calculate" in r.json()["api"], "index lists the api")

    d = client.get("/api/settings/defaults").json()
    _assert(d["defaultMarkupRate"] == 0.26 and d["defaultBudget"] == 6_450_000.0, "defaults in camelCase")
    _assert(d["dataEndDay"] is None, "no cutoff by default")


def test_calculate() -> None:
    client = _client()
    body = client.post("/api/calculate", json=sample_request(stores=2, days=4)).json()
    _assert(body["type"] == "result" and sorted(body["results"]) == ["01", "02"], "per-store results")

    body = client.post("/api/calculate", json={"type": "calculate", "data": {}, "settings": {}}).json()
    _assert(body["type"] == "error", "errors come back in the body")


def test_calculate_aggregate() -> None:
    client = _client()
    req = sample_request(stores=3, days=5)
    body = client.post("/api/calculate/aggregate", json=req).json()
    agg = body["aggregate"]
    _assert(agg["storeId"] == "aggregate", "aggregate returned")
    total = sum(r["totalSales"] for r in body["results"].values())
    _assert(abs(agg["totalSales"] - total) < 1e-6, "aggregate sales are the store sum")
    _assert(agg["openingInventory"] is not None, "any store with counts makes the aggregate count present")

    req["requireAllInventory"] = True
    agg = client.post("/api/calculate/aggregate", json=req).json()["aggregate"]
    _assert(agg["openingInventory"] is None, "store 03 has no counts")

    r = client.post("/api/calculate/aggregate", json={"data": [], "daysInMonth": 31})
    _assert(r.status_code == 400 and r.json()["code"] == "invalid_request", "bad request body")


def test_async_job() -> None:
    client = _client()
    snap = client.post("/api/calculate/async", json=sample_request(stores=2, days=3)).json()
    job_id = snap["job_id"]
    _assert(job_id.startswith("calc_") and "response" not in snap, "job accepted")

    deadline = time.monotonic() + 30.0
    while True:
        snap = client.get(f"/api/calculate/jobs/{job_id}").json()
        if snap["status"] in ("succeeded", "failed") or time.monotonic() > deadline:
            break
        time.sleep(0.02)
    _assert(snap["status"] == "succeeded", f"job should succeed, got {snap}")
    _assert(snap["response"]["type"] == "result", "job response attached")

    r = client.get("/api/calculate/jobs/calc_nope")
    _assert(r.status_code == 404 and r.json()["code"] == "job_not_found", "unknown job")


def test_forecast() -> None:
    client = _client()
    req = sample_request(stores=2, days=20)
    req["storeId"] = "01"
    body = client.post("/api/forecast", json=req).json()
    f = body["forecast"]
    _assert(body["storeId"] == "01", "store echoed")
    _assert(len(f["weeklySummaries"]) == 5 and len(f["dayOfWeekAverages"]) == 7, "January layout")
    _assert(isinstance(f["anomalies"], list), "anomaly list")

    req["storeId"] = "99"
    r = client.post("/api/forecast", json=req)
    _assert(r.status_code == 400 and r.json()["code"] == "store_not_found", "unknown store")


def test_out_of_range_month_and_days_are_bad_requests() -> None:
    client = _client()
    req = sample_request(stores=1, days=3)
    req["storeId"] = "01"
    req["settings"]["targetMonth"] = 13
    r = client.post("/api/forecast", json=req)
    _assert(r.status_code == 400 and r.json()["code"] == "invalid_request", f"month 13, got {r.status_code}")
    _assert("targetMonth" in r.json()["error"], "message names the field")

    req = sample_request(stores=1, days=3)
    req["daysInMonth"] = 1e9
    r = client.post("/api/calculate/aggregate", json=req)
    _assert(r.status_code == 400 and "daysInMonth" in r.json()["error"], "huge month length rejected")

    req["daysInMonth"] = 32
    body = client.post("/api/calculate", json=req).json()
    _assert(body["type"] == "error" and "daysInMonth" in body["message"], "calculate reports it in the body")


def test_core_errors_become_error_dicts() -> None:
    def _fail(*args, **kwargs):
        raise ValueError("boom")

    client = _client()
    req = sample_request(stores=2, days=3)
    req["storeId"] = "01"
    saved = (webapp.calculate_forecast, webapp.calculate_with_aggregate)
    webapp.calculate_forecast = _fail
    webapp.calculate_with_aggregate = _fail
    try:
        r = client.post("/api/forecast", json=req)
        _assert(r.status_code == 400 and r.json() == {"error": "boom", "code": "calculation_failed"}, "forecast")
        r = client.post("/api/calculate/aggregate", json=req)
        _assert(r.status_code == 400 and r.json()["code"] == "calculation_failed", "aggregate")
    finally:
        webapp.calculate_forecast, webapp.calculate_with_aggregate = saved


def main() -> None:
    tests = [
        test_root_and_defaults,
        test_calculate,
        test_calculate_aggregate,
        test_async_job,
        test_forecast,
        test_out_of_range_month_and_days_are_bad_requests,
        test_core_errors_become_error_dicts,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
