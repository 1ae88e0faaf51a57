from __future__ import annotations

import logging

from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from grossprofit.cache import CalculationCache
from grossprofit.config import configure_logging, get_settings
from grossprofit.errors import CalculationError, DataFormatError
from grossprofit.forecast import build_forecast_input, calculate_forecast
from grossprofit.orchestrator import calculate_store_result, calculate_with_aggregate
from grossprofit.presets import DEFAULT_SETTINGS
from grossprofit.storage import request_from_dict, result_to_dict, results_to_dict, to_jsonable
from grossprofit.worker import CalculationJobs, handle_request

logger = logging.getLogger("grossprofit.webapp")


def _bad_request(message: str, code: str = "bad_request") -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message, "code": code})


def create_app() -> FastAPI:
    app = FastAPI(title="Store Gross Profit Calculation API")

    # Allow Vite dev server or other local frontends.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    cfg = get_settings()
    cache = CalculationCache(max_entries=cfg.cache_entries)
    jobs = CalculationJobs(max_workers=cfg.max_workers, history=cfg.job_history, cache=cache)

    @app.get("/")
    def root():
        return {
            "name": "grossprofit",
            "api": [
                "/api/calculate",
                "/api/calculate/aggregate",
                "/api/calculate/async",
                "/api/forecast",
                "/api/settings/defaults",
            ],
            "cached_stores": cache.size,
        }

    @app.post("/api/calculate")
    def api_calculate(payload: dict = Body(...)):  # {type, data, settings, daysInMonth}
        # Failures come back as {"type": "error"} in the body, same as the async job response.
        return handle_request(payload, max_workers=cfg.max_workers, cache=cache)

    @app.post("/api/calculate/aggregate")
    def api_calculate_aggregate(payload: dict = Body(...)):
        try:
            data, settings, days_in_month = request_from_dict(payload)
            require_all = bool(payload.get("requireAllInventory", False))
            results, aggregate = calculate_with_aggregate(
                data,
                settings,
                days_in_month,
                max_workers=cfg.max_workers,
                require_all_inventory=require_all,
                cache=cache,
            )
        except DataFormatError as e:
            return _bad_request(str(e), "invalid_request")
        except (CalculationError, ValueError) as e:
            logger.exception("aggregate calculation failed")
            return _bad_request(str(e), "calculation_failed")
        return {
            "type": "result",
            "results": results_to_dict(results),
            "aggregate": result_to_dict(aggregate) if aggregate is not None else None,
        }

    @app.post("/api/calculate/async")
    def api_calculate_async(payload: dict = Body(...)):
        job_id = jobs.submit(payload)
        snapshot = jobs.snapshot(job_id, include_response=False)
        return snapshot or {"error": "job_create_failed", "code": "job_create_failed"}

    @app.get("/api/calculate/jobs/{job_id}")
    def api_calculate_job_status(job_id: str):
        snapshot = jobs.snapshot(job_id)
        if snapshot is None:
            return JSONResponse(
                status_code=404,
                content={"error": "job_not_found", "code": "job_not_found", "job_id": job_id},
            )
        return snapshot

    @app.post("/api/forecast")
    def api_forecast(payload: dict = Body(...)):  # {data, settings, daysInMonth, storeId}
        try:
            data, settings, days_in_month = request_from_dict(payload)
        except DataFormatError as e:
            return _bad_request(str(e), "invalid_request")
        store_id = str(payload.get("storeId") or "")
        if store_id not in data.stores:
            return _bad_request(f"store not found: {store_id!r}", "store_not_found")
        try:
            result = calculate_store_result(store_id, data, settings, days_in_month, cache=cache)
            forecast = calculate_forecast(build_forecast_input(result, settings.target_year, settings.target_month))
        except (CalculationError, ValueError) as e:
            logger.exception("forecast for store %s failed", store_id)
            return _bad_request(str(e), "calculation_failed")
        logger.debug("forecast for store %s: %d anomalies", store_id, len(forecast.anomalies))
        return {"storeId": store_id, "forecast": to_jsonable(forecast)}

    @app.get("/api/settings/defaults")
    def api_settings_defaults():
        return to_jsonable(DEFAULT_SETTINGS)

    return app


app = create_app()


def main() -> int:
    import uvicorn

    cfg = get_settings()
    configure_logging(cfg.log_level)
    uvicorn.run("grossprofit.webapp:app", host=cfg.host, port=cfg.port, reload=cfg.reload)
    return 0
