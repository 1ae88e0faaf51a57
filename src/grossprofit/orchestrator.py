from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional, Tuple

from grossprofit.aggregate import aggregate_store_results
from grossprofit.assembler import assemble_store_result
from grossprofit.cache import CalculationCache
from grossprofit.daily_builder import build_daily_records
from grossprofit.models import AppSettings, ImportedData, StoreResult

logger = logging.getLogger("grossprofit.orchestrator")


def effective_days(settings: AppSettings, days_in_month: int) -> int:
    if settings.data_end_day is None:
        return int(days_in_month)
    return max(0, min(int(settings.data_end_day), int(days_in_month)))


def calculate_store_result(
    store_id: str,
    data: ImportedData,
    settings: AppSettings,
    days_in_month: int,
    cache: Optional[CalculationCache] = None,
) -> StoreResult:
    """Daily fold plus assembly for one store.

    Days after ``settings.data_end_day`` are ignored by the fold, but budget
    projection still runs against the full calendar month.
    """

    if cache is not None:
        hit = cache.get_store_result(store_id, data, settings, days_in_month)
        if hit is not None:
            logger.debug("cache hit for store %s", store_id)
            return hit

    acc = build_daily_records(
        store_id,
        data,
        effective_days(settings, days_in_month),
        supplier_categories=settings.supplier_category_map,
    )
    result = assemble_store_result(store_id, acc, data, settings, days_in_month)

    if cache is not None:
        cache.set_store_result(store_id, data, settings, days_in_month, result)
    return result


def calculate_all_stores(
    data: ImportedData,
    settings: AppSettings,
    days_in_month: int,
    max_workers: Optional[int] = None,
    cache: Optional[CalculationCache] = None,
) -> Dict[str, StoreResult]:
    if cache is not None:
        hit = cache.get_global_result(data, settings, days_in_month)
        if hit is not None:
            logger.debug("global cache hit (%d stores)", len(hit))
            return hit

    store_ids = list(data.stores)
    if max_workers is not None and max_workers > 1 and len(store_ids) > 1:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="grossprofit") as pool:
            futures = [
                pool.submit(calculate_store_result, sid, data, settings, days_in_month, cache)
                for sid in store_ids
            ]
            # Every store must finish before anything downstream sees the results.
            results = {sid: f.result() for sid, f in zip(store_ids, futures)}
    else:
        results = {
            sid: calculate_store_result(sid, data, settings, days_in_month, cache) for sid in store_ids
        }

    if cache is not None:
        cache.set_global_result(data, settings, days_in_month, results)
    logger.debug("calculated %d stores (workers=%s)", len(results), max_workers)
    return results


def calculate_with_aggregate(
    data: ImportedData,
    settings: AppSettings,
    days_in_month: int,
    max_workers: Optional[int] = None,
    require_all_inventory: bool = False,
    cache: Optional[CalculationCache] = None,
) -> Tuple[Dict[str, StoreResult], Optional[StoreResult]]:
    """Per-store results and their aggregate (None when there are no stores)."""

    results = calculate_all_stores(data, settings, days_in_month, max_workers=max_workers, cache=cache)
    if not results:
        return results, None
    aggregate = aggregate_store_results(
        list(results.values()), days_in_month, require_all_inventory=require_all_inventory
    )
    return results, aggregate
