from __future__ import annotations

import hashlib
import json
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional

from grossprofit.models import AppSettings, ImportedData, StoreResult
from grossprofit.storage import to_jsonable

MAX_ENTRIES = 100

# Per-store tables of ImportedData, all keyed store_id -> ...
_STORE_TABLES = (
    "stores",
    "purchase",
    "sales",
    "discount",
    "inter_store_in",
    "inter_store_out",
    "flowers",
    "direct_produce",
    "consumables",
    "inventory",
    "budget",
)


def _digest(payload: Any) -> str:
    text = json.dumps(to_jsonable(payload), sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def compute_fingerprint(store_id: str, data: ImportedData, settings: AppSettings, days_in_month: int) -> str:
    """Digest of everything one store's result depends on.

    Covers every per-store table of the imported data, every settings field
    and the month length, so any input difference gives a different key.
    """

    return _digest(
        {
            "storeId": store_id,
            "daysInMonth": int(days_in_month),
            "settings": settings,
            "data": {name: getattr(data, name).get(store_id) for name in _STORE_TABLES},
        }
    )


def compute_global_fingerprint(data: ImportedData, settings: AppSettings, days_in_month: int) -> str:
    # Store order is part of the key: results come back in that order.
    parts = [(sid, compute_fingerprint(sid, data, settings, days_in_month)) for sid in data.stores]
    return _digest({"stores": parts, "daysInMonth": int(days_in_month)})


class CalculationCache:
    """Per-store results keyed by input fingerprint, plus one whole-run result."""

    def __init__(self, max_entries: int = MAX_ENTRIES) -> None:
        self.max_entries = max(1, int(max_entries))
        self._lock = threading.Lock()
        self._stores: "OrderedDict[str, tuple[str, StoreResult]]" = OrderedDict()
        self._global_fp: Optional[str] = None
        self._global: Optional[Dict[str, StoreResult]] = None

    def get_store_result(
        self, store_id: str, data: ImportedData, settings: AppSettings, days_in_month: int
    ) -> Optional[StoreResult]:
        fp = compute_fingerprint(store_id, data, settings, days_in_month)
        with self._lock:
            entry = self._stores.get(store_id)
            if entry is None or entry[0] != fp:
                return None
            self._stores.move_to_end(store_id)
            return entry[1]

    def set_store_result(
        self,
        store_id: str,
        data: ImportedData,
        settings: AppSettings,
        days_in_month: int,
        result: StoreResult,
    ) -> None:
        fp = compute_fingerprint(store_id, data, settings, days_in_month)
        with self._lock:
            self._stores[store_id] = (fp, result)
            self._stores.move_to_end(store_id)
            while len(self._stores) > self.max_entries:
                self._stores.popitem(last=False)

    def get_global_result(
        self, data: ImportedData, settings: AppSettings, days_in_month: int
    ) -> Optional[Dict[str, StoreResult]]:
        fp = compute_global_fingerprint(data, settings, days_in_month)
        with self._lock:
            if self._global is not None and self._global_fp == fp:
                return dict(self._global)
        return None

    def set_global_result(
        self,
        data: ImportedData,
        settings: AppSettings,
        days_in_month: int,
        results: Dict[str, StoreResult],
    ) -> None:
        fp = compute_global_fingerprint(data, settings, days_in_month)
        with self._lock:
            self._global_fp = fp
            self._global = dict(results)
        for store_id, result in results.items():
            self.set_store_result(store_id, data, settings, days_in_month, result)

    def clear(self) -> None:
        with self._lock:
            self._stores.clear()
            self._global_fp = None
            self._global = None

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._stores)

    @property
    def has_global_cache(self) -> bool:
        with self._lock:
            return self._global is not None
