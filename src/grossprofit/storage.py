from __future__ import annotations

import json
import logging
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar

from grossprofit.errors import DataFormatError
from grossprofit.models import (
    AppSettings,
    BudgetData,
    Category,
    ConsumableDaily,
    ConsumableItem,
    CostPricePair,
    DiscountDay,
    ImportedData,
    InventoryConfig,
    PurchaseDay,
    SalesDay,
    SpecialSalesDay,
    StoreInfo,
    StoreResult,
    SupplierPurchase,
    TransferDay,
    TransferRecord,
)
from grossprofit.numeric import optional_number, safe_int, safe_number
from grossprofit.presets import DEFAULT_SETTINGS

logger = logging.getLogger("grossprofit.storage")

T = TypeVar("T")

FORMAT_VERSION = "1.0.0"

MAX_DAYS_IN_MONTH = 31


def project_root() -> Path:
    # .../src/grossprofit/storage.py -> parents[2] == repo root
    return Path(__file__).resolve().parents[2]


def data_dir(base: Optional[Path] = None) -> Path:
    p = Path(base) if base is not None else project_root() / "data"
    p.mkdir(parents=True, exist_ok=True)
    return p


def results_path(base: Optional[Path] = None) -> Path:
    return data_dir(base) / "results.json"


# ---------------------------------------------------------------------------
# Decoding (wire dict -> dataclasses)
# ---------------------------------------------------------------------------


def _require_dict(d: Any, what: str) -> Dict[str, Any]:
    if d is None:
        return {}
    if not isinstance(d, dict):
        raise DataFormatError(f"{what} must be an object, got {type(d).__name__}")
    return d


def _require_list(d: Any, what: str) -> list:
    if d is None:
        return []
    if not isinstance(d, (list, tuple)):
        raise DataFormatError(f"{what} must be a list, got {type(d).__name__}")
    return list(d)


def _day_key(k: Any, what: str) -> int:
    try:
        return int(k)
    except (TypeError, ValueError):
        raise DataFormatError(f"{what}: invalid day key {k!r}") from None


def _store_day_table(raw: Any, what: str, load: Callable[[Dict[str, Any], str], T]) -> Dict[str, Dict[int, T]]:
    out: Dict[str, Dict[int, T]] = {}
    for store_id, days in _require_dict(raw, what).items():
        table: Dict[int, T] = {}
        for k, v in _require_dict(days, f"{what}.{store_id}").items():
            day = _day_key(k, f"{what}.{store_id}")
            table[day] = load(_require_dict(v, f"{what}.{store_id}.{k}"), f"{what}.{store_id}.{k}")
        out[str(store_id)] = table
    return out


def _load_pair(d: Any) -> CostPricePair:
    if not isinstance(d, dict):
        return CostPricePair()
    return CostPricePair(cost=safe_number(d.get("cost")), price=safe_number(d.get("price")))


def _load_purchase_day(d: Dict[str, Any], what: str) -> PurchaseDay:
    suppliers: Dict[str, SupplierPurchase] = {}
    for code, sd in _require_dict(d.get("suppliers"), f"{what}.suppliers").items():
        sd = _require_dict(sd, f"{what}.suppliers.{code}")
        suppliers[str(code)] = SupplierPurchase(
            name=str(sd.get("name") or code),
            cost=safe_number(sd.get("cost")),
            price=safe_number(sd.get("price")),
        )
    return PurchaseDay(suppliers=suppliers, total=_load_pair(d.get("total")))


def _load_sales_day(d: Dict[str, Any], what: str) -> SalesDay:
    return SalesDay(sales=safe_number(d.get("sales")), customers=safe_int(d.get("customers")))


def _load_discount_day(d: Dict[str, Any], what: str) -> DiscountDay:
    return DiscountDay(
        sales=safe_number(d.get("sales")),
        discount=safe_number(d.get("discount")),
        customers=safe_int(d.get("customers")),
    )


def _load_transfer_records(raw: Any, what: str) -> Tuple[TransferRecord, ...]:
    out = []
    for i, r in enumerate(_require_list(raw, what)):
        r = _require_dict(r, f"{what}[{i}]")
        out.append(
            TransferRecord(
                day=safe_int(r.get("day")),
                cost=safe_number(r.get("cost")),
                price=safe_number(r.get("price")),
                from_store_id=str(r.get("fromStoreId") or ""),
                to_store_id=str(r.get("toStoreId") or ""),
                is_department_transfer=bool(r.get("isDepartmentTransfer", False)),
            )
        )
    return tuple(out)


def _load_transfer_day(d: Dict[str, Any], what: str) -> TransferDay:
    return TransferDay(
        inter_store_in=_load_transfer_records(d.get("interStoreIn"), f"{what}.interStoreIn"),
        inter_store_out=_load_transfer_records(d.get("interStoreOut"), f"{what}.interStoreOut"),
        inter_department_in=_load_transfer_records(d.get("interDepartmentIn"), f"{what}.interDepartmentIn"),
        inter_department_out=_load_transfer_records(d.get("interDepartmentOut"), f"{what}.interDepartmentOut"),
    )


def _load_special_day(d: Dict[str, Any], what: str) -> SpecialSalesDay:
    return SpecialSalesDay(price=safe_number(d.get("price")), cost=safe_number(d.get("cost")))


def _load_consumable_day(d: Dict[str, Any], what: str) -> ConsumableDaily:
    items = []
    for i, it in enumerate(_require_list(d.get("items"), f"{what}.items")):
        it = _require_dict(it, f"{what}.items[{i}]")
        items.append(
            ConsumableItem(
                account_code=str(it.get("accountCode") or ""),
                item_code=str(it.get("itemCode") or ""),
                item_name=str(it.get("itemName") or ""),
                quantity=safe_number(it.get("quantity")),
                cost=safe_number(it.get("cost")),
            )
        )
    return ConsumableDaily(cost=safe_number(d.get("cost")), items=tuple(items))


def imported_data_from_dict(d: Any) -> ImportedData:
    """Decode the camelCase wire form of the imported month.

    Numeric values are coerced (non-finite or missing -> 0); wrong container
    types raise DataFormatError.
    """

    d = _require_dict(d, "data")

    stores: Dict[str, StoreInfo] = {}
    raw_stores = d.get("stores")
    if isinstance(raw_stores, list):
        # Also accept a plain list of store ids or store objects.
        raw_stores = {
            str(s.get("storeId") or s.get("id") or "") if isinstance(s, dict) else str(s): s
            for s in raw_stores
        }
    for sid, sd in _require_dict(raw_stores, "stores").items():
        sd = sd if isinstance(sd, dict) else {}
        stores[str(sid)] = StoreInfo(
            store_id=str(sid),
            code=str(sd.get("code") or sid),
            name=str(sd.get("name") or sid),
        )

    inventory: Dict[str, InventoryConfig] = {}
    # "settings" is the per-store inventory table in exported data files.
    raw_inv = d.get("inventory", d.get("settings"))
    for sid, cfg in _require_dict(raw_inv, "inventory").items():
        cfg = _require_dict(cfg, f"inventory.{sid}")
        inventory[str(sid)] = InventoryConfig(
            store_id=str(sid),
            opening_inventory=optional_number(cfg.get("openingInventory")),
            closing_inventory=optional_number(cfg.get("closingInventory")),
            gross_profit_budget=optional_number(cfg.get("grossProfitBudget")),
        )

    budget: Dict[str, BudgetData] = {}
    for sid, bd in _require_dict(d.get("budget"), "budget").items():
        bd = _require_dict(bd, f"budget.{sid}")
        daily = {
            _day_key(k, f"budget.{sid}.daily"): safe_number(v)
            for k, v in _require_dict(bd.get("daily"), f"budget.{sid}.daily").items()
        }
        total = bd.get("total")
        budget[str(sid)] = BudgetData(
            store_id=str(sid),
            total=safe_number(total) if total is not None else float(sum(daily.values())),
            daily=daily,
        )

    return ImportedData(
        stores=stores,
        purchase=_store_day_table(d.get("purchase"), "purchase", _load_purchase_day),
        sales=_store_day_table(d.get("sales"), "sales", _load_sales_day),
        discount=_store_day_table(d.get("discount"), "discount", _load_discount_day),
        inter_store_in=_store_day_table(d.get("interStoreIn"), "interStoreIn", _load_transfer_day),
        inter_store_out=_store_day_table(d.get("interStoreOut"), "interStoreOut", _load_transfer_day),
        flowers=_store_day_table(d.get("flowers"), "flowers", _load_special_day),
        direct_produce=_store_day_table(d.get("directProduce"), "directProduce", _load_special_day),
        consumables=_store_day_table(d.get("consumables"), "consumables", _load_consumable_day),
        inventory=inventory,
        budget=budget,
    )


def app_settings_from_dict(d: Any) -> AppSettings:
    d = _require_dict(d, "settings")
    base = DEFAULT_SETTINGS

    def num(key: str, default: float) -> float:
        v = d.get(key)
        return default if v is None else safe_number(v)

    cat_map = {
        str(code): Category.parse(cat)
        for code, cat in _require_dict(d.get("supplierCategoryMap"), "settings.supplierCategoryMap").items()
    }
    year = int(num("targetYear", base.target_year))
    month = int(num("targetMonth", base.target_month))
    if not 1 <= year <= 9999:
        raise DataFormatError(f"targetYear must be in 1..9999, got {year}")
    if not 1 <= month <= 12:
        raise DataFormatError(f"targetMonth must be in 1..12, got {month}")

    end = d.get("dataEndDay")
    return AppSettings(
        target_year=year,
        target_month=month,
        target_gross_profit_rate=num("targetGrossProfitRate", base.target_gross_profit_rate),
        warning_threshold=num("warningThreshold", base.warning_threshold),
        flower_cost_rate=num("flowerCostRate", base.flower_cost_rate),
        direct_produce_cost_rate=num("directProduceCostRate", base.direct_produce_cost_rate),
        default_markup_rate=num("defaultMarkupRate", base.default_markup_rate),
        default_budget=num("defaultBudget", base.default_budget),
        supplier_category_map=cat_map,
        data_end_day=None if end is None else safe_int(end),
    )


def request_from_dict(payload: Any) -> Tuple[ImportedData, AppSettings, int]:
    """Decode a ``{data, settings, daysInMonth}`` request body."""

    payload = _require_dict(payload, "request")
    data = imported_data_from_dict(payload.get("data"))
    settings = app_settings_from_dict(payload.get("settings"))
    days = payload.get("daysInMonth")
    if days is None:
        raise DataFormatError("daysInMonth is required")
    days_in_month = safe_int(days)
    if not 0 <= days_in_month <= MAX_DAYS_IN_MONTH:
        raise DataFormatError(f"daysInMonth must be in 0..{MAX_DAYS_IN_MONTH}, got {days_in_month}")
    return data, settings, days_in_month


def load_request(path: Path) -> Tuple[ImportedData, AppSettings, int]:
    p = Path(path)
    payload = json.loads(p.read_text(encoding="utf-8"))
    logger.debug("loaded request %s", p)
    return request_from_dict(payload)


# ---------------------------------------------------------------------------
# Encoding (dataclasses -> wire dict)
# ---------------------------------------------------------------------------


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _key(k: Any) -> str:
    if isinstance(k, Enum):
        return str(k.value)
    return str(k)


def to_jsonable(obj: Any) -> Any:
    """Recursively convert result dataclasses to camelCase JSON values."""

    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return {camel(f.name): to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {_key(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def result_to_dict(result: StoreResult) -> Dict[str, Any]:
    return to_jsonable(result)


def results_to_dict(results: Mapping[str, StoreResult]) -> Dict[str, Any]:
    return {sid: result_to_dict(r) for sid, r in results.items()}


def save_results(
    results: Mapping[str, StoreResult],
    path: Optional[Path] = None,
    aggregate: Optional[StoreResult] = None,
) -> Path:
    p = Path(path) if path is not None else results_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    payload: Dict[str, Any] = {
        "version": FORMAT_VERSION,
        "results": results_to_dict(results),
    }
    if aggregate is not None:
        payload["aggregate"] = result_to_dict(aggregate)
    p.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("saved %d store results to %s", len(results), p)
    return p
