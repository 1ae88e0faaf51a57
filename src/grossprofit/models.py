from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from grossprofit.numeric import safe_divide


class Category(str, Enum):
    MARKET = "market"
    LFC = "lfc"
    SALAD_CLUB = "saladClub"
    PROCESSED = "processed"
    DIRECT_DELIVERY = "directDelivery"
    FLOWERS = "flowers"
    DIRECT_PRODUCE = "directProduce"
    CONSUMABLES = "consumables"
    INTER_STORE = "interStore"
    INTER_DEPARTMENT = "interDepartment"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: object) -> "Category":
        try:
            return cls(str(raw))
        except ValueError:
            return cls.OTHER


CATEGORY_ORDER: Tuple[Category, ...] = tuple(Category)

TRANSFER_DIRECTIONS: Tuple[str, ...] = (
    "inter_store_in",
    "inter_store_out",
    "inter_department_in",
    "inter_department_out",
)


@dataclass(frozen=True)
class CostPricePair:
    cost: float = 0.0
    price: float = 0.0

    def __add__(self, other: "CostPricePair") -> "CostPricePair":
        return CostPricePair(cost=self.cost + other.cost, price=self.price + other.price)

    @property
    def markup_rate(self) -> float:
        return safe_divide(self.price - self.cost, self.price)


ZERO_PAIR = CostPricePair()


def add_pairs(a: CostPricePair, b: CostPricePair) -> CostPricePair:
    return a + b


def sum_pairs(pairs: Iterable[CostPricePair]) -> CostPricePair:
    total = ZERO_PAIR
    for p in pairs:
        total = total + p
    return total


# ---------------------------------------------------------------------------
# Imported data (read-only input)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoreInfo:
    store_id: str
    code: str = ""
    name: str = ""


@dataclass(frozen=True)
class SupplierPurchase:
    name: str
    cost: float = 0.0
    price: float = 0.0


@dataclass(frozen=True)
class PurchaseDay:
    suppliers: Dict[str, SupplierPurchase] = field(default_factory=dict)
    total: CostPricePair = ZERO_PAIR


@dataclass(frozen=True)
class SalesDay:
    sales: float = 0.0
    customers: int = 0


@dataclass(frozen=True)
class DiscountDay:
    sales: float = 0.0
    discount: float = 0.0  # signed; markdowns usually arrive negative
    customers: int = 0


@dataclass(frozen=True)
class TransferRecord:
    day: int
    cost: float
    price: float
    from_store_id: str
    to_store_id: str
    is_department_transfer: bool = False


@dataclass(frozen=True)
class TransferDay:
    inter_store_in: Tuple[TransferRecord, ...] = ()
    inter_store_out: Tuple[TransferRecord, ...] = ()
    inter_department_in: Tuple[TransferRecord, ...] = ()
    inter_department_out: Tuple[TransferRecord, ...] = ()


@dataclass(frozen=True)
class SpecialSalesDay:
    price: float = 0.0
    cost: float = 0.0


@dataclass(frozen=True)
class ConsumableItem:
    account_code: str
    item_code: str
    item_name: str
    quantity: float
    cost: float


@dataclass(frozen=True)
class ConsumableDaily:
    cost: float = 0.0
    items: Tuple[ConsumableItem, ...] = ()


ZERO_CONSUMABLE = ConsumableDaily()


@dataclass(frozen=True)
class InventoryConfig:
    store_id: str
    opening_inventory: Optional[float] = None
    closing_inventory: Optional[float] = None
    gross_profit_budget: Optional[float] = None


@dataclass(frozen=True)
class BudgetData:
    store_id: str
    total: float
    daily: Dict[int, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ImportedData:
    # Day-indexed sources are store_id -> day -> slice.
    stores: Dict[str, StoreInfo] = field(default_factory=dict)
    purchase: Dict[str, Dict[int, PurchaseDay]] = field(default_factory=dict)
    sales: Dict[str, Dict[int, SalesDay]] = field(default_factory=dict)
    discount: Dict[str, Dict[int, DiscountDay]] = field(default_factory=dict)
    inter_store_in: Dict[str, Dict[int, TransferDay]] = field(default_factory=dict)
    inter_store_out: Dict[str, Dict[int, TransferDay]] = field(default_factory=dict)
    flowers: Dict[str, Dict[int, SpecialSalesDay]] = field(default_factory=dict)
    direct_produce: Dict[str, Dict[int, SpecialSalesDay]] = field(default_factory=dict)
    consumables: Dict[str, Dict[int, ConsumableDaily]] = field(default_factory=dict)
    inventory: Dict[str, InventoryConfig] = field(default_factory=dict)
    budget: Dict[str, BudgetData] = field(default_factory=dict)

    def slice(self, source: str, store_id: str, day: int):
        """Return the typed slice for (source, store, day) or None when absent."""

        table = getattr(self, source)
        return (table.get(store_id) or {}).get(int(day))


@dataclass(frozen=True)
class AppSettings:
    target_year: int = 2026
    target_month: int = 1
    target_gross_profit_rate: float = 0.25
    warning_threshold: float = 0.23
    flower_cost_rate: float = 0.80
    direct_produce_cost_rate: float = 0.85
    default_markup_rate: float = 0.26
    default_budget: float = 6_450_000.0
    supplier_category_map: Dict[str, Category] = field(default_factory=dict)
    # Last day of imported data to include; None means the whole month.
    data_end_day: Optional[int] = None


# ---------------------------------------------------------------------------
# Calculation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransferEntry:
    from_location: str
    to_location: str
    cost: float
    price: float


@dataclass(frozen=True)
class TransferBreakdown:
    inter_store_in: Tuple[TransferEntry, ...] = ()
    inter_store_out: Tuple[TransferEntry, ...] = ()
    inter_department_in: Tuple[TransferEntry, ...] = ()
    inter_department_out: Tuple[TransferEntry, ...] = ()

    def __add__(self, other: "TransferBreakdown") -> "TransferBreakdown":
        # Concatenation, never de-duplicated.
        return TransferBreakdown(
            inter_store_in=self.inter_store_in + other.inter_store_in,
            inter_store_out=self.inter_store_out + other.inter_store_out,
            inter_department_in=self.inter_department_in + other.inter_department_in,
            inter_department_out=self.inter_department_out + other.inter_department_out,
        )


@dataclass(frozen=True)
class DailyRecord:
    day: int
    sales: float = 0.0
    core_sales: float = 0.0
    gross_sales: float = 0.0
    purchase: CostPricePair = ZERO_PAIR
    delivery_sales: CostPricePair = ZERO_PAIR
    inter_store_in: CostPricePair = ZERO_PAIR
    inter_store_out: CostPricePair = ZERO_PAIR
    inter_department_in: CostPricePair = ZERO_PAIR
    inter_department_out: CostPricePair = ZERO_PAIR
    flowers: CostPricePair = ZERO_PAIR
    direct_produce: CostPricePair = ZERO_PAIR
    consumable: ConsumableDaily = ZERO_CONSUMABLE
    discount_amount: float = 0.0
    discount_absolute: float = 0.0
    customers: int = 0
    supplier_breakdown: Dict[str, CostPricePair] = field(default_factory=dict)
    transfer_breakdown: TransferBreakdown = field(default_factory=TransferBreakdown)


def daily_total_cost(rec: DailyRecord) -> float:
    return (
        rec.purchase.cost
        + rec.inter_store_in.cost
        + rec.inter_store_out.cost
        + rec.inter_department_in.cost
        + rec.inter_department_out.cost
        + rec.delivery_sales.cost
        + rec.consumable.cost
    )


@dataclass(frozen=True)
class SupplierTotal:
    supplier_code: str
    supplier_name: str
    category: Category = Category.OTHER
    cost: float = 0.0
    price: float = 0.0
    markup_rate: float = 0.0

    def with_markup(self) -> "SupplierTotal":
        return SupplierTotal(
            supplier_code=self.supplier_code,
            supplier_name=self.supplier_name,
            category=self.category,
            cost=self.cost,
            price=self.price,
            markup_rate=safe_divide(self.price - self.cost, self.price),
        )


@dataclass(frozen=True)
class TransferTotals:
    inter_store_in: CostPricePair = ZERO_PAIR
    inter_store_out: CostPricePair = ZERO_PAIR
    inter_department_in: CostPricePair = ZERO_PAIR
    inter_department_out: CostPricePair = ZERO_PAIR

    def __add__(self, other: "TransferTotals") -> "TransferTotals":
        return TransferTotals(
            inter_store_in=self.inter_store_in + other.inter_store_in,
            inter_store_out=self.inter_store_out + other.inter_store_out,
            inter_department_in=self.inter_department_in + other.inter_department_in,
            inter_department_out=self.inter_department_out + other.inter_department_out,
        )

    @property
    def combined(self) -> CostPricePair:
        return sum_pairs(getattr(self, d) for d in TRANSFER_DIRECTIONS)


@dataclass(frozen=True)
class TransferDetails:
    inter_store_in: CostPricePair = ZERO_PAIR
    inter_store_out: CostPricePair = ZERO_PAIR
    inter_department_in: CostPricePair = ZERO_PAIR
    inter_department_out: CostPricePair = ZERO_PAIR
    # Sum of all four directions (movement volume), not an in-minus-out balance.
    net_transfer: CostPricePair = ZERO_PAIR

    @classmethod
    def from_totals(cls, t: TransferTotals) -> "TransferDetails":
        return cls(
            inter_store_in=t.inter_store_in,
            inter_store_out=t.inter_store_out,
            inter_department_in=t.inter_department_in,
            inter_department_out=t.inter_department_out,
            net_transfer=t.combined,
        )

    def totals(self) -> TransferTotals:
        return TransferTotals(
            inter_store_in=self.inter_store_in,
            inter_store_out=self.inter_store_out,
            inter_department_in=self.inter_department_in,
            inter_department_out=self.inter_department_out,
        )


@dataclass(frozen=True)
class MonthlyAccumulator:
    daily: Dict[int, DailyRecord] = field(default_factory=dict)
    category_totals: Dict[Category, CostPricePair] = field(default_factory=dict)
    supplier_totals: Dict[str, SupplierTotal] = field(default_factory=dict)
    total_sales: float = 0.0
    total_cost: float = 0.0
    total_flower_price: float = 0.0
    total_flower_cost: float = 0.0
    total_direct_produce_price: float = 0.0
    total_direct_produce_cost: float = 0.0
    total_purchase_cost: float = 0.0
    total_purchase_price: float = 0.0
    total_discount: float = 0.0
    total_consumable: float = 0.0
    total_customers: int = 0
    sales_days: int = 0
    elapsed_days: int = 0
    transfer_totals: TransferTotals = field(default_factory=TransferTotals)


@dataclass(frozen=True)
class DailyCumulative:
    sales: float
    budget: float


@dataclass(frozen=True)
class StoreResult:
    store_id: str

    # Inventory (physical counts)
    opening_inventory: Optional[float]
    closing_inventory: Optional[float]

    # Sales
    total_sales: float
    total_core_sales: float
    delivery_sales_price: float
    flower_sales_price: float
    direct_produce_sales_price: float
    gross_sales: float

    # Cost
    total_cost: float
    inventory_cost: float
    delivery_sales_cost: float
    total_purchase_cost: float
    total_purchase_price: float

    # Inventory method: all sales, all purchases
    inv_method_cogs: Optional[float]
    inv_method_gross_profit: Optional[float]
    inv_method_gross_profit_rate: Optional[float]

    # Estimation method: inventory sales only, not an actual gross profit
    est_method_cogs: float
    est_method_margin: float
    est_method_margin_rate: float
    est_method_closing_inventory: Optional[float]

    # Customers
    total_customers: int
    average_customers_per_day: float

    # Markdowns
    total_discount: float
    discount_rate: float
    discount_loss_cost: float

    # Markup
    average_markup_rate: float
    core_markup_rate: float

    # Consumables
    total_consumable: float
    consumable_rate: float

    # Budget
    budget: float
    gross_profit_budget: float
    gross_profit_rate_budget: float
    budget_daily: Dict[int, float]

    daily: Dict[int, DailyRecord]

    category_totals: Dict[Category, CostPricePair]
    supplier_totals: Dict[str, SupplierTotal]
    transfer_details: TransferDetails

    # Projection / KPI
    elapsed_days: int
    sales_days: int
    average_daily_sales: float
    projected_sales: float
    projected_achievement: float
    budget_achievement_rate: float
    budget_progress_rate: float
    budget_elapsed_rate: float
    remaining_budget: float
    daily_cumulative: Dict[int, DailyCumulative]

    is_over_delivery: bool = False
    over_delivery_amount: float = 0.0


AGGREGATE_STORE_ID = "aggregate"
