from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

AlertType = Literal["low-stock", "out-of-stock"]
AlertSeverity = Literal["warning", "critical"]


class RecentActivity(BaseModel):
    inventory_id: int
    product_id: int
    product_name: Optional[str] = None
    warehouse_id: int
    warehouse_name: Optional[str] = None
    quantity: int
    reserved_quantity: int
    updated_at: datetime


class DashboardOverview(BaseModel):
    total_products: int
    total_categories: int
    total_warehouses: int
    total_quantity: int
    total_reserved: int
    low_stock_items: int
    out_of_stock_items: int
    recent_activity: List[RecentActivity]


class Alert(BaseModel):
    id: str
    type: AlertType
    severity: AlertSeverity
    inventory_id: int
    product_id: int
    product_name: Optional[str] = None
    warehouse_id: int
    warehouse_name: Optional[str] = None
    current_quantity: int
    threshold: int
    message: str


class AlertList(BaseModel):
    alerts: List[Alert]
    total_alerts: int


class AlertStats(BaseModel):
    total: int
    by_type: dict[str, int]
    by_severity: dict[str, int]


class SalesTrendPoint(BaseModel):
    day: date
    units_sold: int
    orders: int


class CategoryPerformance(BaseModel):
    category: str
    turnover_rate: float
    growth_pct: float


class AnalyticsOverview(BaseModel):
    time_range: str
    generated: bool
    sales_trends: List[SalesTrendPoint]
    total_units_sold: int
    inventory_turnover: float
    stockout_rate_pct: float
    category_performance: List[CategoryPerformance]
