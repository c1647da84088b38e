# schemas/report.py

from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional


# ---------------- DASHBOARD ----------------

class DashboardStatsResponse(BaseModel):
    total_products: int
    total_users: int
    today_sales: int
    total_revenue: Decimal


class PaymentMethodBreakdown(BaseModel):
    method: str
    count: int
    total: Decimal


class TrendingProduct(BaseModel):
    name: str
    image_url: Optional[str]
    sold: int
    revenue: Decimal
    price: Decimal


class DailySales(BaseModel):
    day: date
    orders: int
    revenue: Decimal


class HourlySales(BaseModel):
    hour: int
    orders: int
    revenue: Decimal


class CategoryPerformance(BaseModel):
    category: str
    items_sold: int
    revenue: Decimal


class RecentOrder(BaseModel):
    id: int
    amount: Decimal
    method: str
    created_at: datetime
    cashier: str


class DashboardAnalyticsResponse(BaseModel):
    payment_methods: List[PaymentMethodBreakdown]
    trending_products: List[TrendingProduct]
    daily_sales: List[DailySales]
    hourly_sales: List[HourlySales]
    category_performance: List[CategoryPerformance]
    recent_orders: List[RecentOrder]


# ---------------- SALES ANALYTICS ----------------

class SalesOverview(BaseModel):
    total_transactions: int
    total_sales: Decimal
    average_sale: Decimal
    today_sales: int


class TopProduct(BaseModel):
    id: int
    name: str
    image_url: Optional[str]
    cost_price: Decimal
    selling_price: Decimal
    stock: int
    total_sold: int
    total_revenue: Decimal
    total_cost: Decimal
    total_profit: Decimal
    transaction_count: int
    profit_margin: Decimal


class SalesTrendPoint(BaseModel):
    day: date
    transaction_count: int
    daily_total: Decimal


class LowStockProduct(BaseModel):
    id: int
    name: str
    stock: int
    selling_price: Decimal
    image_url: Optional[str]
    total_sold_all_time: int


class RecentSale(BaseModel):
    id: int
    total_amount: Decimal
    tax_amount: Decimal
    created_at: datetime
    cashier: str
    item_count: int
    product_names: str


class SalesAnalyticsResponse(BaseModel):
    start_date: Optional[date]
    end_date: Optional[date]
    overview: SalesOverview
    payment_methods: List[PaymentMethodBreakdown]
    top_products: List[TopProduct]
    sales_trend: List[SalesTrendPoint]
    low_stock_products: List[LowStockProduct]
    recent_sales: List[RecentSale]
