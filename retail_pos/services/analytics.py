# =========================================================
# ANALYTICS QUERIES
#
# Read-side aggregation for the dashboard and the sales
# analytics screen. Always returns Decimal amounts (never None).
# =========================================================

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from retail_pos.core.config import settings
from retail_pos.models.categories import Category
from retail_pos.models.products import Product
from retail_pos.models.sale_items import SaleItem
from retail_pos.models.sales import Sale
from retail_pos.models.users import User

CENTS = Decimal("0.01")
TOP_PRODUCTS_LIMIT = 10
RECENT_SALES_LIMIT = 20
DEFAULT_TREND_DAYS = 7
DASHBOARD_WINDOW_DAYS = 30


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _range_filter(start_date: Optional[date], end_date: Optional[date]):
    conditions = []

    if start_date:
        conditions.append(Sale.created_at >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        conditions.append(Sale.created_at <= datetime.combine(end_date, datetime.max.time()))

    return conditions


def _payment_breakdown(db: Session, conditions):
    rows = (
        db.query(
            Sale.payment_method,
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount), 0),
        )
        .filter(*conditions)
        .group_by(Sale.payment_method)
        .order_by(func.sum(Sale.total_amount).desc())
        .all()
    )

    return [
        {"method": method or "cash", "count": count, "total": _dec(total)}
        for method, count, total in rows
    ]


# =========================================================
# DASHBOARD STATS
# =========================================================
def dashboard_stats(db: Session):
    today = _today()

    total_products = db.query(func.count(Product.id)).scalar()
    total_users = db.query(func.count(User.id)).scalar()

    today_sales = (
        db.query(func.count(Sale.id))
        .filter(func.date(Sale.created_at) == today)
        .scalar()
    )

    total_revenue = db.query(func.coalesce(func.sum(Sale.total_amount), 0)).scalar()

    return {
        "total_products": total_products,
        "total_users": total_users,
        "today_sales": today_sales,
        "total_revenue": _dec(total_revenue),
    }


# =========================================================
# DASHBOARD ANALYTICS (ROLLING 30 DAYS)
# =========================================================
def dashboard_analytics(db: Session):
    today = _today()
    window = _range_filter(today - timedelta(days=DASHBOARD_WINDOW_DAYS), None)

    trending = (
        db.query(
            Product.name,
            Product.image_url,
            Product.selling_price,
            func.coalesce(func.sum(SaleItem.quantity), 0).label("sold"),
            func.coalesce(func.sum(SaleItem.total_price), 0).label("revenue"),
        )
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(*window)
        .group_by(Product.id, Product.name, Product.image_url, Product.selling_price)
        .order_by(func.sum(SaleItem.quantity).desc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )

    sale_day = func.date(Sale.created_at)
    daily = (
        db.query(
            sale_day.label("day"),
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount), 0),
        )
        .filter(*window)
        .group_by(sale_day)
        .order_by(sale_day.asc())
        .all()
    )

    sale_hour = func.extract("hour", Sale.created_at)
    hourly = (
        db.query(
            sale_hour.label("hour"),
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount), 0),
        )
        .filter(sale_day == today)
        .group_by(sale_hour)
        .order_by(sale_hour.asc())
        .all()
    )

    categories = (
        db.query(
            Category.name,
            func.count(SaleItem.id),
            func.coalesce(func.sum(SaleItem.total_price), 0),
        )
        .join(Product, Product.category_id == Category.id)
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(*window)
        .group_by(Category.id, Category.name)
        .order_by(func.sum(SaleItem.total_price).desc())
        .all()
    )

    recent = (
        db.query(Sale, User.username)
        .outerjoin(User, Sale.user_id == User.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(10)
        .all()
    )

    return {
        "payment_methods": _payment_breakdown(db, window),
        "trending_products": [
            {
                "name": row.name,
                "image_url": row.image_url,
                "sold": int(row.sold),
                "revenue": _dec(row.revenue),
                "price": _dec(row.selling_price),
            }
            for row in trending
        ],
        "daily_sales": [
            {"day": day, "orders": orders, "revenue": _dec(revenue)}
            for day, orders, revenue in daily
        ],
        "hourly_sales": [
            {"hour": int(hour or 0), "orders": orders, "revenue": _dec(revenue)}
            for hour, orders, revenue in hourly
        ],
        "category_performance": [
            {"category": name, "items_sold": items_sold, "revenue": _dec(revenue)}
            for name, items_sold, revenue in categories
        ],
        "recent_orders": [
            {
                "id": sale.id,
                "amount": _dec(sale.total_amount),
                "method": sale.payment_method or "cash",
                "created_at": sale.created_at,
                "cashier": cashier or "Unknown",
            }
            for sale, cashier in recent
        ],
    }


# =========================================================
# SALES ANALYTICS (DATE RANGE)
# =========================================================
def _overview(db: Session, conditions, today: date):
    total_transactions, total_sales, average_sale = (
        db.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount), 0),
            func.coalesce(func.avg(Sale.total_amount), 0),
        )
        .filter(*conditions)
        .one()
    )

    today_sales = (
        db.query(func.count(Sale.id))
        .filter(*conditions)
        .filter(func.date(Sale.created_at) == today)
        .scalar()
    )

    return {
        "total_transactions": total_transactions,
        "total_sales": _dec(total_sales),
        "average_sale": _dec(average_sale).quantize(CENTS),
        "today_sales": today_sales,
    }


def _top_products(db: Session, conditions):
    rows = (
        db.query(
            Product.id,
            Product.name,
            Product.image_url,
            Product.cost_price,
            Product.selling_price,
            Product.stock,
            func.coalesce(func.sum(SaleItem.quantity), 0).label("total_sold"),
            func.coalesce(func.sum(SaleItem.total_price), 0).label("total_revenue"),
            func.coalesce(func.sum(Product.cost_price * SaleItem.quantity), 0).label("total_cost"),
            func.count(func.distinct(Sale.id)).label("transaction_count"),
        )
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(*conditions)
        .group_by(
            Product.id,
            Product.name,
            Product.image_url,
            Product.cost_price,
            Product.selling_price,
            Product.stock,
        )
        .order_by(func.sum(SaleItem.quantity).desc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )

    results = []

    for row in rows:
        total_revenue = _dec(row.total_revenue)
        total_cost = _dec(row.total_cost)
        total_profit = total_revenue - total_cost

        #  PROFIT MARGIN %
        if total_revenue == 0:
            profit_margin = Decimal("0.00")
        else:
            profit_margin = ((total_profit / total_revenue) * 100).quantize(CENTS)

        results.append(
            {
                "id": row.id,
                "name": row.name,
                "image_url": row.image_url,
                "cost_price": _dec(row.cost_price),
                "selling_price": _dec(row.selling_price),
                "stock": row.stock,
                "total_sold": int(row.total_sold),
                "total_revenue": total_revenue,
                "total_cost": total_cost,
                "total_profit": total_profit,
                "transaction_count": row.transaction_count,
                "profit_margin": profit_margin,
            }
        )

    return results


def _sales_trend(db: Session, conditions):
    sale_day = func.date(Sale.created_at)

    rows = (
        db.query(
            sale_day.label("day"),
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount), 0),
        )
        .filter(*conditions)
        .group_by(sale_day)
        .order_by(sale_day.desc())
        .limit(30)
        .all()
    )

    return [
        {"day": day, "transaction_count": count, "daily_total": _dec(total)}
        for day, count, total in rows
    ]


def _low_stock_products(db: Session):
    sold_all_time = (
        db.query(
            SaleItem.product_id.label("product_id"),
            func.sum(SaleItem.quantity).label("sold"),
        )
        .group_by(SaleItem.product_id)
        .subquery()
    )

    rows = (
        db.query(Product, func.coalesce(sold_all_time.c.sold, 0))
        .outerjoin(sold_all_time, sold_all_time.c.product_id == Product.id)
        .filter(Product.stock <= settings.LOW_STOCK_THRESHOLD)
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )

    return [
        {
            "id": product.id,
            "name": product.name,
            "stock": product.stock,
            "selling_price": _dec(product.selling_price),
            "image_url": product.image_url,
            "total_sold_all_time": int(sold),
        }
        for product, sold in rows
    ]


def _recent_sales(db: Session, conditions):
    sales = (
        db.query(Sale)
        .options(joinedload(Sale.items), joinedload(Sale.user))
        .filter(*conditions)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(RECENT_SALES_LIMIT)
        .all()
    )

    return [
        {
            "id": sale.id,
            "total_amount": _dec(sale.total_amount),
            "tax_amount": _dec(sale.tax_amount),
            "created_at": sale.created_at,
            "cashier": sale.user.username if sale.user else "Unknown",
            "item_count": len(sale.items),
            "product_names": ", ".join(item.product_name for item in sale.items),
        }
        for sale in sales
    ]


def sales_analytics(db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None):
    """Aggregate sales between two optional dates (inclusive).

    Without a date range the overview covers all sales and the trend the last
    seven days.
    """
    today = _today()
    conditions = _range_filter(start_date, end_date)

    if start_date or end_date:
        trend_conditions = conditions
    else:
        trend_conditions = _range_filter(today - timedelta(days=DEFAULT_TREND_DAYS), None)

    return {
        "start_date": start_date,
        "end_date": end_date,
        "overview": _overview(db, conditions, today),
        "payment_methods": _payment_breakdown(db, conditions),
        "top_products": _top_products(db, conditions),
        "sales_trend": _sales_trend(db, trend_conditions),
        "low_stock_products": _low_stock_products(db),
        "recent_sales": _recent_sales(db, conditions),
    }
