# =========================================================
# SALES ROUTER
#
# POST /sales            -> checkout (sale processor)
# GET  /sales            -> history, newest first
# GET  /sales/analytics  -> sales analytics for a date range
# GET  /sales/{sale_id}  -> single sale with items (receipt)
# =========================================================

from fastapi import APIRouter, Depends, HTTPException, Query, status, Request
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from datetime import date
from typing import Optional

from retail_pos.database import get_db
from retail_pos.core.auth import get_current_user
from retail_pos.core.rate_limiter import limiter
from retail_pos.models.sales import Sale
from retail_pos.models.sale_items import SaleItem
from retail_pos.models.users import User
from retail_pos.schemas.sale import SaleCreate, SaleResponse, SaleSummaryResponse
from retail_pos.schemas.report import SalesAnalyticsResponse
from retail_pos.services.sale_processor import process_sale
from retail_pos.services.analytics import sales_analytics

router = APIRouter(prefix="/sales", tags=["Sales"])


# =========================================================
# CREATE SALE (CHECKOUT)
# =========================================================
@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_sale(
    request: Request,
    sale_data: SaleCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    # SaleError subclasses are rendered by the handler registered in main
    return process_sale(
        db,
        current_user,
        sale_data.items,
        sale_data.total_amount,
        declared_tax=sale_data.tax_amount,
        payment_method=sale_data.payment_method,
        request_id=sale_data.request_id,
    )


# =========================================================
# LIST SALES
# =========================================================
@router.get("", response_model=list[SaleSummaryResponse])
def list_sales(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    rows = (
        db.query(
            Sale,
            User.username.label("cashier"),
            func.count(SaleItem.id).label("item_count"),
        )
        .outerjoin(User, Sale.user_id == User.id)
        .outerjoin(SaleItem, SaleItem.sale_id == Sale.id)
        .group_by(Sale.id, User.username)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )

    return [
        SaleSummaryResponse(
            id=sale.id,
            user_id=sale.user_id,
            cashier=cashier,
            total_amount=sale.total_amount,
            tax_amount=sale.tax_amount,
            payment_method=sale.payment_method,
            item_count=item_count,
            created_at=sale.created_at,
        )
        for sale, cashier, item_count in rows
    ]


# =========================================================
# SALES ANALYTICS
# =========================================================
@router.get("/analytics", response_model=SalesAnalyticsResponse)
def get_sales_analytics(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    if date_from and date_to and date_from > date_to:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_from cannot be after date_to",
        )

    return sales_analytics(db, date_from, date_to)


# =========================================================
# GET SINGLE SALE
# =========================================================
@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    sale = (
        db.query(Sale)
        .options(joinedload(Sale.items))
        .filter(Sale.id == sale_id)
        .first()
    )

    if not sale:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sale not found",
        )

    return sale
