# retail_pos/routers/dashboard.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from retail_pos.database import get_db
from retail_pos.core.auth import get_current_user
from retail_pos.schemas.report import DashboardStatsResponse, DashboardAnalyticsResponse
from retail_pos.services.analytics import dashboard_stats, dashboard_analytics

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStatsResponse)
def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return dashboard_stats(db)


@router.get("/analytics", response_model=DashboardAnalyticsResponse)
def get_dashboard_analytics(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return dashboard_analytics(db)
