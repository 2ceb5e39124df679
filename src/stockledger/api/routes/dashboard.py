from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...dashboard import dashboard_stats
from ...dependencies import get_db
from ...schemas import DashboardStats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(db: Session = Depends(get_db)) -> DashboardStats:
    return dashboard_stats(db)
