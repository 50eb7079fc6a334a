from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from config import DASHBOARD_RATE_LIMIT, HISTORY_RATE_LIMIT
from database import get_db
from routers.auth import limiter
from schemas.history import DashboardStatsResponse, HistoryResponse
from services.auth import Principal, get_current_admin
from services.history_service import HistoryService

router = APIRouter()


@router.get("/dashboard", response_model=DashboardStatsResponse)
@limiter.limit(DASHBOARD_RATE_LIMIT)
def get_dashboard(
    request: Request,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Device counts per status and up to 50 open loans, newest first.

    Rate limit: 30 requests per minute per IP.
    """
    return HistoryService(db).get_dashboard_stats()


@router.get("/history", response_model=HistoryResponse)
@limiter.limit(HISTORY_RATE_LIMIT)
def get_history(
    request: Request,
    device_id: Optional[str] = Query(None, alias="deviceId"),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    page: Optional[str] = Query(None),
    page_size: Optional[str] = Query(None, alias="pageSize"),
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Paginated loan history.

    Query: deviceId?, from?, to? (ISO 8601, at most 365 days apart),
    page (default 1, at most 100000), pageSize (default 100, capped at 1000)
    Returns: data, meta {total, page, pageSize, totalPages}
    Raises: 400 for any invalid filter

    Rate limit: 20 requests per minute per IP.
    """
    return HistoryService(db).get_history(
        **{
            "deviceId": device_id,
            "from": date_from,
            "to": date_to,
            "page": page,
            "pageSize": page_size,
        }
    )
