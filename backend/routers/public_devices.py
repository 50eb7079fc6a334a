from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.device import DeviceStatus
from schemas.devices import DeviceResponse
from services.auth import require_api_token
from services.device_service import DeviceService

router = APIRouter(dependencies=[Depends(require_api_token)])


@router.get("", response_model=list[DeviceResponse])
def list_public_devices(
    status_filter: Optional[DeviceStatus] = Query(None, alias="status"),
    take: Optional[int] = Query(None),
    skip: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Device list for kiosk clients, same ordering and paging as the admin list.

    Query: status?, take (default 100, max 500), skip (min 0)
    Raises: 401 without a valid API token
    """
    return DeviceService(db).find_all(status=status_filter, take=take, skip=skip)
