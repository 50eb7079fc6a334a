from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from errors import DEVICE_NOT_FOUND, NotFound
from models.device import DeviceStatus
from schemas.devices import (
    DeviceCreateRequest,
    DeviceResponse,
    DeviceStatusRequest,
    DeviceUpdateRequest,
)
from services.auth import Principal, get_current_admin
from services.device_service import DeviceService, DeviceUpdate

router = APIRouter()


@router.post("", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
def create_device(
    payload: DeviceCreateRequest,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Register a new device. New devices start out AVAILABLE.

    Body: callSign, deviceType, serialNumber?, notes?
    Raises: 400 if callSign or deviceType is blank, 409 if the call sign exists
    """
    return DeviceService(db).create(
        call_sign=payload.call_sign,
        device_type=payload.device_type,
        serial_number=payload.serial_number,
        notes=payload.notes,
    )


@router.get("", response_model=list[DeviceResponse])
def list_devices(
    status_filter: Optional[DeviceStatus] = Query(None, alias="status"),
    take: Optional[int] = Query(None),
    skip: Optional[int] = Query(None),
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    List devices ordered by status, then call sign.

    Query: status?, take (default 100, max 500), skip (min 0)
    """
    return DeviceService(db).find_all(status=status_filter, take=take, skip=skip)


@router.get("/{device_id}", response_model=DeviceResponse)
def get_device(
    device_id: str,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    device = DeviceService(db).find_by_id(device_id)
    if device is None:
        raise NotFound(DEVICE_NOT_FOUND)
    return device


@router.patch("/{device_id}", response_model=DeviceResponse)
def update_device(
    device_id: str,
    payload: DeviceUpdateRequest,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Update device fields. Only fields present in the body are changed.

    Raises: 400 for blank callSign/deviceType, 404 if missing, 409 on duplicate call sign
    """
    update = DeviceUpdate.from_dict(payload.model_dump(exclude_unset=True))
    return DeviceService(db).update(device_id, update)


@router.patch("/{device_id}/status", response_model=DeviceResponse)
def update_device_status(
    device_id: str,
    payload: DeviceStatusRequest,
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Set a device to AVAILABLE, DEFECT or MAINTENANCE.

    Raises: 400 for ON_LOAN, 404 if missing, 409 while the device is on loan
    """
    return DeviceService(db).update_status(device_id, payload.status)


@router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_device(
    device_id: str,
    force: bool = Query(False),
    admin: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Delete a device together with its loan history.

    Query: force (required to delete a device that is on loan)
    Raises: 404 if missing, 409 if on loan and force is not set
    """
    DeviceService(db).delete(device_id, force=force)
