from datetime import datetime
from typing import Optional

from pydantic import field_validator

from models.device import DeviceStatus
from schemas.common import CamelRequest, CamelResponse, sanitize_string

CALL_SIGN_MAX_LENGTH = 50
SERIAL_NUMBER_MAX_LENGTH = 100
DEVICE_TYPE_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 500


class DeviceCreateRequest(CamelRequest):
    call_sign: str
    device_type: str
    serial_number: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("call_sign")
    @classmethod
    def clean_call_sign(cls, v: str) -> str:
        return sanitize_string(v, max_length=CALL_SIGN_MAX_LENGTH)

    @field_validator("device_type")
    @classmethod
    def clean_device_type(cls, v: str) -> str:
        return sanitize_string(v, max_length=DEVICE_TYPE_MAX_LENGTH)

    @field_validator("serial_number")
    @classmethod
    def clean_serial_number(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v, max_length=SERIAL_NUMBER_MAX_LENGTH, empty_to_none=True)

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v, max_length=NOTES_MAX_LENGTH, empty_to_none=True)


class DeviceUpdateRequest(DeviceCreateRequest):
    """Partial update. Omitted fields stay unchanged; null clears optional ones."""

    call_sign: Optional[str] = None
    device_type: Optional[str] = None

    @field_validator("call_sign")
    @classmethod
    def clean_call_sign(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v, max_length=CALL_SIGN_MAX_LENGTH)

    @field_validator("device_type")
    @classmethod
    def clean_device_type(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v, max_length=DEVICE_TYPE_MAX_LENGTH)


class DeviceStatusRequest(CamelRequest):
    status: DeviceStatus


class DeviceResponse(CamelResponse):
    id: str
    call_sign: str
    serial_number: Optional[str]
    device_type: str
    notes: Optional[str]
    status: DeviceStatus
    created_at: datetime
    updated_at: datetime
