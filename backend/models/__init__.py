from models.admin import AdminUser
from models.device import Device, DeviceStatus
from models.loan import Loan
from models.session import AdminSession

__all__ = ["AdminSession", "AdminUser", "Device", "DeviceStatus", "Loan"]
