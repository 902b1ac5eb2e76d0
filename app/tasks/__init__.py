from .notification_tasks import notify_low_hours_balance
from .hours_bank_tasks import deactivate_expired_hours_banks

__all__ = [
    "notify_low_hours_balance",
    "deactivate_expired_hours_banks",
]
