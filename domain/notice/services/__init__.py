"""通知领域服务模块"""

from domain.notice.services.notifier import (
    FunctionNotifier,
    NotificationDeliveryError,
    Notifier,
    dispatch_notification,
)

__all__ = [
    "FunctionNotifier",
    "NotificationDeliveryError",
    "Notifier",
    "dispatch_notification",
]
