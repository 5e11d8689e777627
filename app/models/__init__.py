from app.models.school import School
from app.models.contact import Student, Tutor
from app.models.invoice import Invoice
from app.models.notification_config import NotificationConfig
from app.models.notification_log import NotificationLog

__all__ = [
    "School",
    "Student",
    "Tutor",
    "Invoice",
    "NotificationConfig",
    "NotificationLog",
]
