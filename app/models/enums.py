from enum import Enum


class Role(str, Enum):
    staff = "staff"
    admin = "admin"


class InvoiceStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    overdue = "overdue"
    canceled = "canceled"


class PaymentGateway(str, Enum):
    mercadopago = "mercadopago"  # Pix copy-paste code
    cora = "cora"  # Boleto PDF + barcode


class WhatsAppStatus(str, Enum):
    connected = "connected"
    connecting = "connecting"
    disconnected = "disconnected"


class NotificationCategory(str, Enum):
    new_invoice = "new_invoice"
    reminder = "reminder"
    due_today = "due_today"
    overdue = "overdue"


class NotificationStatus(str, Enum):
    queued = "queued"
    processing = "processing"
    sent = "sent"
    failed = "failed"
    cancelled = "cancelled"


# failed -> queued is only taken by the bulk retry; sent and cancelled are terminal.
ALLOWED_STATUS_TRANSITIONS: dict[NotificationStatus, frozenset[NotificationStatus]] = {
    NotificationStatus.queued: frozenset({NotificationStatus.processing, NotificationStatus.cancelled}),
    NotificationStatus.processing: frozenset({NotificationStatus.sent, NotificationStatus.failed}),
    NotificationStatus.failed: frozenset({NotificationStatus.queued}),
    NotificationStatus.sent: frozenset(),
    NotificationStatus.cancelled: frozenset(),
}
