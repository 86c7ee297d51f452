# Closed status vocabularies for appointments, invoices and accounts
import enum


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    LAWYER = "LAWYER"
    CUSTOMER = "CUSTOMER"


class AppointmentStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REFUND_PENDING = "Refund_Pending"
    # Kept only so legacy rows load and are treated as terminal. Nothing writes it:
    # a refunded booking ends as CANCELLED while the invoice carries REFUNDED.
    REFUNDED = "Refunded"

    @property
    def is_terminal(self):
        return self in APPOINTMENT_TERMINAL

    @property
    def is_cancellable(self):
        return self in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class InvoiceStatus(str, enum.Enum):
    PENDING = "Pending"
    SUCCESS = "Success"
    REFUND_PENDING = "Refund_Pending"
    REFUNDED = "Refunded"
    CANCELLED = "Cancelled"

    @property
    def is_refundable(self):
        return self in (InvoiceStatus.REFUND_PENDING, InvoiceStatus.SUCCESS)


class PaymentType(str, enum.Enum):
    SUBSCRIPTION = "Subscription"
    BOOKING = "Booking"


class RevenuePeriod(str, enum.Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


APPOINTMENT_TERMINAL = frozenset(
    {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.REFUNDED,
    }
)

# Revenue is recognised only from settled invoices
SETTLED_INVOICE_STATUSES = (InvoiceStatus.SUCCESS, InvoiceStatus.REFUNDED)


def enum_values(enum_cls):
    """Column values for ``sqlalchemy.Enum(values_callable=...)``."""
    return [member.value for member in enum_cls]
