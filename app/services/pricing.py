# Booking fee arithmetic shared by revenue, refunds and completion
from decimal import ROUND_HALF_UP, Decimal

# Customers pay base price * SERVICE_FEE_MARKUP. Of the base price the platform
# keeps SERVICE_FEE_RATE as service fee and COMMISSION_RATE as commission.
SERVICE_FEE_MARKUP = Decimal("1.1")
SERVICE_FEE_RATE = Decimal("0.10")
COMMISSION_RATE = Decimal("0.20")
PLATFORM_SHARE = SERVICE_FEE_RATE + COMMISSION_RATE

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value):
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.1 don't drag binary noise along
    return Decimal(str(value))


def round_money(value):
    """Round half-up to cents."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def base_price(amount):
    return to_decimal(amount) / SERVICE_FEE_MARKUP


def service_fee(amount):
    return base_price(amount) * SERVICE_FEE_RATE


def commission(amount):
    return base_price(amount) * COMMISSION_RATE


def platform_booking_net(amount):
    """Service fee plus commission: 30% of the base price, not of the gross."""
    return base_price(amount) * PLATFORM_SHARE


def refund_kept_amount(amount, refund_amount):
    return to_decimal(amount) - to_decimal(refund_amount)


def suggested_refund(amount, refund_amount):
    """Refund already decided on the invoice, else the base price."""
    refund_amount = to_decimal(refund_amount)
    if refund_amount > 0:
        return refund_amount
    return round_money(base_price(amount))


def actual_refund(amount, refund_amount):
    """Amount reported as paid back when a refund is finalised."""
    refund_amount = to_decimal(refund_amount)
    if refund_amount > 0:
        return refund_amount
    return to_decimal(amount)
