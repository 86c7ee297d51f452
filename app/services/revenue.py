# Platform revenue derived from settled invoices
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from decimal import Decimal
from io import BytesIO
from typing import List, Optional

import pandas as pd
from flask import current_app
from sqlalchemy import func, select

from app.extensions import db
from app.models import Appointment, PaymentInvoice, User
from app.services.pricing import (
    ZERO,
    base_price,
    commission,
    platform_booking_net,
    refund_kept_amount,
    round_money,
    service_fee,
    to_decimal,
)
from app.statuses import (
    AppointmentStatus,
    InvoiceStatus,
    PaymentType,
    RevenuePeriod,
    Role,
    SETTLED_INVOICE_STATUSES,
)


def period_window(period, now=None):
    """
    Return the [start, end) creation-time window for a reporting period.

    ``all`` has no window and returns (None, None). Raises ValueError for an
    unknown period name.
    """
    period = RevenuePeriod(period)
    now = now or datetime.now()

    if period is RevenuePeriod.ALL:
        return None, None
    if period is RevenuePeriod.DAY:
        start = datetime.combine(now.date(), time.min)
        return start, start + timedelta(days=1)
    if period is RevenuePeriod.MONTH:
        start = datetime(now.year, now.month, 1)
        if now.month == 12:
            return start, datetime(now.year + 1, 1, 1)
        return start, datetime(now.year, now.month + 1, 1)
    if period is RevenuePeriod.YEAR:
        return datetime(now.year, 1, 1), datetime(now.year + 1, 1, 1)
    raise ValueError(f"Unhandled period: {period}")


def payment_type_for(role):
    return PaymentType.SUBSCRIPTION if role is Role.LAWYER else PaymentType.BOOKING


def transaction_net_amount(status, role, amount, refund_amount):
    """Platform share of a single settled invoice, as shown per transaction row."""
    if status is InvoiceStatus.REFUNDED:
        return refund_kept_amount(amount, refund_amount)
    if role is Role.LAWYER:
        return to_decimal(amount)
    return platform_booking_net(amount)


@dataclass
class RevenueTotals:
    """Running sums; kept unrounded until the summary is built."""

    subscription: Decimal = ZERO
    booking_gross: Decimal = ZERO
    booking_net: Decimal = ZERO
    service_fee_total: Decimal = ZERO
    commission_total: Decimal = ZERO
    total_net_revenue: Decimal = ZERO

    def add(self, status, role, amount, refund_amount):
        amount = to_decimal(amount)

        if role is Role.LAWYER:
            # Refunded subscriptions contribute nothing
            if status is InvoiceStatus.SUCCESS:
                self.subscription += amount
                self.total_net_revenue += amount
            return

        if role is not Role.CUSTOMER:
            return

        if status is InvoiceStatus.SUCCESS:
            fee = service_fee(amount)
            cut = commission(amount)
            net = fee + cut
            self.booking_gross += amount
            self.service_fee_total += fee
            self.commission_total += cut
            self.booking_net += net
            self.total_net_revenue += net
        elif status is InvoiceStatus.REFUNDED:
            # The platform keeps what was not paid back. It is booked as service
            # fee only; commission on a refunded booking is forfeited.
            kept = refund_kept_amount(amount, refund_amount)
            self.service_fee_total += kept
            self.booking_net += kept
            self.total_net_revenue += kept


@dataclass(frozen=True)
class TransactionView:
    id: int
    user_id: int
    email: Optional[str]
    appointment_id: Optional[int]
    subscription_id: Optional[int]
    transaction_no: Optional[str]
    payment_method: Optional[str]
    amount: Decimal
    refund_amount: Decimal
    status: InvoiceStatus
    created_at: Optional[datetime]
    payment_type: PaymentType
    net_amount: Decimal

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "email": self.email,
            "appointment_id": self.appointment_id,
            "subscription_id": self.subscription_id,
            "transaction_no": self.transaction_no,
            "payment_method": self.payment_method,
            "amount": float(self.amount),
            "refund_amount": float(self.refund_amount),
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "payment_type": self.payment_type.value,
            "net_amount": float(self.net_amount),
        }


@dataclass(frozen=True)
class RevenueSummary:
    period: RevenuePeriod
    subscription_revenue: Decimal
    booking_gross: Decimal
    booking_net: Decimal
    service_fee_total: Decimal
    commission_total: Decimal
    total_net_revenue: Decimal
    transactions: List[TransactionView] = field(default_factory=list)
    page: int = 1
    per_page: int = 5
    total_transactions: int = 0

    @property
    def last_page(self):
        if not self.total_transactions:
            return 1
        return -(-self.total_transactions // self.per_page)

    def to_dict(self):
        return {
            "period": self.period.value,
            "revenue_sources": {
                "subscription": float(self.subscription_revenue),
                "booking_gross": float(self.booking_gross),
                "booking_net": float(self.booking_net),
                "service_fee_total": float(self.service_fee_total),
                "commission_total": float(self.commission_total),
            },
            "total_revenue": float(self.total_net_revenue),
            "recent_transactions": {
                "data": [t.to_dict() for t in self.transactions],
                "current_page": self.page,
                "per_page": self.per_page,
                "total": self.total_transactions,
                "last_page": self.last_page,
            },
        }


def _settled_invoices_stmt(start, end):
    # Role comes from the owner's account at read time; it is never copied onto
    # the invoice, so a role change is reflected on the next pass.
    stmt = (
        select(PaymentInvoice, User.role, User.email)
        .outerjoin(User, User.id == PaymentInvoice.user_id)
        .where(PaymentInvoice.status.in_(SETTLED_INVOICE_STATUSES))
    )
    if start is not None:
        stmt = stmt.where(
            PaymentInvoice.created_at >= start, PaymentInvoice.created_at < end
        )
    return stmt


def _to_view(invoice, role, email):
    return TransactionView(
        id=invoice.id,
        user_id=invoice.user_id,
        email=email,
        appointment_id=invoice.appointment_id,
        subscription_id=invoice.subscription_id,
        transaction_no=invoice.transaction_no,
        payment_method=invoice.payment_method,
        amount=to_decimal(invoice.amount),
        refund_amount=to_decimal(invoice.refund_amount),
        status=invoice.status,
        created_at=invoice.created_at,
        payment_type=payment_type_for(role),
        net_amount=round_money(
            transaction_net_amount(
                invoice.status, role, invoice.amount, invoice.refund_amount
            )
        ),
    )


def list_transactions(start=None, end=None, limit=None, offset=0):
    """Settled invoices in the window, newest first, with derived columns."""
    stmt = _settled_invoices_stmt(start, end).order_by(
        PaymentInvoice.created_at.desc(), PaymentInvoice.id.desc()
    )
    if limit is not None:
        stmt = stmt.limit(limit).offset(offset)
    return [_to_view(inv, role, email) for inv, role, email in db.session.execute(stmt)]


def compute_revenue(period="all", page=1, per_page=None, now=None):
    """
    Revenue breakdown for ``period`` (day, month, year or all).

    Reads committed invoice state only and takes no locks; a row whose status
    flips concurrently may or may not be counted.
    """
    period = RevenuePeriod(period)
    start, end = period_window(period, now)
    per_page = per_page or current_app.config.get("REVENUE_PAGE_SIZE", 5)
    page = max(int(page or 1), 1)

    totals = RevenueTotals()
    row_count = 0
    for invoice, role, _ in db.session.execute(_settled_invoices_stmt(start, end)):
        totals.add(invoice.status, role, invoice.amount, invoice.refund_amount)
        row_count += 1

    transactions = list_transactions(
        start, end, limit=per_page, offset=(page - 1) * per_page
    )

    return RevenueSummary(
        period=period,
        subscription_revenue=round_money(totals.subscription),
        booking_gross=round_money(totals.booking_gross),
        booking_net=round_money(totals.booking_net),
        service_fee_total=round_money(totals.service_fee_total),
        commission_total=round_money(totals.commission_total),
        total_net_revenue=round_money(totals.total_net_revenue),
        transactions=transactions,
        page=page,
        per_page=per_page,
        total_transactions=row_count,
    )


def dashboard_stats():
    """Head counts for the admin dashboard."""

    def count(model, *criteria):
        return db.session.scalar(select(func.count(model.id)).where(*criteria)) or 0

    return {
        "users": {
            "total_customers": count(User, User.role == Role.CUSTOMER),
            "total_lawyers": count(User, User.role == Role.LAWYER),
            "active_lawyers": count(
                User, User.role == Role.LAWYER, User.is_active.is_(True)
            ),
        },
        "appointments": {
            "total": count(Appointment),
            "pending": count(Appointment, Appointment.status == AppointmentStatus.PENDING),
        },
        "pending_refunds": count(
            PaymentInvoice, PaymentInvoice.status == InvoiceStatus.REFUND_PENDING
        ),
    }


def build_revenue_report(period="all", now=None):
    """Excel workbook with the period summary and every transaction in it."""
    summary = compute_revenue(period, now=now)
    start, end = period_window(period, now)
    rows = list_transactions(start, end)

    summary_frame = pd.DataFrame(
        [
            ("Subscription revenue", float(summary.subscription_revenue)),
            ("Booking gross", float(summary.booking_gross)),
            ("Booking net", float(summary.booking_net)),
            ("Service fee total", float(summary.service_fee_total)),
            ("Commission total", float(summary.commission_total)),
            ("Total net revenue", float(summary.total_net_revenue)),
        ],
        columns=["Metric", "Amount"],
    )
    transactions_frame = pd.DataFrame(
        [
            {
                "Invoice ID": t.id,
                "Email": t.email,
                "Type": t.payment_type.value,
                "Status": t.status.value,
                "Amount": float(t.amount),
                "Refund Amount": float(t.refund_amount),
                "Net Amount": float(t.net_amount),
                "Base Price": float(round_money(base_price(t.amount)))
                if t.payment_type is PaymentType.BOOKING
                else None,
                "Created At": t.created_at,
            }
            for t in rows
        ],
        columns=[
            "Invoice ID",
            "Email",
            "Type",
            "Status",
            "Amount",
            "Refund Amount",
            "Net Amount",
            "Base Price",
            "Created At",
        ],
    )

    output = BytesIO()
    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        summary_frame.to_excel(writer, sheet_name="Summary", index=False)
        transactions_frame.to_excel(writer, sheet_name="Transactions", index=False)
    output.seek(0)
    return output
