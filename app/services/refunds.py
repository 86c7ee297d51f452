# Refund queue and refund finalisation
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import joinedload

from app.errors import InvalidStateTransition, NotFound, Unauthorized
from app.extensions import db
from app.models import Appointment, PaymentInvoice
from app.services.audit_service import log_action
from app.services.email_service import EmailService
from app.services.pricing import actual_refund, round_money, suggested_refund, to_decimal
from app.services.reconciliation import transition_appointment, transition_invoice
from app.services.transaction import unit_of_work
from app.statuses import AppointmentStatus, InvoiceStatus


@dataclass(frozen=True)
class RefundRequestView:
    invoice_id: int
    user_id: int
    email: Optional[str]
    transaction_no: Optional[str]
    payment_method: Optional[str]
    status: InvoiceStatus
    created_at: Optional[datetime]
    total_customer_paid: Decimal
    suggested_refund: Decimal
    platform_kept_fee: Decimal
    appointment: Optional[dict] = None

    def to_dict(self):
        return {
            "invoice_id": self.invoice_id,
            "user_id": self.user_id,
            "email": self.email,
            "transaction_no": self.transaction_no,
            "payment_method": self.payment_method,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "total_customer_paid": float(self.total_customer_paid),
            "suggested_refund": float(self.suggested_refund),
            "platform_kept_fee": float(self.platform_kept_fee),
            "appointment": self.appointment,
        }


@dataclass(frozen=True)
class RefundResult:
    invoice_id: int
    appointment_id: Optional[int]
    actual_refund: Decimal

    @property
    def message(self):
        return (
            f"Refund for invoice #{self.invoice_id} processed. "
            f"Amount refunded: {self.actual_refund}"
        )

    def to_dict(self):
        return {
            "invoice_id": self.invoice_id,
            "appointment_id": self.appointment_id,
            "actual_refund": float(self.actual_refund),
        }


def _appointment_context(appointment):
    if appointment is None:
        return None
    slot = appointment.slot
    return {
        "id": appointment.id,
        "lawyer_id": appointment.lawyer_id,
        "lawyer_email": appointment.lawyer.email if appointment.lawyer else None,
        "package_name": appointment.package_name,
        "status": appointment.status.value,
        "available_date": slot.available_date.isoformat() if slot and slot.available_date else None,
        "start_time": appointment.start_time.strftime("%H:%M") if appointment.start_time else None,
    }


def list_refund_requests():
    """Invoices waiting for a refund decision, newest first."""
    stmt = (
        select(PaymentInvoice)
        .where(PaymentInvoice.status == InvoiceStatus.REFUND_PENDING)
        .options(
            joinedload(PaymentInvoice.user),
            joinedload(PaymentInvoice.appointment).joinedload(Appointment.slot),
            joinedload(PaymentInvoice.appointment).joinedload(Appointment.lawyer),
        )
        .order_by(PaymentInvoice.created_at.desc(), PaymentInvoice.id.desc())
    )

    requests = []
    for invoice in db.session.scalars(stmt).unique():
        amount = to_decimal(invoice.amount)
        suggestion = suggested_refund(amount, invoice.refund_amount)
        requests.append(
            RefundRequestView(
                invoice_id=invoice.id,
                user_id=invoice.user_id,
                email=invoice.user.email if invoice.user else None,
                transaction_no=invoice.transaction_no,
                payment_method=invoice.payment_method,
                status=invoice.status,
                created_at=invoice.created_at,
                total_customer_paid=amount,
                suggested_refund=suggestion,
                platform_kept_fee=round_money(amount - suggestion),
                appointment=_appointment_context(invoice.appointment),
            )
        )
    return requests


def process_refund(invoice_id, actor):
    """
    Finalise a refund: the invoice becomes ``Refunded`` and its appointment,
    if any, ``Cancelled``. The amount paid back (the recorded refund_amount,
    or the whole amount when none was recorded) is stored on the invoice.
    Money is not moved here.
    """
    if actor is not None and not actor.is_admin:
        raise Unauthorized("Only administrators can process refunds.")

    with unit_of_work(f"process refund for invoice #{invoice_id}") as session:
        invoice = session.get(
            PaymentInvoice, invoice_id, with_for_update=True, populate_existing=True
        )
        if invoice is None:
            raise NotFound(f"Invoice #{invoice_id} not found.")
        if not invoice.status.is_refundable:
            raise InvalidStateTransition(
                f"Invoice #{invoice_id} cannot be refunded "
                f"(current status: {invoice.status.value})."
            )

        paid_back = actual_refund(invoice.amount, invoice.refund_amount)
        # Revenue keeps amount - refund_amount, so the paid back figure is stored
        transition_invoice(
            session, invoice, InvoiceStatus.REFUNDED, refund_amount=paid_back
        )

        appointment = None
        if invoice.appointment_id is not None:
            appointment = session.get(
                Appointment,
                invoice.appointment_id,
                with_for_update=True,
                populate_existing=True,
            )
        if appointment is not None and appointment.status is not AppointmentStatus.CANCELLED:
            transition_appointment(session, appointment, AppointmentStatus.CANCELLED)

        email = invoice.user.email if invoice.user else None
        appointment_id = invoice.appointment_id

    current_app.logger.info(f"Invoice #{invoice_id} refunded ({paid_back})")
    log_action(
        actor,
        f"Processed refund for Invoice ID: {invoice_id}, Actual Refund Paid: {paid_back}",
    )
    EmailService().send_refund_notification(email, invoice_id, paid_back)

    return RefundResult(
        invoice_id=invoice_id,
        appointment_id=appointment_id,
        actual_refund=paid_back,
    )
