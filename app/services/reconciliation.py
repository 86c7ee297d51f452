# Keeps appointment and invoice status in step on every cancellation path
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from flask import current_app
from sqlalchemy import delete, select, update

from app.errors import InvalidStateTransition, NotFound, Unauthorized
from app.models import Appointment, PaymentInvoice, User
from app.services.audit_service import describe_actor, log_action
from app.services.email_service import EmailService
from app.services.pricing import base_price, commission, round_money
from app.services.transaction import unit_of_work
from app.statuses import AppointmentStatus, InvoiceStatus, Role

ACCOUNT_LOCK_NOTE = " | [SYSTEM]: Cancelled because the account has been locked."

TERMINAL_MESSAGE = "Cannot cancel an appointment already in a terminal state."
REFUND_PENDING_MESSAGE = (
    "The appointment has been cancelled. Since the customer has already paid, "
    "the status has been changed to 'Refund Pending'."
)
CANCELLED_MESSAGE = "The appointment has been cancelled."

# (appointment status, invoice status) a cancelled booking ends in, keyed by the
# invoice status found. Only a successful payment leads to a pending refund.
_CANCELLATION_TARGETS = {
    InvoiceStatus.SUCCESS: (AppointmentStatus.REFUND_PENDING, InvoiceStatus.REFUND_PENDING),
    InvoiceStatus.PENDING: (AppointmentStatus.CANCELLED, InvoiceStatus.CANCELLED),
    InvoiceStatus.CANCELLED: (AppointmentStatus.CANCELLED, InvoiceStatus.CANCELLED),
}

# Invoices already queued for or past a refund are settled by the refund flow,
# never by a cancellation
REFUND_IN_PROGRESS = frozenset({InvoiceStatus.REFUND_PENDING, InvoiceStatus.REFUNDED})


@dataclass(frozen=True)
class CancellationResult:
    appointment_id: int
    appointment_status: AppointmentStatus
    invoice_status: Optional[InvoiceStatus]
    message: str

    @property
    def refund_pending(self):
        return self.appointment_status is AppointmentStatus.REFUND_PENDING

    def to_dict(self):
        return {
            "appointment_id": self.appointment_id,
            "appointment_status": self.appointment_status.value,
            "invoice_status": self.invoice_status.value if self.invoice_status else None,
            "message": self.message,
        }


@dataclass(frozen=True)
class AccountStatusResult:
    user_id: int
    email: str
    is_active: bool
    cancelled_count: int

    @property
    def message(self):
        if self.is_active:
            return "User has been Activated."
        return (
            f"User has been Deactivated. "
            f"Auto-cancelled {self.cancelled_count} appointments."
        )

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "email": self.email,
            "is_active": self.is_active,
            "cancelled_count": self.cancelled_count,
        }


@dataclass(frozen=True)
class _CancellationNotice:
    email: str
    appointment_id: int
    refund_pending: bool


# ---------------------------------------------------------------------------
# Row helpers. Every status write is a compare-and-set against the status we
# read, so a concurrent writer that got there first makes us fail instead of
# silently overwriting its terminal state.
# ---------------------------------------------------------------------------


def lock_appointment(session, appointment_id):
    return session.get(
        Appointment, appointment_id, with_for_update=True, populate_existing=True
    )


def lock_invoice_for_appointment(session, appointment_id):
    stmt = (
        select(PaymentInvoice)
        .where(PaymentInvoice.appointment_id == appointment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return session.scalars(stmt).first()


def transition_appointment(session, appointment, new_status, **values):
    result = session.execute(
        update(Appointment)
        .where(
            Appointment.id == appointment.id,
            Appointment.status == appointment.status,
        )
        .values(status=new_status, **values)
    )
    if result.rowcount != 1:
        raise InvalidStateTransition(
            f"Appointment #{appointment.id} was modified by another request.",
            status_code=409,
        )
    appointment.status = new_status


def transition_invoice(session, invoice, new_status, **values):
    if invoice.status is new_status and not values:
        return
    result = session.execute(
        update(PaymentInvoice)
        .where(
            PaymentInvoice.id == invoice.id,
            PaymentInvoice.status == invoice.status,
        )
        .values(status=new_status, **values)
    )
    if result.rowcount != 1:
        raise InvalidStateTransition(
            f"Invoice #{invoice.id} was modified by another request.",
            status_code=409,
        )
    invoice.status = new_status


def cancellation_targets(invoice_status):
    """(appointment status, invoice status) for cancelling a booking paid this way."""
    if invoice_status in REFUND_IN_PROGRESS:
        raise InvalidStateTransition(
            f"The invoice is already {invoice_status.value}; "
            f"settle it through the refund queue instead."
        )
    try:
        return _CANCELLATION_TARGETS[invoice_status]
    except KeyError:
        raise InvalidStateTransition(
            f"No cancellation rule for invoice status {invoice_status!r}."
        ) from None


def _reconcile_cancellation(session, appointment, note=None, keep_service_fee=False):
    """
    Move an appointment and its invoice (if any) to the cancelled pair.

    With ``keep_service_fee`` a paid invoice records the base price as the
    amount to refund, so the platform keeps the service fee.
    """
    invoice = lock_invoice_for_appointment(session, appointment.id)

    if invoice is None:
        appointment_target, invoice_target = AppointmentStatus.CANCELLED, None
    else:
        appointment_target, invoice_target = cancellation_targets(invoice.status)
        invoice_values = {}
        if keep_service_fee and invoice_target is InvoiceStatus.REFUND_PENDING:
            invoice_values["refund_amount"] = round_money(base_price(invoice.amount))
        transition_invoice(session, invoice, invoice_target, **invoice_values)

    values = {}
    if note:
        values["note"] = (appointment.note or "") + note
    transition_appointment(session, appointment, appointment_target, **values)
    return appointment_target, invoice_target


def _check_can_act_on(actor, appointment):
    if actor is None or actor.role is Role.ADMIN:
        return
    if actor.role is Role.CUSTOMER and appointment.customer_id == actor.user_id:
        return
    if actor.role is Role.LAWYER and appointment.lawyer_id == actor.user_id:
        return
    raise Unauthorized("You are not allowed to modify this appointment.")


def _reason_note(actor, reason):
    now = datetime.now()
    return (
        f"\n--- [CANCELLED BY {describe_actor(actor).upper()}] "
        f"({now.strftime('%d/%m/%Y %H:%M')}) ---\nReason: {reason}"
    )


def _send_cancellation_notices(notices: List[_CancellationNotice], cancelled_by, reason=""):
    if not notices:
        return
    mailer = EmailService()
    for notice in notices:
        mailer.send_cancellation_notification(
            notice.email,
            notice.appointment_id,
            cancelled_by,
            notice.refund_pending,
            reason or "",
        )


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


def cancel_appointment(appointment_id, actor=None, reason=None):
    """
    Cancel an appointment together with its invoice.

    A paid booking (invoice ``Success``) becomes ``Refund_Pending`` on both
    rows; anything else becomes ``Cancelled`` (the invoice too, when there is
    one). Customers and lawyers may only cancel their own bookings, admins
    may force-cancel any, ``actor=None`` is the system.

    When the customer cancels a paid booking the 10% service fee is not
    refundable: the invoice records the base price as its refund_amount.
    An invoice already ``Refund_Pending`` or ``Refunded`` is left alone and
    the cancellation is refused.

    Raises NotFound, Unauthorized, InvalidStateTransition or
    PersistenceFailure; on any error nothing is written.
    """
    with unit_of_work(f"cancel appointment #{appointment_id}") as session:
        appointment = lock_appointment(session, appointment_id)
        if appointment is None:
            raise NotFound(f"Appointment #{appointment_id} not found.")

        _check_can_act_on(actor, appointment)

        old_status = appointment.status
        if old_status.is_terminal:
            raise InvalidStateTransition(TERMINAL_MESSAGE)
        if old_status is AppointmentStatus.REFUND_PENDING:
            raise InvalidStateTransition(
                "The appointment is already cancelled and waiting for a refund."
            )

        note = _reason_note(actor, reason) if reason else None
        by_customer = actor is not None and actor.role is Role.CUSTOMER
        new_status, invoice_status = _reconcile_cancellation(
            session, appointment, note, keep_service_fee=by_customer
        )
        customer_email = appointment.customer.email if appointment.customer else None

    refund_pending = new_status is AppointmentStatus.REFUND_PENDING
    current_app.logger.info(
        f"Appointment #{appointment_id} cancelled by {describe_actor(actor)}: "
        f"{old_status.value} -> {new_status.value}"
    )
    log_action(
        actor,
        f"{describe_actor(actor)} cancelled appointment #{appointment_id} "
        f"(Old: {old_status.value}, New: {new_status.value})",
    )
    _send_cancellation_notices(
        [_CancellationNotice(customer_email, appointment_id, refund_pending)],
        describe_actor(actor),
        reason,
    )

    return CancellationResult(
        appointment_id=appointment_id,
        appointment_status=new_status,
        invoice_status=invoice_status,
        message=REFUND_PENDING_MESSAGE if refund_pending else CANCELLED_MESSAGE,
    )


def _cascade_cancel(session, lawyer_id):
    stmt = (
        select(Appointment)
        .where(
            Appointment.lawyer_id == lawyer_id,
            Appointment.status.in_([s for s in AppointmentStatus if s.is_cancellable]),
        )
        .order_by(Appointment.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )

    notices = []
    for appointment in session.scalars(stmt).all():
        new_status, _ = _reconcile_cancellation(session, appointment, ACCOUNT_LOCK_NOTE)
        notices.append(
            _CancellationNotice(
                appointment.customer.email if appointment.customer else None,
                appointment.id,
                new_status is AppointmentStatus.REFUND_PENDING,
            )
        )
    return notices


def cascade_cancel_for_account(lawyer_id):
    """
    Cancel every open (Pending/Confirmed) appointment held by a lawyer.

    Runs as a single transaction: either every appointment is reconciled or
    none is. Returns the number of appointments cancelled; a second call
    once everything is terminal returns 0. An open appointment whose invoice
    already has a refund in progress makes the whole cascade fail with
    InvalidStateTransition.
    """
    with unit_of_work(f"cascade cancel for lawyer #{lawyer_id}") as session:
        if session.get(User, lawyer_id) is None:
            raise NotFound(f"User #{lawyer_id} not found.")
        notices = _cascade_cancel(session, lawyer_id)

    current_app.logger.info(
        f"Cascade cancelled {len(notices)} appointment(s) for lawyer #{lawyer_id}"
    )
    _send_cancellation_notices(notices, "System", "The lawyer account has been locked.")
    return len(notices)


def set_account_status(user_id, actor, active=None):
    """
    Activate or deactivate an account; ``active=None`` toggles.

    Deactivation cancels the account's open appointments in the same
    transaction. Nobody may change the status of their own account.
    """
    if actor is not None and not actor.is_admin:
        raise Unauthorized("Only administrators can change account status.")

    with unit_of_work(f"set status of user #{user_id}") as session:
        user = session.get(User, user_id, with_for_update=True, populate_existing=True)
        if user is None:
            raise NotFound(f"User #{user_id} not found.")
        if actor is not None and actor.user_id == user.id:
            raise Unauthorized("Cannot deactivate your own account.")

        will_be_active = (not user.is_active) if active is None else bool(active)
        notices = [] if will_be_active else _cascade_cancel(session, user.id)
        user.is_active = will_be_active
        email = user.email

    if will_be_active:
        log_action(actor, f"Admin activated user {email}.")
    else:
        log_action(
            actor,
            f"Admin locked user {email}. Auto-cancelled {len(notices)} appointments.",
        )
        _send_cancellation_notices(
            notices, "System", "The lawyer account has been locked."
        )

    return AccountStatusResult(
        user_id=user_id,
        email=email,
        is_active=will_be_active,
        cancelled_count=len(notices),
    )


def purge_appointment(appointment_id, actor):
    """Permanently delete an appointment and the invoice paired with it."""
    if actor is not None and not actor.is_admin:
        raise Unauthorized("Only administrators can delete appointments.")

    with unit_of_work(f"purge appointment #{appointment_id}") as session:
        if lock_appointment(session, appointment_id) is None:
            raise NotFound(f"Appointment #{appointment_id} not found.")
        session.execute(
            delete(PaymentInvoice).where(PaymentInvoice.appointment_id == appointment_id)
        )
        session.execute(delete(Appointment).where(Appointment.id == appointment_id))

    log_action(actor, f"Admin Deleted Appointment #{appointment_id}")


def complete_appointment(appointment_id, actor):
    """Close a confirmed consultation and record the platform commission."""
    with unit_of_work(f"complete appointment #{appointment_id}") as session:
        appointment = lock_appointment(session, appointment_id)
        if appointment is None:
            raise NotFound(f"Appointment #{appointment_id} not found.")
        if actor is not None and actor.role is Role.CUSTOMER:
            raise Unauthorized("Customers cannot complete appointments.")
        _check_can_act_on(actor, appointment)

        if appointment.status is not AppointmentStatus.CONFIRMED:
            raise InvalidStateTransition(
                f"Only confirmed appointments can be completed "
                f"(current status: {appointment.status.value})."
            )

        invoice = lock_invoice_for_appointment(session, appointment_id)
        fee = round_money(commission(invoice.amount)) if invoice else round_money(0)
        transition_appointment(
            session, appointment, AppointmentStatus.COMPLETED, commission_fee=fee
        )

    log_action(actor, f"{describe_actor(actor)} completed appointment #{appointment_id}")
    return fee
