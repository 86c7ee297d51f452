from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DECIMAL,
    Date,
    DateTime,
    Enum,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    Time,
    func,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from .statuses import AppointmentStatus, InvoiceStatus, Role, enum_values

Base = declarative_base()
metadata = Base.metadata


def _status_column(enum_cls, name, **kwargs):
    return mapped_column(
        Enum(
            enum_cls,
            name=name,
            values_callable=enum_values,
            native_enum=False,
            length=20,
            validate_strings=True,
        ),
        nullable=False,
        **kwargs,
    )


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("email", "email", unique=True),
        Index("ix_users_role", "role"),
    )

    id = mapped_column(Integer, primary_key=True)
    email = mapped_column(String(255), nullable=False)
    role = _status_column(Role, "user_role")
    is_active = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1")
    )
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))

    invoices: Mapped[List["PaymentInvoice"]] = relationship(
        "PaymentInvoice", uselist=True, back_populates="user"
    )
    lawyer_appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        uselist=True,
        foreign_keys="Appointment.lawyer_id",
        back_populates="lawyer",
    )
    customer_appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        uselist=True,
        foreign_keys="Appointment.customer_id",
        back_populates="customer",
    )


class AvailabilitySlot(Base):
    __tablename__ = "availability_slots"
    __table_args__ = (
        ForeignKeyConstraint(
            ["lawyer_id"], ["users.id"], ondelete="CASCADE", name="fk_slot_lawyer"
        ),
        Index("lawyer_id", "lawyer_id", "available_date"),
    )

    id = mapped_column(Integer, primary_key=True)
    lawyer_id = mapped_column(Integer, nullable=False)
    available_date = mapped_column(Date, nullable=False)
    start_time = mapped_column(Time)
    end_time = mapped_column(Time)

    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", uselist=True, back_populates="slot"
    )


class LawyerSubscription(Base):
    __tablename__ = "lawyer_subscriptions"
    __table_args__ = (
        ForeignKeyConstraint(
            ["lawyer_id"], ["users.id"], ondelete="CASCADE", name="fk_sub_lawyer"
        ),
        Index("fk_sub_lawyer", "lawyer_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    lawyer_id = mapped_column(Integer, nullable=False)
    plan_name = mapped_column(String(100), nullable=False)
    status = mapped_column(String(20), nullable=False, server_default=text("'Active'"))
    start_date = mapped_column(Date)
    end_date = mapped_column(Date)

    invoice: Mapped[Optional["PaymentInvoice"]] = relationship(
        "PaymentInvoice", uselist=False, back_populates="subscription"
    )


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        ForeignKeyConstraint(
            ["slot_id"], ["availability_slots.id"], name="fk_ap_slot"
        ),
        ForeignKeyConstraint(["customer_id"], ["users.id"], name="fk_ap_customer"),
        ForeignKeyConstraint(["lawyer_id"], ["users.id"], name="fk_ap_lawyer"),
        Index("ix_ap_lawyer_status", "lawyer_id", "status"),
        Index("ix_ap_customer", "customer_id"),
        Index("fk_ap_slot", "slot_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    slot_id = mapped_column(Integer)
    customer_id = mapped_column(Integer, nullable=False)
    lawyer_id = mapped_column(Integer, nullable=False)
    package_name = mapped_column(String(100))
    start_time = mapped_column(Time)
    duration = mapped_column(Integer, nullable=False, server_default=text("60"))
    note = mapped_column(Text)
    status = _status_column(
        AppointmentStatus, "appointment_status", default=AppointmentStatus.PENDING
    )
    commission_fee = mapped_column(DECIMAL(10, 2))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    slot: Mapped[Optional["AvailabilitySlot"]] = relationship(
        "AvailabilitySlot", back_populates="appointments"
    )
    customer: Mapped["User"] = relationship(
        "User", foreign_keys=[customer_id], back_populates="customer_appointments"
    )
    lawyer: Mapped["User"] = relationship(
        "User", foreign_keys=[lawyer_id], back_populates="lawyer_appointments"
    )
    invoice: Mapped[Optional["PaymentInvoice"]] = relationship(
        "PaymentInvoice", uselist=False, back_populates="appointment"
    )


class PaymentInvoice(Base):
    __tablename__ = "payments_invoices"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_inv_user"
        ),
        # No referential actions on these two: MySQL forbids them on columns a
        # CHECK constraint reads. Purging an appointment deletes its invoice first.
        ForeignKeyConstraint(
            ["appointment_id"], ["appointments.id"], name="fk_inv_appointment"
        ),
        ForeignKeyConstraint(
            ["subscription_id"], ["lawyer_subscriptions.id"], name="fk_inv_sub"
        ),
        CheckConstraint(
            "(appointment_id IS NULL) <> (subscription_id IS NULL)",
            name="ck_inv_booking_xor_subscription",
        ),
        Index("transaction_no", "transaction_no", unique=True),
        Index("ix_inv_appointment", "appointment_id", unique=True),
        Index("ix_inv_status_created", "status", "created_at"),
        Index("fk_inv_user", "user_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, nullable=False)
    appointment_id = mapped_column(Integer)
    subscription_id = mapped_column(Integer)
    transaction_no = mapped_column(String(100))
    payment_method = mapped_column(String(50))
    amount = mapped_column(DECIMAL(10, 2), nullable=False)
    refund_amount = mapped_column(
        DECIMAL(10, 2), nullable=False, server_default=text("0"), default=0
    )
    status = _status_column(
        InvoiceStatus, "invoice_status", default=InvoiceStatus.PENDING
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    user: Mapped["User"] = relationship("User", back_populates="invoices")
    appointment: Mapped[Optional["Appointment"]] = relationship(
        "Appointment", back_populates="invoice"
    )
    subscription: Mapped[Optional["LawyerSubscription"]] = relationship(
        "LawyerSubscription", back_populates="invoice"
    )


class SystemAuditLog(Base):
    __tablename__ = "system_audit_logs"
    __table_args__ = (
        ForeignKeyConstraint(
            ["admin_id"], ["users.id"], ondelete="SET NULL", name="fk_audit_admin"
        ),
        Index("fk_audit_admin", "admin_id"),
        {"comment": "Admin and system actions on appointments, invoices and accounts."},
    )

    id = mapped_column(Integer, primary_key=True)
    admin_id = mapped_column(Integer)
    action = mapped_column(String(255), nullable=False)
    timestamp = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
