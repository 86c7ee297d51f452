"""
Pytest configuration and shared fixtures for the ledger tests.
"""

import os
import sys
from datetime import date, datetime, time
from decimal import Decimal

import pytest

os.environ["FLASK_ENV"] = "testing"
os.environ["TESTING"] = "True"

from app.config import is_production_database  # noqa: E402
from app.extensions import db as database  # noqa: E402
from app.models import (  # noqa: E402
    Appointment,
    AvailabilitySlot,
    Base,
    LawyerSubscription,
    PaymentInvoice,
    User,
)
from app.statuses import AppointmentStatus, InvoiceStatus, Role  # noqa: E402
from app.utils.auth import CurrentUser, issue_token  # noqa: E402
from main import create_app  # noqa: E402


@pytest.fixture(scope="session")
def app():
    """Create and configure a test app instance."""
    # Falls back to in-memory SQLite; set MYSQL_TEST_URL to run against MySQL
    test_db_url = os.environ.get("MYSQL_TEST_URL") or "sqlite://"

    if is_production_database(test_db_url):
        print(f" DANGER: Database URL appears to be production: {test_db_url}")
        print(" Tests aborted to prevent data loss!")
        sys.exit(1)

    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": test_db_url,
            "SECRET_KEY": "test-secret-key-for-testing-only",
        }
    )
    yield app


@pytest.fixture
def db(app):
    """Fresh tables for every test; the services commit for real."""
    with app.app_context():
        if not app.config.get("TESTING"):
            print(" DANGER: Not in testing mode!")
            sys.exit(1)

        Base.metadata.create_all(bind=database.engine)
        yield database
        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def file_app(tmp_path):
    """
    App on a file-backed SQLite database.

    Unlike the in-memory database every session gets its own connection, so
    two app contexts behave like two concurrent requests.
    """
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'ledger_test.db'}",
            "SECRET_KEY": "test-secret-key-for-testing-only",
        }
    )
    with app.app_context():
        Base.metadata.create_all(bind=database.engine)
    yield app
    with app.app_context():
        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)
        database.engine.dispose()


@pytest.fixture
def db_session(db):
    return db.session


@pytest.fixture
def client(app, db):
    return app.test_client()


def _make_user(session, email, role, is_active=True):
    user = User(email=email, role=role, is_active=is_active)
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def sample_admin(db_session):
    return _make_user(db_session, "admin@example.com", Role.ADMIN)


@pytest.fixture
def sample_lawyer(db_session):
    return _make_user(db_session, "lawyer@example.com", Role.LAWYER)


@pytest.fixture
def other_lawyer(db_session):
    return _make_user(db_session, "second.lawyer@example.com", Role.LAWYER)


@pytest.fixture
def sample_customer(db_session):
    return _make_user(db_session, "customer@example.com", Role.CUSTOMER)


@pytest.fixture
def other_customer(db_session):
    return _make_user(db_session, "second.customer@example.com", Role.CUSTOMER)


@pytest.fixture
def sample_slot(db_session, sample_lawyer):
    slot = AvailabilitySlot(
        lawyer_id=sample_lawyer.id,
        available_date=date(2026, 3, 14),
        start_time=time(9, 0),
        end_time=time(12, 0),
    )
    db_session.add(slot)
    db_session.commit()
    return slot


@pytest.fixture
def make_booking(db_session, sample_customer, sample_lawyer, sample_slot):
    """
    Factory for an appointment with (optionally) its booking invoice.

    Returns (appointment, invoice); invoice is None when invoice_status is None.
    """
    counter = {"n": 0}

    def _make(
        status=AppointmentStatus.PENDING,
        invoice_status=InvoiceStatus.PENDING,
        amount="220.00",
        refund_amount="0",
        customer=None,
        lawyer=None,
        created_at=None,
    ):
        counter["n"] += 1
        appointment = Appointment(
            slot_id=sample_slot.id,
            customer_id=(customer or sample_customer).id,
            lawyer_id=(lawyer or sample_lawyer).id,
            package_name="Standard consultation",
            start_time=time(9, 0),
            status=status,
            note="Contract review",
        )
        db_session.add(appointment)
        db_session.flush()

        invoice = None
        if invoice_status is not None:
            invoice = PaymentInvoice(
                user_id=(customer or sample_customer).id,
                appointment_id=appointment.id,
                transaction_no=f"TXN-BOOK-{counter['n']}",
                payment_method="card",
                amount=Decimal(amount),
                refund_amount=Decimal(refund_amount),
                status=invoice_status,
                created_at=created_at or datetime(2026, 3, 1, 10, 0),
            )
            db_session.add(invoice)
        db_session.commit()
        return appointment, invoice

    return _make


@pytest.fixture
def make_subscription_invoice(db_session, sample_lawyer):
    counter = {"n": 0}

    def _make(
        amount="50.00",
        status=InvoiceStatus.SUCCESS,
        refund_amount="0",
        lawyer=None,
        created_at=None,
    ):
        counter["n"] += 1
        owner = lawyer or sample_lawyer
        subscription = LawyerSubscription(
            lawyer_id=owner.id,
            plan_name="Pro",
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 31),
        )
        db_session.add(subscription)
        db_session.flush()
        invoice = PaymentInvoice(
            user_id=owner.id,
            subscription_id=subscription.id,
            transaction_no=f"TXN-SUB-{counter['n']}",
            payment_method="card",
            amount=Decimal(amount),
            refund_amount=Decimal(refund_amount),
            status=status,
            created_at=created_at or datetime(2026, 3, 1, 9, 0),
        )
        db_session.add(invoice)
        db_session.commit()
        return invoice

    return _make


def as_actor(user):
    return CurrentUser(user_id=user.id, role=user.role, email=user.email)


@pytest.fixture
def actor_for():
    return as_actor


@pytest.fixture
def auth_headers(db):
    """Factory returning Authorization headers for a user."""

    def _headers(user):
        token = issue_token(user.id, user.role, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def reload(db_session):
    """Read the committed row again, ignoring whatever the session cached."""

    def _reload(model, pk):
        db_session.expire_all()
        return db_session.get(model, pk)

    return _reload
