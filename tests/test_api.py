import pytest
import json
from datetime import timedelta

from app.models import Appointment, PaymentInvoice, User
from app.statuses import AppointmentStatus, InvoiceStatus
from app.utils.auth import issue_token


@pytest.mark.api
class TestAppointmentEndpoints:
    """Customer and lawyer facing appointment routes."""

    def test_customer_cancels_paid_booking(
        self, client, make_booking, sample_customer, auth_headers, reload
    ):
        appointment, invoice = make_booking(
            status=AppointmentStatus.CONFIRMED, invoice_status=InvoiceStatus.SUCCESS
        )

        response = client.post(
            f"/api/appointments/{appointment.id}/cancel",
            data=json.dumps({"reason": "Schedule conflict"}),
            content_type="application/json",
            headers=auth_headers(sample_customer),
        )

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["status"] == "success"
        assert data["appointment"]["appointment_status"] == "Refund_Pending"
        assert data["appointment"]["invoice_status"] == "Refund_Pending"
        assert reload(PaymentInvoice, invoice.id).status is InvoiceStatus.REFUND_PENDING

    def test_cancel_terminal_appointment_returns_400(
        self, client, make_booking, sample_customer, auth_headers
    ):
        appointment, _ = make_booking(status=AppointmentStatus.COMPLETED)

        response = client.post(
            f"/api/appointments/{appointment.id}/cancel",
            headers=auth_headers(sample_customer),
        )

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data["status"] == "error"
        assert data["error"] == "InvalidStateTransition"

    def test_cancel_missing_appointment_returns_404(
        self, client, sample_customer, auth_headers
    ):
        response = client.post(
            "/api/appointments/999/cancel", headers=auth_headers(sample_customer)
        )

        assert response.status_code == 404
        assert json.loads(response.data)["error"] == "NotFound"

    def test_cancel_someone_elses_booking_returns_403(
        self, client, make_booking, other_customer, auth_headers
    ):
        appointment, _ = make_booking()

        response = client.post(
            f"/api/appointments/{appointment.id}/cancel",
            headers=auth_headers(other_customer),
        )

        assert response.status_code == 403
        assert json.loads(response.data)["error"] == "Unauthorized"

    def test_missing_token_returns_401(self, client, make_booking):
        appointment, _ = make_booking()

        response = client.post(f"/api/appointments/{appointment.id}/cancel")

        assert response.status_code == 401

    def test_expired_token_returns_401(self, client, make_booking, sample_customer):
        appointment, _ = make_booking()
        token = issue_token(
            sample_customer.id,
            sample_customer.role,
            expires_in=timedelta(seconds=-5),
        )

        response = client.post(
            f"/api/appointments/{appointment.id}/cancel",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert json.loads(response.data)["message"] == "Token has expired"

    def test_admin_cannot_use_customer_cancel_route(
        self, client, make_booking, sample_admin, auth_headers
    ):
        appointment, _ = make_booking()

        response = client.post(
            f"/api/appointments/{appointment.id}/cancel",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 403

    def test_lawyer_completes_appointment(
        self, client, make_booking, sample_lawyer, auth_headers
    ):
        appointment, _ = make_booking(
            status=AppointmentStatus.CONFIRMED, invoice_status=InvoiceStatus.SUCCESS
        )

        response = client.post(
            f"/api/appointments/{appointment.id}/complete",
            headers=auth_headers(sample_lawyer),
        )

        assert response.status_code == 200
        assert json.loads(response.data)["commission_fee"] == 40.0


@pytest.mark.api
class TestAdminEndpoints:
    """Admin appointment, account and finance routes."""

    def test_force_cancel(self, client, make_booking, sample_admin, auth_headers, reload):
        appointment, invoice = make_booking(invoice_status=InvoiceStatus.PENDING)

        response = client.post(
            f"/api/admin/appointments/{appointment.id}/cancel",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 200
        assert reload(Appointment, appointment.id).status is AppointmentStatus.CANCELLED
        assert reload(PaymentInvoice, invoice.id).status is InvoiceStatus.CANCELLED

    def test_force_cancel_requires_admin(
        self, client, make_booking, sample_customer, auth_headers
    ):
        appointment, _ = make_booking()

        response = client.post(
            f"/api/admin/appointments/{appointment.id}/cancel",
            headers=auth_headers(sample_customer),
        )

        assert response.status_code == 403

    def test_purge(self, client, make_booking, sample_admin, auth_headers, reload):
        appointment, _ = make_booking()
        appointment_id = appointment.id

        response = client.delete(
            f"/api/admin/appointments/{appointment_id}",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 200
        assert reload(Appointment, appointment_id) is None

    def test_lock_lawyer(
        self, client, make_booking, sample_lawyer, sample_admin, auth_headers, reload
    ):
        make_booking(status=AppointmentStatus.CONFIRMED, invoice_status=InvoiceStatus.SUCCESS)

        response = client.patch(
            f"/api/admin/users/{sample_lawyer.id}/status",
            data=json.dumps({"is_active": False}),
            content_type="application/json",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["user"]["cancelled_count"] == 1
        assert reload(User, sample_lawyer.id).is_active is False

    def test_lock_self_is_refused(self, client, sample_admin, auth_headers):
        response = client.patch(
            f"/api/admin/users/{sample_admin.id}/status",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 403
        assert json.loads(response.data)["message"] == "Cannot deactivate your own account."

    def test_lock_with_bad_flag(self, client, sample_lawyer, sample_admin, auth_headers):
        response = client.patch(
            f"/api/admin/users/{sample_lawyer.id}/status",
            data=json.dumps({"is_active": "no"}),
            content_type="application/json",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 400

    def test_revenue(
        self, client, make_booking, make_subscription_invoice, sample_admin, auth_headers
    ):
        make_booking(status=AppointmentStatus.COMPLETED, invoice_status=InvoiceStatus.SUCCESS)
        make_subscription_invoice(amount="50.00")

        response = client.get(
            "/api/admin/finance/revenue?period=all&page=1",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["total_revenue"] == 110.0
        assert data["revenue_sources"]["booking_net"] == 60.0
        assert data["revenue_sources"]["subscription"] == 50.0
        assert data["recent_transactions"]["total"] == 2
        assert len(data["recent_transactions"]["data"]) == 2

    def test_revenue_invalid_period(self, client, sample_admin, auth_headers):
        response = client.get(
            "/api/admin/finance/revenue?period=fortnight",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 400
        assert json.loads(response.data)["status"] == "error"

    def test_revenue_requires_admin(self, client, sample_lawyer, auth_headers):
        response = client.get(
            "/api/admin/finance/revenue", headers=auth_headers(sample_lawyer)
        )

        assert response.status_code == 403

    def test_dashboard(self, client, make_booking, sample_admin, auth_headers):
        make_booking()

        response = client.get(
            "/api/admin/finance/dashboard", headers=auth_headers(sample_admin)
        )

        assert response.status_code == 200
        assert json.loads(response.data)["stats"]["appointments"]["total"] == 1

    def test_report_download(self, client, make_booking, sample_admin, auth_headers):
        make_booking(status=AppointmentStatus.COMPLETED, invoice_status=InvoiceStatus.SUCCESS)

        response = client.post(
            "/api/admin/finance/report",
            data=json.dumps({"period": "all"}),
            content_type="application/json",
            headers=auth_headers(sample_admin),
        )

        assert response.status_code == 200
        assert response.mimetype == (
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "attachment" in response.headers["Content-Disposition"]
        # xlsx files are zip archives
        assert response.data[:2] == b"PK"

    def test_refund_queue_and_processing(
        self, client, make_booking, sample_admin, auth_headers, reload
    ):
        appointment, invoice = make_booking(
            status=AppointmentStatus.REFUND_PENDING,
            invoice_status=InvoiceStatus.REFUND_PENDING,
            amount="220.00",
        )
        headers = auth_headers(sample_admin)

        queue = client.get("/api/admin/finance/refunds", headers=headers)
        assert queue.status_code == 200
        refunds = json.loads(queue.data)["refunds"]
        assert refunds[0]["invoice_id"] == invoice.id
        assert refunds[0]["suggested_refund"] == 200.0

        response = client.post(f"/api/admin/finance/refunds/{invoice.id}", headers=headers)

        assert response.status_code == 200
        assert json.loads(response.data)["refund"]["actual_refund"] == 220.0
        assert reload(PaymentInvoice, invoice.id).status is InvoiceStatus.REFUNDED
        assert reload(Appointment, appointment.id).status is AppointmentStatus.CANCELLED

    def test_refund_wrong_state_returns_400(
        self, client, make_booking, sample_admin, auth_headers
    ):
        _, invoice = make_booking(invoice_status=InvoiceStatus.PENDING)

        response = client.post(
            f"/api/admin/finance/refunds/{invoice.id}", headers=auth_headers(sample_admin)
        )

        assert response.status_code == 400
        assert json.loads(response.data)["error"] == "InvalidStateTransition"
