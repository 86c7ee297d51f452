# Appointment and refund notifications
import resend
from typing import Dict
from flask import current_app


class EmailService:
    """
    Centralized email service using Resend
    """

    def __init__(self, api_key=None, from_email=None, frontend_url=None, disabled=None):
        """Initialize Resend with API key"""
        config = current_app.config
        self.from_email = from_email or config.get(
            "RESEND_FROM_EMAIL", "onboarding@resend.dev"
        )
        self.frontend_url = frontend_url or config.get(
            "FRONTEND_URL", "http://localhost:3000"
        )
        self.api_key = api_key or config.get("RESEND_API_KEY")
        if disabled is None:
            disabled = bool(config.get("TESTING")) or not self.api_key
        self.disabled = disabled
        if not self.disabled:
            resend.api_key = self.api_key

    def _send(self, to_email: str, subject: str, html_content: str, kind: str) -> Dict:
        if self.disabled:
            return {"success": False, "skipped": True, "message": "Email disabled"}
        if not to_email:
            return {"success": False, "error": "Recipient has no email address"}

        try:
            params = {
                "from": self.from_email,
                "to": [to_email],
                "subject": subject,
                "html": html_content,
            }

            email_response = resend.Emails.send(params)

            return {
                "success": True,
                "message": f"{kind} sent successfully",
                "email_id": email_response.get("id"),
            }

        except Exception as e:
            current_app.logger.warning(f"{kind} to {to_email} failed: {e}")
            return {"success": False, "error": str(e)}

    def send_cancellation_notification(
        self,
        to_email: str,
        appointment_id: int,
        cancelled_by: str,
        refund_pending: bool,
        reason: str = "",
    ) -> Dict:
        """
        Tell the customer their consultation was cancelled.

        Args:
            to_email: Customer email
            appointment_id: Cancelled appointment
            cancelled_by: Label of who cancelled ('Customer', 'Admin', 'System', ...)
            refund_pending: Whether a paid invoice is now waiting for a refund
            reason: Optional reason shown in the message
        """
        refund_line = (
            "<p>Your payment has been received, so a refund is now pending review.</p>"
            if refund_pending
            else ""
        )
        reason_line = f"<p><strong>Reason:</strong> {reason}</p>" if reason else ""
        html_content = f"""
            <html>
                <body style="font-family: Arial, sans-serif; color: #2d3748;">
                    <h2>Appointment #{appointment_id} cancelled</h2>
                    <p>Your consultation was cancelled by: <strong>{cancelled_by}</strong>.</p>
                    {reason_line}
                    {refund_line}
                    <p>
                        <a href="{self.frontend_url}/customer/my-appointments/{appointment_id}">
                            View appointment
                        </a>
                    </p>
                </body>
            </html>
        """
        return self._send(
            to_email,
            f"Appointment #{appointment_id} has been cancelled",
            html_content,
            "Cancellation notification",
        )

    def send_refund_notification(
        self, to_email: str, invoice_id: int, refund_amount
    ) -> Dict:
        """Tell the customer their refund was finalised."""
        html_content = f"""
            <html>
                <body style="font-family: Arial, sans-serif; color: #2d3748;">
                    <h2>Refund processed</h2>
                    <p>The refund for invoice #{invoice_id} has been completed.</p>
                    <p><strong>Amount refunded:</strong> {refund_amount}</p>
                    <p>
                        <a href="{self.frontend_url}/customer/payments">View payment history</a>
                    </p>
                </body>
            </html>
        """
        return self._send(
            to_email,
            f"Refund for invoice #{invoice_id} completed",
            html_content,
            "Refund notification",
        )
