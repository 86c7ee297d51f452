# Customer and lawyer actions on a booked consultation
from flask import Blueprint, jsonify, request

from app.services.reconciliation import cancel_appointment, complete_appointment
from app.statuses import Role
from app.utils.auth import current_user, require_role

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


@appointments_bp.route("/<int:appointment_id>/cancel", methods=["POST"])
@require_role(Role.CUSTOMER, Role.LAWYER)
def cancel(appointment_id):
    """
    POST /api/appointments/<appointment_id>/cancel - Cancel one of your appointments
    ---
    tags:
      - Appointments
    summary: Cancel a booking and reconcile its invoice
    description: >
      Customers cancel their own bookings and lawyers the ones assigned to
      them. A paid booking moves to Refund_Pending, anything else to Cancelled.
    security:
      - Bearer: []
    parameters:
      - name: appointment_id
        in: path
        type: integer
        required: true
      - name: body
        in: body
        required: false
        schema:
          type: object
          properties:
            reason:
              type: string
              description: Shown to the customer and appended to the appointment note
    responses:
      200:
        description: Appointment cancelled
      400:
        description: Appointment is already in a terminal state
      403:
        description: Appointment belongs to someone else
      404:
        description: Appointment not found
      409:
        description: Appointment was changed by a concurrent request
    """
    data = request.get_json(silent=True) or {}
    result = cancel_appointment(appointment_id, current_user(), data.get("reason"))
    return (
        jsonify(
            {"status": "success", "message": result.message, "appointment": result.to_dict()}
        ),
        200,
    )


@appointments_bp.route("/<int:appointment_id>/complete", methods=["POST"])
@require_role(Role.LAWYER, Role.ADMIN)
def complete(appointment_id):
    """
    POST /api/appointments/<appointment_id>/complete - Mark a consultation as done
    ---
    tags:
      - Appointments
    summary: Complete a confirmed appointment and record the platform commission
    security:
      - Bearer: []
    parameters:
      - name: appointment_id
        in: path
        type: integer
        required: true
    responses:
      200:
        description: Appointment completed, returns the commission fee
      400:
        description: Appointment is not Confirmed
      403:
        description: Not the lawyer of this appointment
      404:
        description: Appointment not found
    """
    fee = complete_appointment(appointment_id, current_user())
    return (
        jsonify(
            {
                "status": "success",
                "message": "Appointment completed.",
                "appointment_id": appointment_id,
                "commission_fee": float(fee),
            }
        ),
        200,
    )
