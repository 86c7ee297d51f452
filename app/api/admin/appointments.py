# Admin overrides on appointments
from flask import Blueprint, jsonify, request

from app.services.reconciliation import cancel_appointment, purge_appointment
from app.statuses import Role
from app.utils.auth import current_user, require_role

admin_appointments_bp = Blueprint(
    "admin_appointments", __name__, url_prefix="/api/admin/appointments"
)


@admin_appointments_bp.route("/<int:appointment_id>/cancel", methods=["POST"])
@require_role(Role.ADMIN)
def force_cancel(appointment_id):
    """
    POST /api/admin/appointments/<appointment_id>/cancel - Force cancel any appointment
    ---
    tags:
      - Admin Appointments
    summary: Cancel an appointment on behalf of the platform
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
    responses:
      200:
        description: Appointment cancelled (Refund_Pending when already paid)
      400:
        description: Appointment is already in a terminal state
      404:
        description: Appointment not found
    """
    data = request.get_json(silent=True) or {}
    result = cancel_appointment(appointment_id, current_user(), data.get("reason"))
    return (
        jsonify(
            {"status": "success", "message": result.message, "appointment": result.to_dict()}
        ),
        200,
    )


@admin_appointments_bp.route("/<int:appointment_id>", methods=["DELETE"])
@require_role(Role.ADMIN)
def purge(appointment_id):
    """
    DELETE /api/admin/appointments/<appointment_id> - Permanently delete an appointment
    ---
    tags:
      - Admin Appointments
    summary: Delete an appointment and its invoice
    security:
      - Bearer: []
    parameters:
      - name: appointment_id
        in: path
        type: integer
        required: true
    responses:
      200:
        description: Appointment deleted
      404:
        description: Appointment not found
    """
    purge_appointment(appointment_id, current_user())
    return (
        jsonify(
            {
                "status": "success",
                "message": f"Appointment #{appointment_id} has been permanently deleted.",
            }
        ),
        200,
    )
