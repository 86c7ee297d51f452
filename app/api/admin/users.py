# Admin account locking
from flask import Blueprint, jsonify, request

from app.services.reconciliation import set_account_status
from app.statuses import Role
from app.utils.auth import current_user, require_role

admin_users_bp = Blueprint("admin_users", __name__, url_prefix="/api/admin/users")


@admin_users_bp.route("/<int:user_id>/status", methods=["PATCH"])
@require_role(Role.ADMIN)
def update_status(user_id):
    """
    PATCH /api/admin/users/<user_id>/status - Lock or unlock an account
    ---
    tags:
      - Admin Users
    summary: Activate or deactivate a user
    description: >
      Without a body the current status is toggled. Deactivating a lawyer
      cancels all of their Pending and Confirmed appointments.
    security:
      - Bearer: []
    parameters:
      - name: user_id
        in: path
        type: integer
        required: true
      - name: body
        in: body
        required: false
        schema:
          type: object
          properties:
            is_active:
              type: boolean
    responses:
      200:
        description: Status changed
      400:
        description: is_active is not a boolean
      403:
        description: Tried to change your own account
      404:
        description: User not found
    """
    data = request.get_json(silent=True) or {}
    active = data.get("is_active")
    if active is not None and not isinstance(active, bool):
        return (
            jsonify({"status": "error", "message": "is_active must be a boolean"}),
            400,
        )

    result = set_account_status(user_id, current_user(), active)
    return (
        jsonify({"status": "success", "message": result.message, "user": result.to_dict()}),
        200,
    )
