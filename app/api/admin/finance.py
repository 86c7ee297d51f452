# Admin finance: revenue, reports and the refund queue
from datetime import datetime

from flask import Blueprint, jsonify, request, send_file

from app.services.refunds import list_refund_requests, process_refund
from app.services.revenue import build_revenue_report, compute_revenue, dashboard_stats
from app.statuses import Role, RevenuePeriod, enum_values
from app.utils.auth import current_user, require_role

admin_finance_bp = Blueprint(
    "admin_finance", __name__, url_prefix="/api/admin/finance"
)


def _invalid_period(period):
    return (
        jsonify(
            {
                "status": "error",
                "message": f"Invalid period '{period}'. "
                f"Must be one of: {', '.join(enum_values(RevenuePeriod))}",
            }
        ),
        400,
    )


@admin_finance_bp.route("/dashboard", methods=["GET"])
@require_role(Role.ADMIN)
def get_dashboard():
    """
    GET /api/admin/finance/dashboard - Headline counts for the admin home page
    ---
    tags:
      - Admin Finance
    security:
      - Bearer: []
    responses:
      200:
        description: Customer, lawyer, appointment and pending refund counts
    """
    return jsonify({"status": "success", "stats": dashboard_stats()}), 200


@admin_finance_bp.route("/revenue", methods=["GET"])
@require_role(Role.ADMIN)
def get_revenue():
    """
    GET /api/admin/finance/revenue - Platform revenue breakdown
    ---
    tags:
      - Admin Finance
    summary: Subscription and booking revenue with a page of recent transactions
    security:
      - Bearer: []
    parameters:
      - name: period
        in: query
        type: string
        enum: [day, month, year, all]
        required: false
        description: Reporting window (default all)
      - name: page
        in: query
        type: integer
        required: false
        description: Page of recent transactions (default 1)
    responses:
      200:
        description: Revenue sources, total net revenue and recent transactions
        schema:
          $ref: '#/definitions/RevenueSummary'
      400:
        description: Unknown period
    """
    period = request.args.get("period", RevenuePeriod.ALL.value)
    page = request.args.get("page", 1, type=int)
    try:
        summary = compute_revenue(period, page=page)
    except ValueError:
        return _invalid_period(period)
    return jsonify({"status": "success", **summary.to_dict()}), 200


@admin_finance_bp.route("/report", methods=["POST"])
@require_role(Role.ADMIN)
def generate_report():
    """
    POST /api/admin/finance/report - Download the revenue report as Excel
    ---
    tags:
      - Admin Finance
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: false
        schema:
          type: object
          properties:
            period:
              type: string
              enum: [day, month, year, all]
    produces:
      - application/vnd.openxmlformats-officedocument.spreadsheetml.sheet
    responses:
      200:
        description: Workbook with Summary and Transactions sheets
      400:
        description: Unknown period
    """
    data = request.get_json(silent=True) or {}
    period = data.get("period", RevenuePeriod.ALL.value)
    try:
        output = build_revenue_report(period)
    except ValueError:
        return _invalid_period(period)

    filename = f"Revenue_Report_{period}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
    return send_file(
        output,
        as_attachment=True,
        download_name=filename,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


@admin_finance_bp.route("/refunds", methods=["GET"])
@require_role(Role.ADMIN)
def get_refund_requests():
    """
    GET /api/admin/finance/refunds - Invoices waiting for a refund
    ---
    tags:
      - Admin Finance
    security:
      - Bearer: []
    responses:
      200:
        description: Refund_Pending invoices, newest first, with suggested refund amounts
    """
    requests = [r.to_dict() for r in list_refund_requests()]
    return jsonify({"status": "success", "refunds": requests, "count": len(requests)}), 200


@admin_finance_bp.route("/refunds/<int:invoice_id>", methods=["POST"])
@require_role(Role.ADMIN)
def post_refund(invoice_id):
    """
    POST /api/admin/finance/refunds/<invoice_id> - Finalise a refund
    ---
    tags:
      - Admin Finance
    security:
      - Bearer: []
    parameters:
      - name: invoice_id
        in: path
        type: integer
        required: true
    responses:
      200:
        description: Invoice marked Refunded and its appointment Cancelled
      400:
        description: Invoice is not Refund_Pending or Success
      404:
        description: Invoice not found
    """
    result = process_refund(invoice_id, current_user())
    return (
        jsonify({"status": "success", "message": result.message, "refund": result.to_dict()}),
        200,
    )
