# noqa: E402
"""
Swagger/OpenAPI configuration for the Counsel Ledger API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Counsel Ledger API",
        "description": "Appointment cancellation, refund and revenue endpoints for the legal consultation marketplace",
        "contact": {"email": "support@counselledger.com"},
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/api",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"',
        }
    },
    "security": [{"Bearer": []}],
    "tags": [
        {"name": "Appointments", "description": "Customer and lawyer appointment actions"},
        {"name": "Admin Appointments", "description": "Force cancel and delete appointments"},
        {"name": "Admin Users", "description": "Account locking"},
        {"name": "Admin Finance", "description": "Revenue, reports and refunds"},
        {"name": "Utility", "description": "Health check"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "error"},
                "error": {
                    "type": "string",
                    "enum": [
                        "NotFound",
                        "InvalidStateTransition",
                        "Unauthorized",
                        "PersistenceFailure",
                    ],
                },
                "message": {"type": "string"},
            },
        },
        "Success": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "success"},
                "message": {"type": "string"},
            },
        },
        "Transaction": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "user_id": {"type": "integer"},
                "email": {"type": "string"},
                "appointment_id": {"type": "integer"},
                "subscription_id": {"type": "integer"},
                "amount": {"type": "number", "format": "float"},
                "refund_amount": {"type": "number", "format": "float"},
                "status": {"type": "string", "enum": ["Success", "Refunded"]},
                "payment_type": {"type": "string", "enum": ["Subscription", "Booking"]},
                "net_amount": {"type": "number", "format": "float"},
                "created_at": {"type": "string", "format": "date-time"},
            },
        },
        "RevenueSummary": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "success"},
                "period": {"type": "string", "enum": ["day", "month", "year", "all"]},
                "revenue_sources": {
                    "type": "object",
                    "properties": {
                        "subscription": {"type": "number", "format": "float"},
                        "booking_gross": {"type": "number", "format": "float"},
                        "booking_net": {"type": "number", "format": "float"},
                        "service_fee_total": {"type": "number", "format": "float"},
                        "commission_total": {"type": "number", "format": "float"},
                    },
                },
                "total_revenue": {"type": "number", "format": "float"},
                "recent_transactions": {
                    "type": "object",
                    "properties": {
                        "data": {
                            "type": "array",
                            "items": {"$ref": "#/definitions/Transaction"},
                        },
                        "current_page": {"type": "integer"},
                        "per_page": {"type": "integer"},
                        "total": {"type": "integer"},
                        "last_page": {"type": "integer"},
                    },
                },
            },
        },
    },
}
