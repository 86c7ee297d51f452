# Error kinds raised by the ledger services and rendered by the blueprints


class LedgerError(Exception):
    """Base class for every business error the services raise.

    ``kind`` is the machine readable name sent to clients next to ``message``;
    ``status_code`` is what the HTTP layer answers with.
    """

    kind = "LedgerError"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message=None, status_code=None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self):
        return {"status": "error", "error": self.kind, "message": self.message}


class NotFound(LedgerError):
    kind = "NotFound"
    status_code = 404
    default_message = "Resource not found"


class InvalidStateTransition(LedgerError):
    kind = "InvalidStateTransition"
    status_code = 400
    default_message = "The requested status change is not allowed"


class Unauthorized(LedgerError):
    kind = "Unauthorized"
    status_code = 403
    default_message = "You are not allowed to perform this action"


class PersistenceFailure(LedgerError):
    kind = "PersistenceFailure"
    status_code = 500
    # Never carries driver detail; that goes to the log only.
    default_message = "Internal server error"
