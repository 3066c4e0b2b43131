# backoffice_api/common/errors.py
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from backoffice_api.common.http import fail


class APIError(Exception):
    """Custom API Error class."""
    code = "API_ERROR"
    status_code = 400

    def __init__(self, message, code=None, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload

    @property
    def kind(self) -> str:
        return self.code


class NotFoundError(APIError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, ident=None):
        msg = f"{entity} not found" if ident is None else f"{entity} {ident} not found"
        super().__init__(msg, payload={"entity": entity, "id": ident})


class InsufficientBalanceError(APIError):
    code = "INSUFFICIENT_BALANCE"
    status_code = 422


class InvalidTransitionError(APIError):
    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"{entity} in '{current}' status cannot move to '{target}'",
            payload={"entity": entity, "from": current, "to": target},
        )


class ConflictError(APIError):
    code = "CONFLICT"
    status_code = 409


class ValidationError(APIError):
    code = "VALIDATION_ERROR"
    status_code = 422


class LedgerInvariantError(APIError):
    code = "LEDGER_INVARIANT"
    status_code = 500


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        if e.status_code >= 500:
            app.logger.error("%s: %s", e.code, e.message)
        return fail(e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _dup(e: IntegrityError):
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR",
                    detail=str(e.orig) if getattr(e, "orig", None) else str(e))

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
