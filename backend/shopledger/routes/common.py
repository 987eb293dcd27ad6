# Overview: Shared JSON error rendering for API blueprints.

from flask import current_app

from ..errors import LedgerError
from ..validation import ValidationError

# Routes catch these and render them; anything else is logged as a 500
KNOWN_ERRORS = (LedgerError, ValidationError)


def error_response(e: Exception):
    if isinstance(e, LedgerError):
        return e.to_dict(), e.http_status
    return {"error": str(e)}, 400


def internal_error(message: str):
    current_app.logger.exception(message)
    return {"error": "Internal server error"}, 500
