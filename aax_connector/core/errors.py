"""
Error taxonomy for the AAX adapter.

Every class extends the matching ``ccxt`` error so callers that already
catch ``ccxt.BaseError`` (or one of its families) keep working.
"""

from typing import Any, Optional

import ccxt


class ArgumentsRequired(ccxt.ArgumentsRequired):
    """A mandatory argument was missing; raised before any network call."""


class BadRequest(ccxt.BadRequest):
    """The caller supplied an invalid enum value (type, side, limit, timeframe...)."""


class InvalidConfiguration(BadRequest):
    """Venue selection is outside the allowed set, per call or process-wide."""


class UnknownSymbol(ccxt.BadSymbol):
    """No market metadata entry for the symbol or wire id."""


class MissingCredentials(ccxt.AuthenticationError):
    """A private endpoint was called without both API key and secret."""


class OrderNotFound(ccxt.OrderNotFound):
    pass


class InsufficientFunds(ccxt.InsufficientFunds):
    pass


class BadResponse(ccxt.BadResponse):
    """The venue signalled a logical failure or returned an unusable payload."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: Optional[str] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.code = code
        self.response = response


class TransportError(ccxt.NetworkError):
    """Opaque pass-through of a network-layer failure."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.status = status
        self.payload = payload


# Venue error codes with a dedicated class. Anything else is a BadResponse.
VENUE_ERROR_CODES = {
    "2002": InsufficientFunds,
    "2003": OrderNotFound,
}


def raise_for_venue_code(code: Any, message: str, operation: str, response: Any = None) -> None:
    """Raise the taxonomy error for a venue's non-success ``code``."""
    if isinstance(code, float) and code.is_integer():
        code = int(code)
    code = None if code is None else str(code)
    feedback = f"aax {operation}() failed: {message}"
    error_cls = VENUE_ERROR_CODES.get(code)
    if error_cls is not None:
        raise error_cls(f"{feedback} (code={code}) {response}")
    raise BadResponse(feedback, operation=operation, code=code, response=response)
