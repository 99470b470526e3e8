"""Error taxonomy shared by the cart, catalog and settlement components."""

from __future__ import annotations

EMPTY_CART = "EMPTY_CART"
SALE_ERROR = "SALE_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
CART_BUSY = "CART_BUSY"
SETTLEMENT_IN_PROGRESS = "SETTLEMENT_IN_PROGRESS"

GENERIC_SALE_MESSAGE = "Could not process the sale"
GENERIC_NETWORK_MESSAGE = "Could not reach the back-office service"


class PosError(Exception):
    """Base error carrying a user-facing message and a stable code."""

    default_code = SALE_ERROR

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.message = message
        super().__init__(message)


class ValidationError(PosError):
    """Rejected locally before anything is sent."""

    default_code = EMPTY_CART


class NetworkError(PosError):
    """The collaborator could not be reached or answered with a server fault."""

    default_code = NETWORK_ERROR

    def __init__(self, message: str = GENERIC_NETWORK_MESSAGE, code: str | None = None) -> None:
        super().__init__(message, code)


class ServerRejection(PosError):
    """The collaborator answered with a structured business error."""

    def __init__(self, status_code: int, message: str | None = None, code: str | None = None) -> None:
        self.status_code = status_code
        self.server_message = message
        super().__init__(message or GENERIC_SALE_MESSAGE, code)


class CartBusyError(PosError):
    """A cart mutation was issued while another one is still in flight."""

    default_code = CART_BUSY

    def __init__(self, message: str = "Cart is still applying the previous change", code: str | None = None) -> None:
        super().__init__(message, code)


class SettlementInProgressError(PosError):
    default_code = SETTLEMENT_IN_PROGRESS

    def __init__(self, message: str = "A sale is already being processed", code: str | None = None) -> None:
        super().__init__(message, code)
