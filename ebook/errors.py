"""
Failure kinds raised and reported by the entitlement gateway and the
authorization gate. Each kind carries the HTTP status it maps to.
"""
from typing import Optional


class ReaderError(Exception):
    """Base error for reader failures."""

    status_code = 500
    default_message = 'Internal error.'

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ClientRequestError(ReaderError):
    """Raised when a page number is malformed or out of range."""

    status_code = 404
    default_message = 'No such page.'


class NotFoundError(ReaderError):
    """Raised when a valid object key has nothing stored behind it."""

    status_code = 404
    default_message = 'Missing.'


class AuthorizationError(ReaderError):
    status_code = 401
    default_message = 'Unauthorized.'


class PaymentUnverifiedError(ReaderError):
    status_code = 402
    default_message = 'Payment not verified.'


class UpstreamProviderError(ReaderError):
    """Raised when the payment provider fails or answers with an error."""

    status_code = 502
    default_message = 'Payment provider error.'

    def __init__(
        self,
        message: Optional[str] = None,
        provider_status: Optional[int] = None,
        provider_payload: str = '',
    ):
        super().__init__(message)
        self.provider_status = provider_status
        self.provider_payload = provider_payload


class CheckoutCreationError(UpstreamProviderError):
    status_code = 500
    default_message = 'Checkout could not be started.'

    @classmethod
    def from_upstream(cls, exc: UpstreamProviderError) -> 'CheckoutCreationError':
        return cls(exc.message, exc.provider_status, exc.provider_payload)


class StoreUnavailableError(ReaderError):
    """Raised when the credential or page store cannot be read."""

    status_code = 503
    default_message = 'Storage temporarily unavailable.'
