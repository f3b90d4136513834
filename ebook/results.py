"""
Tagged results returned by the gateway and the gate. A result either carries
its payload or the error that stopped it; HTTP mapping happens in the views.
"""
from dataclasses import dataclass
from typing import Optional

from ebook.errors import ReaderError
from ebook.tokens import Credential


@dataclass(frozen=True)
class CheckoutResult:
    """Outcome of starting a checkout."""
    redirect_url: Optional[str] = None
    error: Optional[ReaderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RedemptionResult:
    """
    Outcome of redeeming a checkout session.

    Neither a credential nor an error means there was nothing to redeem.
    """
    credential: Optional[Credential] = None
    error: Optional[ReaderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    error: Optional[ReaderError] = None


@dataclass(frozen=True)
class ContentResult:
    """Bytes of a resolved object, or why they could not be served."""
    content: Optional[bytes] = None
    error: Optional[ReaderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
