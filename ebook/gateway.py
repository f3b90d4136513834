"""
Entitlement gateway: sends a visitor to Stripe Checkout and turns a paid
checkout session into an access credential.
"""
from typing import Dict, Optional
from urllib.parse import urlsplit

from loguru import logger

from ebook.context import ReaderContext
from ebook.errors import (
    CheckoutCreationError,
    PaymentUnverifiedError,
    UpstreamProviderError,
)
from ebook.payments import SESSION_ID_PLACEHOLDER
from ebook.results import CheckoutResult, RedemptionResult
from ebook.tokens import CREDENTIAL_MARKER, Credential, mint_token


def build_checkout_params(origin: str, price_id: str) -> Dict[str, str]:
    """
    Form fields for a one-time checkout of a single item.

    Stripe fills in the session id placeholder itself when it redirects back,
    so the success URL must carry it verbatim.
    """
    return {
        'mode': 'payment',
        'line_items[0][price]': price_id,
        'line_items[0][quantity]': '1',
        'success_url': f'{origin}/claim?cs={SESSION_ID_PLACEHOLDER}',
        'cancel_url': f'{origin}/',
    }


def _is_redirectable(url: Optional[str]) -> bool:
    if not url:
        return False
    parts = urlsplit(url)
    return parts.scheme in ('http', 'https') and bool(parts.netloc)


async def initiate_checkout(ctx: ReaderContext, origin: str) -> CheckoutResult:
    params = build_checkout_params(origin, ctx.config.price_id)
    try:
        response = await ctx.payments.create_session(params)
    except UpstreamProviderError as exc:
        return CheckoutResult(error=CheckoutCreationError.from_upstream(exc))

    redirect_url = response.session.url if response.session else None
    if not response.ok or not _is_redirectable(redirect_url):
        logger.error('stripe checkout creation failed: status={} body={}',
                     response.status_code, response.payload)
        return CheckoutResult(error=CheckoutCreationError(
            provider_status=response.status_code,
            provider_payload=response.payload,
        ))

    logger.info('checkout session {} created', response.session.id)
    return CheckoutResult(redirect_url=redirect_url)


async def issue_credential(ctx: ReaderContext) -> Credential:
    token = mint_token()
    ttl = ctx.config.credential_ttl
    await ctx.credentials.put(token, CREDENTIAL_MARKER, ttl)
    return Credential(token=token, max_age=ttl)


async def redeem_checkout(ctx: ReaderContext, session_id: Optional[str]) -> RedemptionResult:
    """
    Exchange a checkout session id for a new credential.

    Redemptions are not deduplicated: every call for a paid session mints a
    distinct credential.
    """
    if not session_id:
        return RedemptionResult()

    try:
        response = await ctx.payments.retrieve_session(session_id)
    except UpstreamProviderError as exc:
        return RedemptionResult(error=exc)

    if not response.ok or response.session is None:
        logger.error('stripe lookup for checkout session {} failed: status={} body={}',
                     session_id, response.status_code, response.payload)
        return RedemptionResult(error=UpstreamProviderError(
            provider_status=response.status_code,
            provider_payload=response.payload,
        ))

    if not response.session.is_paid:
        logger.warning('checkout session {} not paid (payment_status={})',
                       session_id, response.session.payment_status)
        return RedemptionResult(error=PaymentUnverifiedError())

    credential = await issue_credential(ctx)
    logger.info('checkout session {} redeemed', session_id)
    return RedemptionResult(credential=credential)
