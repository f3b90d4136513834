"""
Thin client for Stripe Checkout Sessions.

Only two calls are needed: create a session and fetch one by id. Responses are
handed back with their status code and raw body so callers can decide what a
failure means; nothing here retries.
"""
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from ebook.errors import UpstreamProviderError

CHECKOUT_SESSIONS_PATH = '/v1/checkout/sessions'
SESSION_ID_PLACEHOLDER = '{CHECKOUT_SESSION_ID}'
PAID = 'paid'


class CheckoutSession(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: Optional[str] = None
    url: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID


@dataclass(frozen=True)
class ProviderResponse:
    status_code: int
    payload: str
    session: Optional[CheckoutSession] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _parse_session(body: str) -> Optional[CheckoutSession]:
    try:
        return CheckoutSession.model_validate_json(body)
    except ValidationError as exc:
        logger.debug('provider body is not a checkout session: {}', exc)
        return None


class StripeCheckoutClient:
    def __init__(
        self,
        secret_key: str,
        api_base: str = 'https://api.stripe.com',
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.api_base = api_base.rstrip('/')
        self.transport = transport

    async def create_session(self, params: Dict[str, str]) -> ProviderResponse:
        return await self._request('POST', CHECKOUT_SESSIONS_PATH, data=params)

    async def retrieve_session(self, session_id: str) -> ProviderResponse:
        path = f"{CHECKOUT_SESSIONS_PATH}/{quote(session_id, safe='')}"
        return await self._request('GET', path)

    async def _request(self, method: str, path: str, data: Optional[Dict[str, str]] = None) -> ProviderResponse:
        if not self.secret_key:
            raise UpstreamProviderError('STRIPE_SECRET_KEY is not configured.')

        try:
            async with httpx.AsyncClient(
                base_url=self.api_base,
                headers={'Authorization': f'Bearer {self.secret_key}'},
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, data=data)
        except httpx.HTTPError as exc:
            logger.error('stripe {} {} failed: {}', method, path, exc)
            raise UpstreamProviderError(
                f'Payment provider unreachable: {exc}') from exc

        body = response.text
        logger.debug('stripe {} {} -> {}', method, path, response.status_code)
        return ProviderResponse(
            status_code=response.status_code,
            payload=body,
            session=_parse_session(body),
        )
