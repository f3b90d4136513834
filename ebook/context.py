"""
Everything a request handler needs, bundled once at startup and passed
explicitly into the gateway and the gate.
"""
from dataclasses import dataclass

from django.apps import apps
from django.conf import settings
from django.core.cache import caches
from django.core.files.storage import storages

from ebook.content import ObjectStore
from ebook.payments import StripeCheckoutClient
from ebook.tokens import CredentialStore


@dataclass(frozen=True)
class ReaderConfig:
    title: str
    price_id: str
    page_count: int
    credential_ttl: int
    cookie_name: str = 'ebook_session'


@dataclass(frozen=True)
class ReaderContext:
    config: ReaderConfig
    credentials: CredentialStore
    pages: ObjectStore
    payments: StripeCheckoutClient


def load_config() -> ReaderConfig:
    return ReaderConfig(
        title=settings.EBOOK_TITLE,
        price_id=settings.EBOOK_PRICE_ID,
        page_count=int(settings.EBOOK_PAGE_COUNT),
        credential_ttl=int(settings.EBOOK_CREDENTIAL_TTL_SECONDS),
        cookie_name=settings.EBOOK_SESSION_COOKIE,
    )


def build_context() -> ReaderContext:
    return ReaderContext(
        config=load_config(),
        credentials=CredentialStore(caches['credentials']),
        pages=ObjectStore(storages['ebook']),
        payments=StripeCheckoutClient(
            secret_key=settings.STRIPE_SECRET_KEY,
            api_base=settings.STRIPE_API_BASE,
        ),
    )


def get_context() -> ReaderContext:
    return apps.get_app_config('ebook').context
