"""
Access credentials: minting opaque tokens and keeping them in the
credential cache.
"""
import re
import secrets
from dataclasses import dataclass
from typing import Optional

from django.core.cache.backends.base import BaseCache

CREDENTIAL_TOKEN_BYTES = 24
CREDENTIAL_MARKER = 'ok'
TOKEN_PATTERN = re.compile(r'[A-Za-z0-9_-]+')


@dataclass(frozen=True)
class Credential:
    token: str
    max_age: int


def mint_token(nbytes: int = CREDENTIAL_TOKEN_BYTES) -> str:
    """Return a fresh URL-safe token built from ``nbytes`` random bytes."""
    return secrets.token_urlsafe(nbytes)


def is_well_formed(token: Optional[str]) -> bool:
    return bool(token) and TOKEN_PATTERN.fullmatch(token) is not None


class CredentialStore:
    """
    Token -> marker map backed by a Django cache.

    Presence of a key is the only thing that matters; expiry is left to the
    cache backend.
    """

    def __init__(self, cache: BaseCache):
        self.cache = cache

    async def get(self, token: str) -> Optional[str]:
        return await self.cache.aget(token)

    async def put(self, token: str, value: str, ttl: int) -> None:
        await self.cache.aset(token, value, timeout=ttl)
