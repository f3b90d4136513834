"""
Authorization gate for protected reads.

A credential is valid only while its token is present in the credential
store. Page numbers are checked strictly after authorization so that an
anonymous caller cannot learn the page count by probing.
"""
import re
from typing import Optional

from loguru import logger

from ebook.content import COVER_KEY, page_key, resolve
from ebook.context import ReaderContext
from ebook.errors import AuthorizationError, ClientRequestError, StoreUnavailableError
from ebook.results import AccessDecision, ContentResult
from ebook.tokens import is_well_formed

PAGE_NUMBER_PATTERN = re.compile(r'[0-9]+')


async def authorize(ctx: ReaderContext, token: Optional[str]) -> AccessDecision:
    if not is_well_formed(token):
        return AccessDecision(allowed=False, error=AuthorizationError())

    try:
        marker = await ctx.credentials.get(token)
    except Exception as exc:
        logger.exception('credential store lookup failed: {}', exc)
        return AccessDecision(allowed=False, error=StoreUnavailableError())

    if marker is None:
        logger.debug('unknown or expired credential presented')
        return AccessDecision(allowed=False, error=AuthorizationError())

    return AccessDecision(allowed=True)


async def is_unlocked(ctx: ReaderContext, token: Optional[str]) -> bool:
    decision = await authorize(ctx, token)
    return decision.allowed


def parse_page_number(raw: str, page_count: int) -> int:
    if not PAGE_NUMBER_PATTERN.fullmatch(raw or ''):
        raise ClientRequestError()
    # More digits than the page count is out of range; int() caps digit strings.
    if len(raw.lstrip('0')) > len(str(page_count)):
        raise ClientRequestError()
    number = int(raw.lstrip('0') or '0')
    if number < 1 or number > page_count:
        raise ClientRequestError()
    return number


async def read_page(ctx: ReaderContext, token: Optional[str], raw_number: str) -> ContentResult:
    decision = await authorize(ctx, token)
    if not decision.allowed:
        return ContentResult(error=decision.error)

    try:
        number = parse_page_number(raw_number, ctx.config.page_count)
    except ClientRequestError as exc:
        return ContentResult(error=exc)

    return await resolve(ctx.pages, page_key(number))


async def read_cover(ctx: ReaderContext) -> ContentResult:
    return await resolve(ctx.pages, COVER_KEY)
