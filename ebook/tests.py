import json
import re
import uuid
from typing import Callable, List, Optional
from unittest.mock import patch

import httpx
from django.core.cache.backends.locmem import LocMemCache
from django.core.files.base import ContentFile
from django.core.files.storage import InMemoryStorage
from django.test import SimpleTestCase
from django.urls import reverse

from ebook.content import ObjectStore
from ebook.context import ReaderConfig, ReaderContext
from ebook.payments import StripeCheckoutClient
from ebook.tokens import CREDENTIAL_MARKER, CredentialStore, mint_token

TEST_PAGE_COUNT = 12
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 16


class RecordingCredentialStore(CredentialStore):
    """Credential store that remembers every write."""

    def __init__(self, cache):
        super().__init__(cache)
        self.writes: List[tuple] = []

    async def put(self, token: str, value: str, ttl: int) -> None:
        self.writes.append((token, value, ttl))
        await super().put(token, value, ttl)


class StripeStub:
    """
    Scripted replacement for the Stripe API.

    ``responder`` receives each ``httpx.Request`` and returns an
    ``httpx.Response``; all requests are kept in ``requests``.
    """

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def session_payload(session_id: str = 'cs_test_1', payment_status: str = 'unpaid',
                    url: Optional[str] = 'https://checkout.stripe.com/c/pay/cs_test_1') -> dict:
    return {
        'id': session_id,
        'object': 'checkout.session',
        'status': 'complete' if payment_status == 'paid' else 'open',
        'payment_status': payment_status,
        'url': url,
    }


def json_response(status_code: int, payload) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, content=json.dumps(payload).encode())


def make_page_storage(page_count: int = TEST_PAGE_COUNT, with_cover: bool = True,
                      skip: tuple = ()) -> InMemoryStorage:
    storage = InMemoryStorage()
    for number in range(1, page_count + 1):
        if number in skip:
            continue
        storage.save(f'pages/{number:04d}.png', ContentFile(PNG_BYTES + str(number).encode()))
    if with_cover:
        storage.save('cover.png', ContentFile(PNG_BYTES + b'cover'))
    return storage


def make_context(stripe: Optional[StripeStub] = None, storage=None,
                 page_count: int = TEST_PAGE_COUNT, secret_key: str = 'sk_test_123') -> ReaderContext:
    cache = LocMemCache(f'test-credentials-{uuid.uuid4().hex}', {})
    return ReaderContext(
        config=ReaderConfig(
            title='The <Test> Book',
            price_id='price_123',
            page_count=page_count,
            credential_ttl=60 * 60 * 24 * 365,
        ),
        credentials=RecordingCredentialStore(cache),
        pages=ObjectStore(storage if storage is not None else make_page_storage(page_count)),
        payments=StripeCheckoutClient(
            secret_key=secret_key,
            transport=stripe.transport if stripe is not None else None,
        ),
    )


class UnreachableCache:
    """Cache double whose every call fails like a dropped Redis connection."""

    async def aget(self, key, default=None):
        raise ConnectionError('redis down')

    async def aset(self, key, value, timeout=None):
        raise ConnectionError('redis down')


class UnreadableStorage(InMemoryStorage):
    def open(self, name, mode='rb'):
        raise PermissionError(f'permission denied: {name}')


COOKIE = 'ebook_session'
ONE_YEAR = 31536000


class ReaderViewTestCase(SimpleTestCase):
    stripe_responder = staticmethod(json_response(200, session_payload()))

    def setUp(self) -> None:
        self.stripe = StripeStub(self.stripe_responder)
        self.ctx = self.make_context()
        patcher = patch('ebook.views.get_context', return_value=self.ctx)
        patcher.start()
        self.addCleanup(patcher.stop)

    def make_context(self):
        return make_context(stripe=self.stripe)

    async def grant(self) -> str:
        token = mint_token()
        await self.ctx.credentials.cache.aset(token, CREDENTIAL_MARKER, timeout=ONE_YEAR)
        self.async_client.cookies[COOKIE] = token
        return token


class ReaderShellTests(ReaderViewTestCase):
    async def test_locked_shell_without_cookie(self):
        response = await self.async_client.get('/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'text/html; charset=utf-8')
        body = response.content.decode()
        self.assertIn('Buy & Unlock', body)
        self.assertIn('href="/buy"', body)
        self.assertNotIn('const total', body)

    async def test_unknown_token_renders_locked_shell(self):
        self.async_client.cookies[COOKIE] = mint_token()

        response = await self.async_client.get('/')

        self.assertEqual(response.status_code, 200)
        self.assertIn('Buy & Unlock', response.content.decode())

    async def test_unlocked_shell_with_valid_cookie(self):
        await self.grant()

        response = await self.async_client.get('/')

        self.assertEqual(response.status_code, 200)
        body = response.content.decode()
        self.assertIn(f'const total = {TEST_PAGE_COUNT};', body)
        self.assertNotIn('Buy & Unlock', body)

    async def test_title_is_escaped(self):
        response = await self.async_client.get('/')

        self.assertIn('The &lt;Test&gt; Book', response.content.decode())

    async def test_post_is_not_allowed(self):
        response = await self.async_client.post('/')

        self.assertEqual(response.status_code, 405)


class BuyTests(ReaderViewTestCase):
    async def test_redirects_to_checkout(self):
        response = await self.async_client.get(reverse('ebook:buy'))

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], 'https://checkout.stripe.com/c/pay/cs_test_1')
        request = self.stripe.requests[0]
        self.assertEqual(request.method, 'POST')
        self.assertIn(b'success_url=http%3A%2F%2Ftestserver%2Fclaim%3Fcs%3D%7BCHECKOUT_SESSION_ID%7D',
                      request.content)

    async def test_provider_error_returns_500_with_escaped_payload(self):
        self.stripe.responder = json_response(400, {'error': {'message': '<No such price>'}})

        response = await self.async_client.get(reverse('ebook:buy'))

        self.assertEqual(response.status_code, 500)
        self.assertNotIn('Location', response)
        body = response.content.decode()
        self.assertIn('Provider status: 400', body)
        self.assertIn('&lt;No such price&gt;', body)
        self.assertNotIn('<No such price>', body)


class ClaimTests(ReaderViewTestCase):
    async def test_missing_session_id_redirects_home(self):
        response = await self.async_client.get(reverse('ebook:claim'))

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], '/')
        self.assertNotIn(COOKIE, response.cookies)
        self.assertEqual(self.stripe.requests, [])

    async def test_unpaid_session_is_rejected(self):
        self.stripe.responder = json_response(200, session_payload('sess_123', 'open'))

        response = await self.async_client.get('/claim?cs=sess_123')

        self.assertEqual(response.status_code, 402)
        self.assertNotIn(COOKIE, response.cookies)
        self.assertEqual(self.ctx.credentials.writes, [])

    async def test_paid_session_issues_cookie(self):
        self.stripe.responder = json_response(200, session_payload('sess_456', 'paid'))

        response = await self.async_client.get('/claim?cs=sess_456')

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], '/')
        cookie = response.cookies[COOKIE]
        self.assertRegex(cookie.value, r'^[A-Za-z0-9_-]{32,}$')
        self.assertEqual(int(cookie['max-age']), ONE_YEAR)
        self.assertTrue(cookie['httponly'])
        self.assertTrue(cookie['secure'])
        self.assertEqual(cookie['samesite'], 'Lax')
        self.assertEqual(cookie['path'], '/')
        self.assertIn('Max-Age=31536000', cookie.output())
        self.assertEqual(len(self.ctx.credentials.writes), 1)
        self.assertEqual(self.stripe.requests[0].url.path, '/v1/checkout/sessions/sess_456')

    async def test_issued_cookie_unlocks_pages(self):
        self.stripe.responder = json_response(200, session_payload('sess_456', 'paid'))
        claimed = await self.async_client.get('/claim?cs=sess_456')
        self.async_client.cookies[COOKIE] = claimed.cookies[COOKIE].value

        response = await self.async_client.get('/page/1')

        self.assertEqual(response.status_code, 200)

    async def test_provider_failure_is_bad_gateway(self):
        self.stripe.responder = json_response(404, {'error': {'message': 'No such checkout.session'}})

        response = await self.async_client.get('/claim?cs=bogus')

        self.assertEqual(response.status_code, 502)
        self.assertIn('No such checkout.session', response.content.decode())
        self.assertEqual(self.ctx.credentials.writes, [])

    async def test_transport_failure_is_bad_gateway(self):
        def unreachable(request):
            raise httpx.ConnectError('connection refused', request=request)

        self.stripe.responder = unreachable

        response = await self.async_client.get('/claim?cs=sess_1')

        self.assertEqual(response.status_code, 502)
        self.assertNotIn(COOKIE, response.cookies)


class PageTests(ReaderViewTestCase):
    def make_context(self):
        return make_context(stripe=self.stripe, storage=make_page_storage(skip=(5,)))

    async def test_valid_page_is_served_privately(self):
        await self.grant()

        response = await self.async_client.get('/page/7')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'image/png')
        self.assertEqual(response.content, PNG_BYTES + b'7')
        cache_control = response['Cache-Control']
        self.assertIn('private', cache_control)
        self.assertIn('max-age=3600', cache_control)

    async def test_every_page_in_range_is_served(self):
        await self.grant()

        for number in range(1, TEST_PAGE_COUNT + 1):
            if number == 5:
                continue
            with self.subTest(number=number):
                response = await self.async_client.get(f'/page/{number}')
                self.assertEqual(response.status_code, 200)
                self.assertEqual(response.content, PNG_BYTES + str(number).encode())

    async def test_anonymous_requests_never_see_404(self):
        for raw in ('1', '0', '-1', 'abc', str(TEST_PAGE_COUNT + 1), '', '99999', '9' * 5000):
            with self.subTest(raw=raw):
                response = await self.async_client.get(f'/page/{raw}')
                self.assertEqual(response.status_code, 401)

    async def test_unknown_token_is_unauthorized(self):
        self.async_client.cookies[COOKIE] = mint_token()

        response = await self.async_client.get('/page/1')

        self.assertEqual(response.status_code, 401)

    async def test_malformed_token_is_unauthorized(self):
        self.async_client.cookies[COOKIE] = 'not a token!'

        response = await self.async_client.get('/page/1')

        self.assertEqual(response.status_code, 401)

    async def test_out_of_range_pages_are_not_found(self):
        await self.grant()

        for raw in ('0', '-1', 'abc', '1.5', str(TEST_PAGE_COUNT + 1), '', '9' * 5000):
            with self.subTest(raw=raw):
                response = await self.async_client.get(f'/page/{raw}')
                self.assertEqual(response.status_code, 404)
                self.assertIn('No such page', response.content.decode())

    async def test_missing_object_is_not_found(self):
        await self.grant()

        response = await self.async_client.get('/page/5')

        self.assertEqual(response.status_code, 404)
        self.assertIn('Missing', response.content.decode())


class CoverTests(ReaderViewTestCase):
    async def test_cover_is_public(self):
        response = await self.async_client.get(reverse('ebook:cover'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'image/png')
        self.assertTrue(re.search(r'\bpublic\b', response['Cache-Control']))

    async def test_missing_cover_is_not_found(self):
        self.ctx.pages.storage.delete('cover.png')

        response = await self.async_client.get(reverse('ebook:cover'))

        self.assertEqual(response.status_code, 404)


class StoreOutageTests(ReaderViewTestCase):
    async def test_reader_falls_back_to_locked_shell(self):
        await self.grant()
        self.ctx.credentials.cache = UnreachableCache()

        response = await self.async_client.get('/')

        self.assertEqual(response.status_code, 200)
        body = response.content.decode()
        self.assertIn('Buy & Unlock', body)
        self.assertNotIn('const total', body)

    async def test_page_read_is_service_unavailable(self):
        await self.grant()
        self.ctx.credentials.cache = UnreachableCache()

        response = await self.async_client.get('/page/1')

        self.assertEqual(response.status_code, 503)
        self.assertNotEqual(response['Content-Type'], 'image/png')

    async def test_unreadable_page_is_service_unavailable(self):
        await self.grant()
        self.ctx.pages.storage = UnreadableStorage()

        response = await self.async_client.get('/page/1')

        self.assertEqual(response.status_code, 503)

    async def test_unreadable_cover_is_service_unavailable(self):
        self.ctx.pages.storage = UnreadableStorage()

        response = await self.async_client.get(reverse('ebook:cover'))

        self.assertEqual(response.status_code, 503)
