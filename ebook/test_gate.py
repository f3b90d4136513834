from django.test import SimpleTestCase

from ebook.content import COVER_KEY, page_key, resolve
from ebook.errors import AuthorizationError, ClientRequestError, NotFoundError, StoreUnavailableError
from ebook.gate import authorize, is_unlocked, parse_page_number, read_cover, read_page
from ebook.tests import (PNG_BYTES, TEST_PAGE_COUNT, UnreachableCache, UnreadableStorage, make_context,
                         make_page_storage)
from ebook.tokens import CREDENTIAL_MARKER, is_well_formed, mint_token


class TokenTests(SimpleTestCase):
    def test_minted_tokens_are_url_safe_and_long(self):
        tokens = {mint_token() for _ in range(50)}

        self.assertEqual(len(tokens), 50)
        for token in tokens:
            self.assertTrue(is_well_formed(token))
            self.assertGreaterEqual(len(token), 32)

    def test_well_formed(self):
        self.assertTrue(is_well_formed('abc_DEF-123'))
        for token in (None, '', 'has space', 'semi;colon', 'quote"', 'line\n', 'ünï'):
            with self.subTest(token=token):
                self.assertFalse(is_well_formed(token))


class AuthorizeTests(SimpleTestCase):
    def setUp(self) -> None:
        self.ctx = make_context()

    async def test_missing_token_is_denied(self):
        for token in (None, ''):
            decision = await authorize(self.ctx, token)
            self.assertFalse(decision.allowed)
            self.assertIsInstance(decision.error, AuthorizationError)
            self.assertEqual(decision.error.status_code, 401)

    async def test_unknown_token_is_denied(self):
        decision = await authorize(self.ctx, mint_token())

        self.assertFalse(decision.allowed)

    async def test_stored_token_is_allowed(self):
        token = mint_token()
        await self.ctx.credentials.put(token, CREDENTIAL_MARKER, 60)

        decision = await authorize(self.ctx, token)

        self.assertTrue(decision.allowed)
        self.assertIsNone(decision.error)
        self.assertTrue(await is_unlocked(self.ctx, token))

    async def test_any_stored_value_counts_as_presence(self):
        token = mint_token()
        await self.ctx.credentials.put(token, '', 60)

        self.assertTrue(await is_unlocked(self.ctx, token))

    async def test_unreachable_store_fails_closed(self):
        token = mint_token()
        await self.ctx.credentials.put(token, CREDENTIAL_MARKER, 60)
        self.ctx.credentials.cache = UnreachableCache()

        decision = await authorize(self.ctx, token)

        self.assertFalse(decision.allowed)
        self.assertIsInstance(decision.error, StoreUnavailableError)
        self.assertEqual(decision.error.status_code, 503)
        self.assertFalse(await is_unlocked(self.ctx, token))


class ParsePageNumberTests(SimpleTestCase):
    def test_accepts_range_bounds(self):
        self.assertEqual(parse_page_number('1', 10), 1)
        self.assertEqual(parse_page_number('10', 10), 10)
        self.assertEqual(parse_page_number('007', 10), 7)

    def test_long_zero_padding_is_accepted(self):
        self.assertEqual(parse_page_number('0' * 5000 + '7', 10), 7)

    def test_rejects_invalid_values(self):
        for raw in ('0', '-1', '11', 'abc', '', '1.5', '+3', ' 3', '3\n', '٣', '1e2', '9' * 5000):
            with self.subTest(raw=raw):
                with self.assertRaises(ClientRequestError):
                    parse_page_number(raw, 10)


class ReadPageTests(SimpleTestCase):
    def setUp(self) -> None:
        self.ctx = make_context(storage=make_page_storage(skip=(3,), with_cover=False))

    async def _token(self) -> str:
        token = mint_token()
        await self.ctx.credentials.put(token, CREDENTIAL_MARKER, 60)
        return token

    async def test_authorization_runs_before_range_check(self):
        result = await read_page(self.ctx, None, str(TEST_PAGE_COUNT + 1))

        self.assertIsInstance(result.error, AuthorizationError)

    async def test_out_of_range_with_valid_token(self):
        token = await self._token()

        result = await read_page(self.ctx, token, str(TEST_PAGE_COUNT + 1))

        self.assertIsInstance(result.error, ClientRequestError)

    async def test_reads_zero_padded_object(self):
        token = await self._token()

        result = await read_page(self.ctx, token, '12')

        self.assertTrue(result.ok)
        self.assertEqual(result.content, PNG_BYTES + b'12')

    async def test_missing_object_is_distinct_from_unauthorized(self):
        token = await self._token()

        result = await read_page(self.ctx, token, '3')

        self.assertIsInstance(result.error, NotFoundError)

    async def test_missing_cover(self):
        result = await read_cover(self.ctx)

        self.assertIsInstance(result.error, NotFoundError)

    async def test_unreadable_cover_is_unavailable(self):
        result = await read_cover(make_context(storage=UnreadableStorage()))

        self.assertIsInstance(result.error, StoreUnavailableError)


class ContentTests(SimpleTestCase):
    def test_page_keys_are_zero_padded(self):
        self.assertEqual(page_key(1), 'pages/0001.png')
        self.assertEqual(page_key(7), 'pages/0007.png')
        self.assertEqual(page_key(123), 'pages/0123.png')
        self.assertEqual(page_key(9999), 'pages/9999.png')

    async def test_resolve_reads_cover(self):
        ctx = make_context()

        result = await resolve(ctx.pages, COVER_KEY)

        self.assertEqual(result.content, PNG_BYTES + b'cover')
