import httpx
from django.test import SimpleTestCase

from ebook.errors import UpstreamProviderError
from ebook.payments import CheckoutSession, StripeCheckoutClient
from ebook.tests import StripeStub, json_response, session_payload


class CheckoutSessionTests(SimpleTestCase):
    def test_only_paid_counts(self):
        self.assertTrue(CheckoutSession(payment_status='paid').is_paid)
        self.assertFalse(CheckoutSession(payment_status='unpaid').is_paid)
        self.assertFalse(CheckoutSession().is_paid)

    def test_unknown_fields_are_kept(self):
        session = CheckoutSession.model_validate({'id': 'cs_1', 'amount_total': 900})

        self.assertEqual(session.id, 'cs_1')
        self.assertEqual(session.model_extra['amount_total'], 900)


class StripeCheckoutClientTests(SimpleTestCase):
    def _client(self, stripe: StripeStub, **kwargs) -> StripeCheckoutClient:
        return StripeCheckoutClient('sk_test_abc', transport=stripe.transport, **kwargs)

    async def test_create_session_posts_form(self):
        stripe = StripeStub(json_response(200, session_payload('cs_9')))

        response = await self._client(stripe).create_session({'mode': 'payment'})

        self.assertTrue(response.ok)
        self.assertEqual(response.session.id, 'cs_9')
        request = stripe.requests[0]
        self.assertEqual(request.method, 'POST')
        self.assertEqual(str(request.url), 'https://api.stripe.com/v1/checkout/sessions')
        self.assertEqual(request.headers['Content-Type'], 'application/x-www-form-urlencoded')
        self.assertEqual(request.content, b'mode=payment')

    async def test_retrieve_session_uses_configured_base(self):
        stripe = StripeStub(json_response(200, session_payload('cs_9', 'paid')))

        response = await self._client(stripe, api_base='http://stripe-mock:12111/').retrieve_session('cs_9')

        self.assertTrue(response.session.is_paid)
        request = stripe.requests[0]
        self.assertEqual(request.method, 'GET')
        self.assertEqual(str(request.url), 'http://stripe-mock:12111/v1/checkout/sessions/cs_9')
        self.assertEqual(request.headers['Authorization'], 'Bearer sk_test_abc')

    async def test_error_status_keeps_raw_body(self):
        stripe = StripeStub(lambda request: httpx.Response(500, content=b'upstream exploded'))

        response = await self._client(stripe).retrieve_session('cs_1')

        self.assertFalse(response.ok)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.payload, 'upstream exploded')
        self.assertIsNone(response.session)

    async def test_json_array_is_not_a_session(self):
        stripe = StripeStub(json_response(200, []))

        response = await self._client(stripe).retrieve_session('cs_1')

        self.assertIsNone(response.session)

    async def test_transport_error_raises(self):
        def unreachable(request):
            raise httpx.ReadTimeout('timed out', request=request)

        with self.assertRaises(UpstreamProviderError) as ctx:
            await self._client(StripeStub(unreachable)).retrieve_session('cs_1')

        self.assertIsNone(ctx.exception.provider_status)
        self.assertIn('unreachable', ctx.exception.message)

    async def test_missing_secret_key_raises_without_request(self):
        stripe = StripeStub(json_response(200, session_payload()))
        client = StripeCheckoutClient('', transport=stripe.transport)

        with self.assertRaises(UpstreamProviderError):
            await client.create_session({'mode': 'payment'})

        self.assertEqual(stripe.requests, [])
