from django.test import SimpleTestCase
from django.urls import resolve, reverse

from ebook import views
from ebook.urls import urlpatterns


class CanonicalHostTests(SimpleTestCase):
    def test_www_redirects_to_bare_host(self):
        response = self.client.get('/page/3?t=1', headers={'host': 'www.book.example'})

        self.assertEqual(response.status_code, 301)
        self.assertEqual(response['Location'], 'http://book.example/page/3?t=1')

    async def test_www_redirect_on_async_stack(self):
        response = await self.async_client.get('/claim?cs=cs_1', headers={'host': 'www.book.example'})

        self.assertEqual(response.status_code, 301)
        self.assertEqual(response['Location'], 'http://book.example/claim?cs=cs_1')

    def test_bare_host_passes_through(self):
        response = self.client.get('/healthz', headers={'host': 'book.example'})

        self.assertEqual(response.status_code, 200)


class HealthTests(SimpleTestCase):
    def test_health(self):
        response = self.client.get(reverse('health'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'status': 'ok'})


class RouteTableTests(SimpleTestCase):
    def test_route_set(self):
        self.assertEqual(
            [pattern.name for pattern in urlpatterns],
            ['reader', 'buy', 'claim', 'page', 'cover'],
        )

    def test_paths_resolve_to_views(self):
        cases = {
            '/': views.reader,
            '/buy': views.buy,
            '/claim': views.claim,
            '/page/12': views.page,
            '/page/not-a-number': views.page,
            '/page/': views.page,
            '/cover.png': views.cover,
        }
        for path, view in cases.items():
            with self.subTest(path=path):
                self.assertIs(resolve(path).func, view)

    def test_page_number_is_passed_raw(self):
        self.assertEqual(resolve('/page/-4').kwargs, {'number': '-4'})

    def test_unknown_path_is_not_found(self):
        response = self.client.get('/admin/')

        self.assertEqual(response.status_code, 404)
