import asyncio
import unittest

import httpx
from fastapi.testclient import TestClient

from portal_backend.app import create_app
from portal_backend.config import Settings
from portal_backend.dependencies import ServiceContext, get_context
from portal_backend.geoblock import CountryLocator


class FakeLocator:
    def __init__(self, countries, error=None):
        self.countries = countries
        self.error = error
        self.lookups = []

    async def country_for(self, ip):
        self.lookups.append(ip)
        if self.error:
            raise self.error
        return self.countries.get(ip)


class GeoBlockMiddlewareTests(unittest.TestCase):
    def setUp(self):
        settings = Settings(
            use_in_memory_backends=True,
            geo_block_enabled=True,
            geo_trusted_ips=["203.0.113.9"],
        )
        self.app = create_app(settings)
        context = ServiceContext.from_settings(settings)
        self.app.dependency_overrides[get_context] = lambda: context
        self.locator = FakeLocator({"198.51.100.7": "PK", "192.0.2.1": "DE"})
        self.app.state.geo_locator = self.locator
        self.client = TestClient(self.app, follow_redirects=False)

    def get(self, path, ip):
        return self.client.get(path, headers={"X-Forwarded-For": f"{ip}, 10.0.0.1"})

    def test_denylisted_country_is_redirected(self):
        response = self.get("/api/faqs/get", "198.51.100.7")
        self.assertEqual(response.status_code, 307)
        self.assertEqual(response.headers["location"], "/blocked")

    def test_other_countries_pass(self):
        response = self.get("/api/faqs/get", "192.0.2.1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.locator.lookups, ["192.0.2.1"])

    def test_trusted_ip_skips_lookup(self):
        response = self.get("/api/faqs/get", "203.0.113.9")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.locator.lookups, [])

    def test_blocked_page_is_never_filtered(self):
        response = self.get("/blocked", "198.51.100.7")
        self.assertNotEqual(response.status_code, 307)
        self.assertEqual(self.locator.lookups, [])

    def test_lookup_failure_fails_open(self):
        self.locator.error = httpx.ConnectError("lookup service down")
        response = self.get("/api/faqs/get", "198.51.100.7")
        self.assertEqual(response.status_code, 200)

    def test_unexpected_lookup_error_fails_open(self):
        self.locator.error = RuntimeError("malformed lookup response")
        response = self.get("/api/faqs/get", "198.51.100.7")
        self.assertEqual(response.status_code, 200)

    def test_non_object_lookup_bodies_fail_open(self):
        for body in (b"null", b'["x"]'):
            self.app.state.geo_locator = CountryLocator(
                "https://geo.test/{ip}/json/",
                transport=httpx.MockTransport(
                    lambda request, body=body: httpx.Response(200, content=body)
                ),
            )
            response = self.get("/api/faqs/get", "198.51.100.7")
            self.assertEqual(response.status_code, 200, body)

    def test_unusable_forwarded_address_fails_open(self):
        self.app.state.geo_locator = CountryLocator(
            "https://{ip}/json/",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        response = self.get("/api/faqs/get", "[not-an-ip")
        self.assertEqual(response.status_code, 200)

    def test_disabled_by_default(self):
        app = create_app(Settings(use_in_memory_backends=True))
        self.assertFalse(hasattr(app.state, "geo_locator"))


class CountryLocatorTests(unittest.TestCase):
    def test_reads_country_code(self):
        def handler(request):
            self.assertEqual(str(request.url), "https://geo.test/198.51.100.7/json/")
            return httpx.Response(200, json={"country_code": "PK", "country": "PK"})

        locator = CountryLocator(
            "https://geo.test/{ip}/json/", transport=httpx.MockTransport(handler)
        )
        self.assertEqual(asyncio.run(locator.country_for("198.51.100.7")), "PK")

    def test_non_object_body_has_no_country(self):
        locator = CountryLocator(
            "https://geo.test/{ip}/json/",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, content=b"null")
            ),
        )
        self.assertIsNone(asyncio.run(locator.country_for("192.0.2.1")))

    def test_http_errors_propagate(self):
        locator = CountryLocator(
            "https://geo.test/{ip}/json/",
            transport=httpx.MockTransport(lambda request: httpx.Response(429)),
        )
        with self.assertRaises(httpx.HTTPStatusError):
            asyncio.run(locator.country_for("192.0.2.1"))


if __name__ == "__main__":
    unittest.main()
