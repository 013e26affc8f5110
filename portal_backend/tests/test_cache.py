import unittest

from portal_backend.cache import KeyedCache, TimedCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TimedCacheTests(unittest.TestCase):
    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = TimedCache(ttl_seconds=300, clock=clock)
        self.assertIsNone(cache.get())

        cache.set({"email1": "a@x.com"})
        clock.now = 299.9
        self.assertEqual(cache.get(), {"email1": "a@x.com"})

        clock.now = 300.0
        self.assertIsNone(cache.get())

    def test_clear(self):
        cache = TimedCache(clock=FakeClock())
        cache.set("payload")
        cache.clear()
        self.assertIsNone(cache.get())


class KeyedCacheTests(unittest.TestCase):
    def test_single_slot_keyed_by_location(self):
        clock = FakeClock()
        cache = KeyedCache(clock=clock)
        clock.now = 42.0
        cache.set(["banner"], "banners-mimecode")

        self.assertEqual(cache.get("banners-mimecode"), ["banner"])
        self.assertIsNone(cache.get("banners-other"))
        self.assertEqual(cache.key, "banners-mimecode")
        self.assertEqual(cache.timestamp, 42.0)

        cache.set(["other"], "banners-other")
        self.assertIsNone(cache.get("banners-mimecode"))

    def test_empty_listing_is_cached(self):
        cache = KeyedCache()
        cache.set([], "banners-mimecode")
        self.assertEqual(cache.get("banners-mimecode"), [])

    def test_clear(self):
        cache = KeyedCache()
        cache.set(["banner"], "banners-mimecode")
        cache.clear()
        self.assertIsNone(cache.get("banners-mimecode"))
        self.assertEqual(cache.key, "")


if __name__ == "__main__":
    unittest.main()
