import os
import unittest
from unittest.mock import patch

from portal_backend.config import Settings


class SettingsTests(unittest.TestCase):
    def test_default_locations_use_tenant_suffix(self):
        settings = Settings(tenant="mimecode")
        self.assertEqual(settings.resolve_location("faqs"), "faqs-mimecode")
        self.assertEqual(settings.resolve_location("store_faqs"), "storeFaqs-mimecode")
        self.assertEqual(
            settings.resolve_location("email_settings"), "emailSettings-mimecode"
        )
        self.assertEqual(settings.resolve_location("news"), "news")

    def test_page_entities_have_default_locations(self):
        settings = Settings(tenant="mimecode")
        self.assertEqual(
            settings.resolve_location("terms"), "termsAndConditions-mimecode"
        )
        self.assertEqual(settings.resolve_location("page_settings"), "page_settings")
        self.assertEqual(
            Settings(page_settings_table="site_pages").resolve_location("page_settings"),
            "site_pages",
        )

    def test_override_wins_over_configuration(self):
        settings = Settings(logos_collection="logos-configured")
        self.assertEqual(settings.resolve_location("logos"), "logos-configured")
        self.assertEqual(settings.resolve_location("logos", "logos-once"), "logos-once")

    def test_public_env_names_are_accepted(self):
        env = {"NEXT_PUBLIC_BANNERS_COLLECTION": "banners-public"}
        with patch.dict(os.environ, env):
            settings = Settings()
        self.assertEqual(settings.resolve_location("banners"), "banners-public")

    def test_unknown_entity(self):
        with self.assertRaises(KeyError):
            Settings().resolve_location("coupons")


if __name__ == "__main__":
    unittest.main()
