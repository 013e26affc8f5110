"""
Content backend for the portal website.

This package provides a FastAPI application exposing CRUD routes for the
site's editorial content (banners, categories, news, events, FAQs, logos,
store FAQs, regions, privacy policy and email settings), backed by MongoDB,
Firestore and Supabase record stores.
"""
