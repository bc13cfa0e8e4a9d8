# backend/booking_core/routes/__init__.py
"""HTTP route modules, grouped by API version."""
