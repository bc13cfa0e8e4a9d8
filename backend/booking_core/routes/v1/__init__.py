# backend/booking_core/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import availability, booking_requests, bookings, health, jobs, session_edit_requests

__all__ = [
    "availability",
    "booking_requests",
    "bookings",
    "health",
    "jobs",
    "session_edit_requests",
]
