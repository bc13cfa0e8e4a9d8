"""Booking reservation and slot-conflict engine."""

__version__ = "0.1.0"
