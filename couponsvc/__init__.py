"""Coupon campaign service: SQLite storage, a JSON-over-HTTP server and client, and a load-testing command."""

__version__ = "0.1.0"