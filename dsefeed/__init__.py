"""Dhaka Stock Exchange market feed: scraping, normalization and a JSON API."""

__version__ = "1.0.0"
