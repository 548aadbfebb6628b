"""Client-side feed personalization: choose catalog items, learn from clicks."""

__version__ = "0.1.0"
