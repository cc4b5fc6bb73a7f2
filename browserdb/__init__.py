"""Browsing history store: sites and visits in SQLite, kept consistent by the application."""

__version__ = "0.1.0"
