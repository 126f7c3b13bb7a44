"""Storefront: accounts, product catalog and order placement over HTTP."""

__version__ = "1.0.0"
