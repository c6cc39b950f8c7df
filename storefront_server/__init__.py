"""Storefront cart, payment validation and checkout, served over MCP and HTTP."""

__version__ = "0.1.0"
