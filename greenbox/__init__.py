"""Greenbox storefront checkout: cart, pricing and checkout state machine."""

__version__ = "1.0.0"
