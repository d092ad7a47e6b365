"""
Order and payment core of a point-of-sale backend.

Prices carts into orders, drives orders and their line items through the
kitchen lifecycle, and reconciles payments against order balances.
"""

__version__ = "1.0.0"
