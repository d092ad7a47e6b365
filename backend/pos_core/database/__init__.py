"""
Database package initialization.

The package follows a modular structure:
- base: declarative base and column mixins
- connection: engine, session factory and unit-of-work handling
- models: ORM models for orders, payments and the read-only catalog
"""

__all__ = []
