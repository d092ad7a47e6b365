"""Domain services: pricing, orders, payments and catalog lookups."""
