"""Money helpers and the pricing engine."""
