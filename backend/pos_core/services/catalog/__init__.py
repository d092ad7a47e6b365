"""Read-only catalog lookups scoped by outlet."""
