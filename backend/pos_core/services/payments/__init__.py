"""Payment reconciliation against order balances."""
