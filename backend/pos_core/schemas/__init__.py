"""Pydantic command models validated at the edge of the core."""
