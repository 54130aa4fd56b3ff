"""Server-side services."""
