"""Income route module."""
