"""Dashboard summary route module."""
