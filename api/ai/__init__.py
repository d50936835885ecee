"""AI spending insights route module."""
