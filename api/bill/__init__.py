"""Bill scanning route module."""
