"""Income and expense entries (shared storage for the income and expense route modules)."""
