"""Authentication: registration, login, token refresh, current user."""
