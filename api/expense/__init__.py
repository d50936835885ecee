"""Expense route module."""
