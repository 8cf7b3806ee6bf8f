"""Adapters for collaborators outside the financial core."""
