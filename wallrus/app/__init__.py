"""Toolkit-neutral preview and export scheduling."""
