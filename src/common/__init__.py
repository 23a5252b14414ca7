"""Shared helpers: logging and filesystem locations."""
