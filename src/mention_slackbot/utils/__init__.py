"""Shared helpers for dates, URLs and text."""
