"""Textual status window."""
