"""Pancitos DevC Messenger webhook."""

__version__ = "0.1.0"
