"""Outbound webhook delivery for QR code lifecycle events."""

__version__ = "0.1.0"
