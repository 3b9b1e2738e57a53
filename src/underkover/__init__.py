"""Underkover: anonymous, ephemeral social feed API."""

__version__ = "0.1.0"
