# src/underkover/api/__init__.py
"""HTTP API package."""
