"""Utility functions for Acheron."""

from acheron.utils.logging import setup_logging

__all__ = ["setup_logging"]
