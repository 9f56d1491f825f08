"""CLI module for Acheron."""
