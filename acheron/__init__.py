"""
Acheron - personal assistant chat bot.
"""

__version__ = "3.0.0"
__logo__ = "⚡"
