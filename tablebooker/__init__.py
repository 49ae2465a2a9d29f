"""
tablebooker - browse restaurant tables and book time slots.
"""

__version__ = "0.1.0"
