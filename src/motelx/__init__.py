"""
MotelX: поиск свободных номеров и оформление бронирований.
"""

__version__ = "0.1.0"
