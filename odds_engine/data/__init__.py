"""
Data layer for the odds engine.

Provides single-flight refreshing of odds listings fetched from
external collaborators.
"""
from .refresh import SingleFlightRefresher

__all__ = [
    "SingleFlightRefresher",
]
