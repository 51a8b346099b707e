"""
Command-line interface for rrnaspecies.
"""

__all__ = ["main", "utils"]
