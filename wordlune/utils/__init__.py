"""
Utility modules for WordLune.
"""

from .settings import UserSettings

__all__ = ['UserSettings']
