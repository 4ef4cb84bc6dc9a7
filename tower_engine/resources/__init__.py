"""
Resources module - static game data loading.
"""

from tower_engine.resources.database import Database

__all__ = ["Database"]
