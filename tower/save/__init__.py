"""
Save module - run persistence.
"""

from tower.save.manager import SaveManager, SaveEvent, SaveMetadata

__all__ = [
    "SaveManager",
    "SaveEvent",
    "SaveMetadata",
]
