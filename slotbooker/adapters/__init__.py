"""
Adapters layer - Storage collaborators.
"""

from .memory_storage import InMemoryStorage

__all__ = ["InMemoryStorage"]
