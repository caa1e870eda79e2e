"""
Key-value store providers.
"""

from .memory_store import MemoryStore
from .json_file_store import JSONFileStore

__all__ = ['MemoryStore', 'JSONFileStore']
