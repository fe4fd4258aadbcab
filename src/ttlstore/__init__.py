"""
ttlstore
Expiring JSON values on top of a synchronous string key-value store
"""

from .backends import BackingStore, MemoryStorage, SQLiteStorage, StorageError, QuotaExceededError
from .cache import TTLCache, MISSING, create_storage
from .config import StorageConfig, load_config

__all__ = [
    'TTLCache', 'MISSING', 'create_storage',
    'BackingStore', 'MemoryStorage', 'SQLiteStorage',
    'StorageError', 'QuotaExceededError',
    'StorageConfig', 'load_config',
]
