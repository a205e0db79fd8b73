from .base import KeyValueStorage
from .json_storage import JsonFileStorage
from .memory_storage import MemoryStorage
from .sqlite_storage import SQLiteStorage

__all__ = ["KeyValueStorage", "JsonFileStorage", "MemoryStorage", "SQLiteStorage"]
