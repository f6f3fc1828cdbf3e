"""Infrastructure persistence layer."""

from .database import Database
from .kv_store import SqlKeyValueStore
from .models import (
    Base,
    CategoryModel,
    ChapterModel,
    KeyValueModel,
    NovelCategoryModel,
    NovelModel,
)
from .repositories import SqlLibraryDatastore
from .retry import is_lock_error, with_db_retry

__all__ = [
    "Base",
    "CategoryModel",
    "ChapterModel",
    "Database",
    "KeyValueModel",
    "NovelCategoryModel",
    "NovelModel",
    "SqlKeyValueStore",
    "SqlLibraryDatastore",
    "is_lock_error",
    "with_db_retry",
]
