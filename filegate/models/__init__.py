"""
数据模型模块
"""

from .filestore import (
    CACHE_CONTROL,
    StoredObject,
    FolderSummary,
)

__all__ = [
    "CACHE_CONTROL",
    "StoredObject",
    "FolderSummary",
]
