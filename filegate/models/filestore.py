"""
文件存储相关模型

每次请求从文件系统属性构建，不在请求之间保留
"""

from datetime import datetime
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field

# 文件读取/元数据响应的缓存指令（一年）
CACHE_CONTROL = "public, max-age=31536000"


class StoredObject(BaseModel):
    """
    磁盘上的一个文件

    路径仅供传输层发送文件内容，不出现在响应体中
    """

    model_config = ConfigDict(frozen=True)

    folder: str = Field(..., min_length=1, description="所在文件夹")
    name: str = Field(..., min_length=1, description="文件名")
    path: Path = Field(..., exclude=True, description="解析后的绝对路径")
    size_bytes: int = Field(..., ge=0, description="文件大小（字节）")
    modified_at: datetime = Field(..., description="最后修改时间（UTC）")
    created_at: datetime = Field(..., description="创建时间（UTC）")
    cache_control: str = Field(default=CACHE_CONTROL, description="缓存指令")

    def __str__(self) -> str:
        return f"{self.folder}/{self.name}"


class FolderSummary(BaseModel):
    """文件夹概要：直接子项名称与直接子文件总大小"""

    model_config = ConfigDict(frozen=True)

    folder: str = Field(..., min_length=1, description="文件夹名")
    entries: List[str] = Field(default_factory=list, description="直接子项名称（已排序）")
    total_size_bytes: int = Field(default=0, ge=0, description="直接子文件大小之和")
