"""
岗位模型模块 - SQLModel 版本

合并了 Model 和 Schema，减少代码重复
"""
from enum import Enum
from typing import Optional, List
from sqlmodel import Field, Column, JSON

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse


class JobStatus(str, Enum):
    """岗位状态枚举"""
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


# ==================== 基础字段定义 ====================

class JobBase(SQLModelBase):
    """岗位基础字段 - 用于创建和继承"""
    title: str = Field(..., min_length=1, max_length=100, description="岗位名称", index=True)
    department: Optional[str] = Field(None, max_length=100, description="所属部门")
    description: Optional[str] = Field(None, description="岗位描述/JD")
    requirements: List[str] = Field(default_factory=list, sa_column=Column(JSON), description="任职要求")
    responsibilities: List[str] = Field(default_factory=list, sa_column=Column(JSON), description="岗位职责")


# ==================== 表模型 ====================

class Job(JobBase, TimestampMixin, IDMixin, table=True):
    """岗位表模型"""
    __tablename__ = "jobs"

    status: str = Field(default=JobStatus.DRAFT.value, index=True, description="岗位状态")

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, title={self.title})>"


# ==================== 请求 Schema ====================

class JobCreate(JobBase):
    """创建岗位请求"""
    status: JobStatus = JobStatus.DRAFT


class JobUpdate(SQLModelBase):
    """更新岗位请求 - 所有字段可选"""
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    requirements: Optional[List[str]] = None
    responsibilities: Optional[List[str]] = None
    status: Optional[JobStatus] = None


# ==================== 响应 Schema ====================

class JobResponse(TimestampResponse):
    """岗位详情响应"""
    title: str
    department: Optional[str]
    description: Optional[str]
    requirements: List[str]
    responsibilities: List[str]
    status: str
    application_count: int = Field(0, description="申请数量")
