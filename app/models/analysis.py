"""
文档分析记录模型模块 - SQLModel 版本

每个 (申请, 类型) 至多一条记录，状态 pending -> processing -> completed/failed，
重试时重新进入 processing
"""
from typing import Optional
from enum import Enum
from sqlmodel import Field, Column, JSON, UniqueConstraint

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse, parent_key


class AnalysisKind(str, Enum):
    """分析类型枚举"""
    CV = "cv"
    DISC = "disc"
    INTERVIEW = "interview"


class AnalysisStatus(str, Enum):
    """分析状态枚举"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# 可以被认领的状态；completed 允许重新分析（多轮面试）
CLAIMABLE_STATUSES = (
    AnalysisStatus.PENDING.value,
    AnalysisStatus.FAILED.value,
    AnalysisStatus.COMPLETED.value,
)


# ==================== 表模型 ====================

class AnalysisRecord(TimestampMixin, IDMixin, SQLModelBase, table=True):
    """文档分析记录表模型"""
    __tablename__ = "document_analyses"
    __table_args__ = (
        UniqueConstraint('application_id', 'kind', name='uq_document_analysis_application_kind'),
    )

    application_id: str = parent_key("applications.id", "应聘申请ID")
    kind: str = Field(..., max_length=20, description="分析类型")

    status: str = Field(AnalysisStatus.PENDING.value, index=True, description="分析状态")
    analysis: Optional[dict] = Field(default=None, sa_column=Column(JSON), description="结构化分析结果")
    summary: Optional[str] = Field(None, description="分析摘要")
    error_message: Optional[str] = Field(None, description="错误信息")

    input_ref: Optional[str] = Field(None, description="输入引用（文件地址或转录）")
    claim_token: Optional[str] = Field(None, description="当前认领令牌")

    def __repr__(self) -> str:
        return f"<AnalysisRecord(application_id={self.application_id}, kind={self.kind}, status={self.status})>"


# ==================== 请求 Schema ====================

class AnalysisRequest(SQLModelBase):
    """发起分析请求"""
    input_ref: Optional[str] = Field(None, description="输入引用，缺省时使用申请上的文档地址")
    actor_id: Optional[str] = Field(None, description="操作人ID")


# ==================== 响应 Schema ====================

class AnalysisRecordResponse(TimestampResponse):
    """文档分析记录响应"""
    application_id: str
    kind: str
    status: str
    analysis: Optional[dict] = None
    summary: Optional[str]
    error_message: Optional[str]
    input_ref: Optional[str]
