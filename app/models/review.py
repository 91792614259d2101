"""
审阅进度模型模块 - SQLModel 版本
"""
from datetime import datetime
from typing import Optional
from enum import Enum
from sqlmodel import Field

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse, parent_key


class ReviewSection(str, Enum):
    """审阅项枚举，值即表中布尔列名"""
    AI_ANALYSIS = "ai_analysis_reviewed"
    CV_ANALYSIS = "cv_analysis_reviewed"
    DISC_ANALYSIS = "disc_analysis_reviewed"
    BUSINESS_CASE = "business_case_reviewed"


# ==================== 表模型 ====================

class ReviewProgress(TimestampMixin, IDMixin, SQLModelBase, table=True):
    """审阅进度表模型"""
    __tablename__ = "review_progress"

    application_id: str = parent_key("applications.id", "应聘申请ID", unique=True)

    ai_analysis_reviewed: bool = Field(False, description="AI 评估已审阅")
    ai_analysis_reviewed_by: Optional[str] = None
    ai_analysis_reviewed_at: Optional[datetime] = None

    cv_analysis_reviewed: bool = Field(False, description="简历分析已审阅")
    cv_analysis_reviewed_by: Optional[str] = None
    cv_analysis_reviewed_at: Optional[datetime] = None

    disc_analysis_reviewed: bool = Field(False, description="DISC 分析已审阅")
    disc_analysis_reviewed_by: Optional[str] = None
    disc_analysis_reviewed_at: Optional[datetime] = None

    business_case_reviewed: bool = Field(False, description="商业案例已审阅")
    business_case_reviewed_by: Optional[str] = None
    business_case_reviewed_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"<ReviewProgress(application_id={self.application_id})>"


# ==================== 请求 Schema ====================

class ReviewSectionUpdate(SQLModelBase):
    """设置单个审阅项"""
    section: ReviewSection
    reviewed: bool = True
    actor_id: str = Field(..., min_length=1, description="操作人ID")


class ReviewCompleteRequest(SQLModelBase):
    """手动完成审阅"""
    actor_id: str = Field(..., min_length=1, description="操作人ID")
    manual_override: bool = Field(False, description="跳过四项审阅检查")


# ==================== 响应 Schema ====================

class ReviewProgressResponse(TimestampResponse):
    """审阅进度响应"""
    application_id: str
    ai_analysis_reviewed: bool
    ai_analysis_reviewed_by: Optional[str]
    ai_analysis_reviewed_at: Optional[datetime]
    cv_analysis_reviewed: bool
    cv_analysis_reviewed_by: Optional[str]
    cv_analysis_reviewed_at: Optional[datetime]
    disc_analysis_reviewed: bool
    disc_analysis_reviewed_by: Optional[str]
    disc_analysis_reviewed_at: Optional[datetime]
    business_case_reviewed: bool
    business_case_reviewed_by: Optional[str]
    business_case_reviewed_at: Optional[datetime]
