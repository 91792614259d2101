"""
面试安排模型模块 - SQLModel 版本

Interview 可变；InterviewHistoryEntry 只追加，不更新不删除
"""
from datetime import datetime
from typing import Optional
from enum import Enum
from sqlmodel import Field

from .base import SQLModelBase, TimestampMixin, AppendOnlyMixin, IDMixin, TimestampResponse, parent_key


class InterviewStatus(str, Enum):
    """面试状态枚举"""
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


CLOSED_INTERVIEW_STATUSES = frozenset({InterviewStatus.CANCELLED.value, InterviewStatus.COMPLETED.value})


class InterviewType(str, Enum):
    """面试形式枚举"""
    PHONE = "phone"
    VIDEO = "video"
    IN_PERSON = "in_person"


# ==================== 表模型 ====================

class Interview(TimestampMixin, IDMixin, SQLModelBase, table=True):
    """面试安排表模型"""
    __tablename__ = "interviews"

    application_id: str = parent_key("applications.id", "应聘申请ID")
    scheduled_by: str = Field(..., description="安排人ID")
    interview_date: datetime = Field(..., description="面试时间")
    duration_minutes: int = Field(60, description="时长（分钟）")
    interview_type: str = Field(InterviewType.VIDEO.value, description="面试形式")
    location: Optional[str] = Field(None, description="面试地点")
    meeting_link: Optional[str] = Field(None, description="会议链接")
    notes_for_candidate: Optional[str] = Field(None, description="给候选人的说明")
    internal_notes: Optional[str] = Field(None, description="内部备注")
    status: str = Field(InterviewStatus.SCHEDULED.value, index=True, description="面试状态")

    def __repr__(self) -> str:
        return f"<Interview(id={self.id}, status={self.status})>"


class InterviewHistoryEntry(AppendOnlyMixin, IDMixin, SQLModelBase, table=True):
    """面试变更历史表模型（只追加）"""
    __tablename__ = "interview_history"

    interview_id: str = parent_key("interviews.id", "面试ID")
    change_type: str = Field(..., max_length=20, description="变更类型")
    previous_date: Optional[datetime] = None
    new_date: Optional[datetime] = None
    previous_type: Optional[str] = None
    new_type: Optional[str] = None
    changed_by: str = Field(..., description="操作人ID")
    reason: Optional[str] = Field(None, description="说明")


# ==================== 请求 Schema ====================

class InterviewCreate(SQLModelBase):
    """安排面试请求"""
    interview_date: datetime
    duration_minutes: int = Field(60, ge=5, le=600)
    interview_type: InterviewType = InterviewType.VIDEO
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes_for_candidate: Optional[str] = None
    internal_notes: Optional[str] = None
    actor_id: str = Field(..., min_length=1, description="操作人ID")
    notify_candidate: bool = False


class InterviewReschedule(SQLModelBase):
    """改期请求"""
    new_date: datetime
    new_type: Optional[InterviewType] = None
    actor_id: str = Field(..., min_length=1)
    note: Optional[str] = None


class InterviewStatusChange(SQLModelBase):
    """取消 / 完成请求"""
    actor_id: str = Field(..., min_length=1)
    note: Optional[str] = None


# ==================== 响应 Schema ====================

class InterviewResponse(TimestampResponse):
    """面试安排响应"""
    application_id: str
    scheduled_by: str
    interview_date: datetime
    duration_minutes: int
    interview_type: str
    location: Optional[str]
    meeting_link: Optional[str]
    notes_for_candidate: Optional[str]
    internal_notes: Optional[str]
    status: str


class InterviewHistoryResponse(SQLModelBase):
    """面试变更历史响应"""
    id: str
    interview_id: str
    change_type: str
    previous_date: Optional[datetime]
    new_date: Optional[datetime]
    previous_type: Optional[str]
    new_type: Optional[str]
    changed_by: str
    reason: Optional[str]
    created_at: datetime
