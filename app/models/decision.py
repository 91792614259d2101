"""
录用决定模型模块 - SQLModel 版本

只追加；最新一条决定状态
"""
from datetime import datetime, date
from typing import Optional
from enum import Enum
from sqlmodel import Field

from .base import SQLModelBase, IDMixin, AppendOnlyMixin, parent_key


class DecisionType(str, Enum):
    """决定类型枚举"""
    HIRED = "hired"
    REJECTED = "rejected"
    ON_HOLD = "on_hold"


# ==================== 表模型 ====================

class HiringDecision(AppendOnlyMixin, IDMixin, SQLModelBase, table=True):
    """录用决定表模型"""
    __tablename__ = "hiring_decisions"

    application_id: str = parent_key("applications.id", "应聘申请ID")
    decision: str = Field(..., max_length=20, description="决定")
    decision_maker_id: str = Field(..., description="决策人ID")
    reasoning: str = Field(..., description="决策理由")
    salary_offered: Optional[float] = Field(None, description="薪资")
    start_date: Optional[date] = Field(None, description="入职日期")
    rejection_reason: Optional[str] = Field(None, description="拒绝原因")


# ==================== 请求 Schema ====================

class DecisionCreate(SQLModelBase):
    """记录决定请求"""
    decision: DecisionType
    actor_id: str = Field(..., min_length=1, description="决策人ID")
    reasoning: str = Field(..., min_length=1)
    salary_offered: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    rejection_reason: Optional[str] = None
    notify_candidate: bool = False


# ==================== 响应 Schema ====================

class DecisionResponse(SQLModelBase):
    """录用决定响应"""
    id: str
    application_id: str
    decision: str
    decision_maker_id: str
    reasoning: str
    salary_offered: Optional[float]
    start_date: Optional[date]
    rejection_reason: Optional[str]
    created_at: datetime
