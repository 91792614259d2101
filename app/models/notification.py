"""
通知日志模型模块 - SQLModel 版本

每次调用通知边界都恰好写入一条，成功失败都记录
"""
from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum
from sqlmodel import Field

from .base import SQLModelBase, IDMixin, parent_key, utcnow


class NotificationType(str, Enum):
    """通知类型枚举"""
    APPLICATION_RECEIVED = "application_received"
    BCQ_INVITATION = "bcq_invitation"
    BUSINESS_CASE_REMINDER = "business_case_reminder"
    STATUS_UPDATE = "status_update"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    DECISION_OFFER = "decision_offer"
    DECISION_REJECTION = "decision_rejection"


class NotificationStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


# ==================== 表模型 ====================

class NotificationLog(IDMixin, SQLModelBase, table=True):
    """通知日志表模型"""
    __tablename__ = "notification_logs"

    application_id: str = parent_key("applications.id", "应聘申请ID")
    notification_type: str = Field(..., max_length=40, description="通知类型")
    recipient_email: str = Field(..., description="收件人")
    subject: str = Field(..., description="主题")
    status: str = Field(..., max_length=10, description="发送结果")
    error_message: Optional[str] = Field(None, description="错误信息")
    sent_by: Optional[str] = Field(None, description="操作人ID，系统发送为空")
    sent_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)


# ==================== 请求 Schema ====================

class NotificationDispatch(SQLModelBase):
    """手动发送通知请求"""
    notification_type: NotificationType
    template_params: Dict[str, Any] = Field(default_factory=dict)
    actor_id: Optional[str] = None


# ==================== 响应 Schema ====================

class NotificationLogResponse(SQLModelBase):
    """通知日志响应"""
    id: str
    application_id: str
    notification_type: str
    recipient_email: str
    subject: str
    status: str
    error_message: Optional[str]
    sent_by: Optional[str]
    sent_at: datetime
