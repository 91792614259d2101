"""
通知边界 Schema
"""
from typing import Any, Dict, Optional
from pydantic import Field

from .base import BaseSchema


class NotificationMessage(BaseSchema):
    """待发送的通知"""
    application_id: str
    notification_type: str
    recipient_email: str
    subject: str
    body: str
    template_params: Dict[str, Any] = Field(default_factory=dict)


class NotificationResult(BaseSchema):
    """通知发送结果"""
    success: bool
    error: Optional[str] = None
