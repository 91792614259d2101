"""
通知日志 CRUD 操作（只追加）
"""
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import NotificationLog
from .base import AppendOnlyCRUD


class CRUDNotification(AppendOnlyCRUD[NotificationLog]):
    """通知日志：成功与失败的发送各占一行"""

    async def list_by_application(self, db: AsyncSession, application_id: str) -> List[NotificationLog]:
        """按发送时间倒序"""
        return await self.list_for(
            db, self.model.application_id, application_id, order_column=self.model.sent_at,
        )


notification_crud = CRUDNotification(NotificationLog)
