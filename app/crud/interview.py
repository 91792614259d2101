"""
面试安排 CRUD 操作
"""
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.interview import Interview, InterviewHistoryEntry
from .base import CRUDBase, AppendOnlyCRUD


class CRUDInterview(CRUDBase[Interview]):
    """面试安排 CRUD 操作类"""

    async def list_by_application(self, db: AsyncSession, application_id: str) -> List[Interview]:
        return await self.find(
            db,
            self.model.application_id == application_id,
            order_by=self.model.interview_date.asc(),
        )

    async def update_if_status(
        self,
        db: AsyncSession,
        id: str,
        *,
        expected_status: str,
        values: Dict[str, Any],
    ) -> bool:
        """面试状态未被并发修改时才写入"""
        return await self.conditional_update(
            db,
            self.model.id == id,
            self.model.status == expected_status,
            values=values,
        )


class CRUDInterviewHistory(AppendOnlyCRUD[InterviewHistoryEntry]):
    """面试变更历史（只追加）"""

    async def append(
        self,
        db: AsyncSession,
        *,
        interview_id: str,
        change_type: str,
        changed_by: str,
        previous_date=None,
        new_date=None,
        previous_type: Optional[str] = None,
        new_type: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> InterviewHistoryEntry:
        return await self.create(db, obj_in={
            "interview_id": interview_id,
            "change_type": change_type,
            "changed_by": changed_by,
            "previous_date": previous_date,
            "new_date": new_date,
            "previous_type": previous_type,
            "new_type": new_type,
            "reason": reason,
        })

    async def list_by_interview(self, db: AsyncSession, interview_id: str) -> List[InterviewHistoryEntry]:
        """按创建时间升序"""
        return await self.list_for(db, self.model.interview_id, interview_id, newest_first=False)


interview_crud = CRUDInterview(Interview)
interview_history_crud = CRUDInterviewHistory(InterviewHistoryEntry)
