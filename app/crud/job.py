"""
岗位 CRUD 操作
"""
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.job import Job
from app.models.application import Application
from .application import application_crud
from .base import CRUDBase


class CRUDJob(CRUDBase[Job]):
    """岗位 CRUD 操作类"""

    def _status_filter(self, status: Optional[str]) -> tuple:
        return (self.model.status == status,) if status else ()

    async def get_multi_by_status(
        self,
        db: AsyncSession,
        *,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Job]:
        """按状态筛选岗位"""
        return await self.find(db, *self._status_filter(status), skip=skip, limit=limit)

    async def count_by_status(self, db: AsyncSession, *, status: Optional[str] = None) -> int:
        return await self.count_where(db, *self._status_filter(status))

    async def count_applications(self, db: AsyncSession, job_id: str) -> int:
        """统计岗位下的申请数量"""
        return await application_crud.count_where(db, Application.job_id == job_id)


job_crud = CRUDJob(Job)
