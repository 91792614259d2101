"""
审阅进度 CRUD 操作
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.review import ReviewProgress, ReviewSection
from app.models.base import utcnow
from .base import CRUDBase


class CRUDReview(CRUDBase[ReviewProgress]):
    """审阅进度 CRUD 操作类"""

    async def get_by_application(
        self,
        db: AsyncSession,
        application_id: str,
        *,
        fresh: bool = False,
    ) -> Optional[ReviewProgress]:
        query = select(self.model).where(self.model.application_id == application_id)
        if fresh:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def ensure(self, db: AsyncSession, application_id: str) -> ReviewProgress:
        """获取审阅进度，不存在时创建全 False 的记录"""
        progress = await self.get_by_application(db, application_id)
        if progress is None:
            progress = await self.create(db, obj_in={"application_id": application_id})
        return progress

    async def set_section(
        self,
        db: AsyncSession,
        application_id: str,
        section: ReviewSection,
        reviewed: bool,
        actor_id: str,
    ) -> bool:
        """只更新一个审阅项及其审计列，其它三项不受影响"""
        column = ReviewSection(section).value
        prefix = column[: -len("_reviewed")]
        return await self.conditional_update(
            db,
            self.model.application_id == application_id,
            values={
                column: reviewed,
                f"{prefix}_reviewed_by": actor_id if reviewed else None,
                f"{prefix}_reviewed_at": utcnow() if reviewed else None,
            },
        )


review_crud = CRUDReview(ReviewProgress)
