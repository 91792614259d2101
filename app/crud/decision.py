"""
录用决定 CRUD 操作（只追加）

最新一条决定对申请状态有效，历史决定全部保留
"""
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.decision import HiringDecision
from .base import AppendOnlyCRUD


class CRUDDecision(AppendOnlyCRUD[HiringDecision]):

    async def list_by_application(self, db: AsyncSession, application_id: str) -> List[HiringDecision]:
        """最新的在前"""
        return await self.list_for(db, self.model.application_id, application_id)

    async def latest(self, db: AsyncSession, application_id: str) -> Optional[HiringDecision]:
        return await self.find_one(db, self.model.application_id == application_id)


decision_crud = CRUDDecision(HiringDecision)
