"""
候选人评估谱系 CRUD 操作

谱系行带乐观锁 version，每次写入都以读到的 version 为条件并自增
"""
from typing import Optional, Dict, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.evaluation import EvaluationLineage
from .base import CRUDBase


class CRUDEvaluation(CRUDBase[EvaluationLineage]):
    """评估谱系 CRUD 操作类"""

    async def get_by_application(
        self,
        db: AsyncSession,
        application_id: str,
        *,
        fresh: bool = False,
    ) -> Optional[EvaluationLineage]:
        query = select(self.model).where(self.model.application_id == application_id)
        if fresh:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def create_initial(
        self,
        db: AsyncSession,
        application_id: str,
        values: Dict[str, Any],
    ) -> EvaluationLineage:
        """首次评估：创建 initial 阶段谱系"""
        return await self.create(db, obj_in={**values, "application_id": application_id, "version": 1})

    async def update_if_version(
        self,
        db: AsyncSession,
        lineage_id: str,
        *,
        expected_version: int,
        values: Dict[str, Any],
    ) -> bool:
        """版本号匹配才写入，同时 version + 1"""
        return await self.conditional_update(
            db,
            self.model.id == lineage_id,
            self.model.version == expected_version,
            values={**values, "version": expected_version + 1},
        )


evaluation_crud = CRUDEvaluation(EvaluationLineage)
