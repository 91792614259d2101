"""
文档分析记录 CRUD 操作

认领、完成、失败都是单语句条件更新；完成和失败额外比对认领令牌，
过期调用的结果不会覆盖新一轮的状态
"""
from typing import Optional, List, Dict, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.analysis import AnalysisRecord, AnalysisStatus, CLAIMABLE_STATUSES
from .base import CRUDBase


class CRUDAnalysis(CRUDBase[AnalysisRecord]):
    """文档分析记录 CRUD 操作类"""

    async def get_by_kind(
        self,
        db: AsyncSession,
        application_id: str,
        kind: str,
        *,
        fresh: bool = False,
    ) -> Optional[AnalysisRecord]:
        """获取 (申请, 类型) 对应的唯一记录"""
        query = select(self.model).where(
            self.model.application_id == application_id,
            self.model.kind == kind,
        )
        if fresh:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def list_by_application(self, db: AsyncSession, application_id: str) -> List[AnalysisRecord]:
        return await self.find(db, self.model.application_id == application_id, order_by=self.model.kind)

    def _owned(self, application_id: str, kind: str, token: str) -> tuple:
        return (
            self.model.application_id == application_id,
            self.model.kind == kind,
            self.model.status == AnalysisStatus.PROCESSING.value,
            self.model.claim_token == token,
        )

    async def claim(
        self,
        db: AsyncSession,
        application_id: str,
        kind: str,
        *,
        token: str,
        input_ref: Optional[str] = None,
    ) -> bool:
        """
        认领分析：pending/failed/completed -> processing，不存在则创建

        返回 False 表示已有调用在 processing；
        并发创建时唯一约束会抛出 IntegrityError，由调用方回滚处理
        """
        claimed = await self.conditional_update(
            db,
            self.model.application_id == application_id,
            self.model.kind == kind,
            self.model.status.in_(CLAIMABLE_STATUSES),
            values={
                "status": AnalysisStatus.PROCESSING.value,
                "claim_token": token,
                "input_ref": input_ref,
                "error_message": None,
            },
        )
        if claimed:
            return True

        existing = await self.get_by_kind(db, application_id, kind)
        if existing is not None:
            return False

        db.add(self.model(
            application_id=application_id,
            kind=kind,
            status=AnalysisStatus.PROCESSING.value,
            claim_token=token,
            input_ref=input_ref,
        ))
        await db.flush()
        return True

    async def complete_if_owner(
        self,
        db: AsyncSession,
        application_id: str,
        kind: str,
        token: str,
        *,
        analysis: Dict[str, Any],
        summary: Optional[str],
    ) -> bool:
        return await self.conditional_update(
            db,
            *self._owned(application_id, kind, token),
            values={
                "status": AnalysisStatus.COMPLETED.value,
                "analysis": analysis,
                "summary": summary,
                "error_message": None,
                "claim_token": None,
            },
        )

    async def fail_if_owner(
        self,
        db: AsyncSession,
        application_id: str,
        kind: str,
        token: str,
        *,
        error: str,
    ) -> bool:
        return await self.conditional_update(
            db,
            *self._owned(application_id, kind, token),
            values={
                "status": AnalysisStatus.FAILED.value,
                "error_message": error,
                "claim_token": None,
            },
        )

    async def force_reset(self, db: AsyncSession, application_id: str, kind: str) -> bool:
        """管理操作：processing -> pending，旧令牌随之失效"""
        return await self.conditional_update(
            db,
            self.model.application_id == application_id,
            self.model.kind == kind,
            self.model.status == AnalysisStatus.PROCESSING.value,
            values={
                "status": AnalysisStatus.PENDING.value,
                "claim_token": None,
            },
        )


analysis_crud = CRUDAnalysis(AnalysisRecord)
