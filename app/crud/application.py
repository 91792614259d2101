"""
应聘申请 CRUD 操作

status 与 evaluation_* 列只允许通过本模块的条件更新写入
"""
from typing import Optional, List, Dict, Any
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.application import (
    Application, ApplicationCreate, ApplicationStatus, EvaluationRunStatus, TERMINAL_STATUSES,
)
from .base import CRUDBase


class CRUDApplication(CRUDBase[Application]):
    """应聘申请 CRUD 操作类"""

    async def get_multi_filtered(
        self,
        db: AsyncSession,
        *,
        job_id: Optional[str] = None,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Application]:
        """按岗位/状态/负责人筛选申请，最新的在前"""
        return await self.find(db, *self._filters(job_id, status, assigned_to), skip=skip, limit=limit)

    async def count_filtered(
        self,
        db: AsyncSession,
        *,
        job_id: Optional[str] = None,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> int:
        return await self.count_where(db, *self._filters(job_id, status, assigned_to))

    def _filters(self, job_id, status, assigned_to) -> list:
        conditions = []
        if job_id:
            conditions.append(self.model.job_id == job_id)
        if status:
            conditions.append(self.model.status == status)
        if assigned_to:
            conditions.append(self.model.assigned_to == assigned_to)
        return conditions

    async def create_application(
        self,
        db: AsyncSession,
        *,
        obj_in: ApplicationCreate
    ) -> Application:
        """创建申请，状态固定为 pending"""
        data = obj_in.model_dump(exclude={"notify_candidate", "actor_id"})
        data["status"] = ApplicationStatus.PENDING.value
        return await self.create(db, obj_in=data)

    # ========== 状态条件更新 ==========

    async def transition_if(
        self,
        db: AsyncSession,
        id: str,
        *,
        expected_status: str,
        new_status: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """仅当当前状态仍为 expected_status 时写入新状态（及附带字段）"""
        values = dict(extra or {})
        values["status"] = new_status
        return await self.conditional_update(
            db,
            self.model.id == id,
            self.model.status == expected_status,
            values=values,
        )

    async def record_business_case(self, db: AsyncSession, id: str, values: Dict[str, Any]) -> bool:
        """写入商业案例完成字段，任何非终态都接受，不改变状态"""
        return await self.conditional_update(
            db,
            self.model.id == id,
            self.model.status.notin_(sorted(TERMINAL_STATUSES)),
            values=values,
        )

    async def set_ai_score(self, db: AsyncSession, id: str, score: Optional[int]) -> bool:
        return await self.conditional_update(db, self.model.id == id, values={"ai_score": score})

    # ========== 候选人评估单飞标记 ==========

    async def claim_evaluation(self, db: AsyncSession, id: str, ticket: str) -> bool:
        """认领候选人评估：只要当前不是 processing 就可以认领"""
        return await self.conditional_update(
            db,
            self.model.id == id,
            or_(
                self.model.evaluation_status.is_(None),
                self.model.evaluation_status != EvaluationRunStatus.PROCESSING.value,
            ),
            values={
                "evaluation_status": EvaluationRunStatus.PROCESSING.value,
                "evaluation_ticket": ticket,
                "evaluation_error": None,
            },
        )

    async def finish_evaluation(
        self,
        db: AsyncSession,
        id: str,
        ticket: str,
        *,
        succeeded: bool,
        error: Optional[str] = None,
        ai_score: Optional[int] = None,
    ) -> bool:
        """以认领令牌为条件结束评估，令牌不匹配说明是过期调用"""
        values: Dict[str, Any] = {
            "evaluation_status": (
                EvaluationRunStatus.COMPLETED.value if succeeded else EvaluationRunStatus.FAILED.value
            ),
            "evaluation_ticket": None,
            "evaluation_error": None if succeeded else error,
        }
        if succeeded and ai_score is not None:
            values["ai_score"] = ai_score
        return await self.conditional_update(
            db,
            self.model.id == id,
            self.model.evaluation_status == EvaluationRunStatus.PROCESSING.value,
            self.model.evaluation_ticket == ticket,
            values=values,
        )

    async def reset_evaluation(self, db: AsyncSession, id: str) -> bool:
        """管理操作：processing -> pending"""
        return await self.conditional_update(
            db,
            self.model.id == id,
            self.model.evaluation_status == EvaluationRunStatus.PROCESSING.value,
            values={
                "evaluation_status": EvaluationRunStatus.PENDING.value,
                "evaluation_ticket": None,
            },
        )

    async def touch_if_active(self, db: AsyncSession, id: str) -> bool:
        """申请未处于终态时刷新 updated_at，用于不改变状态的决定记录"""
        return await self.conditional_update(
            db,
            self.model.id == id,
            self.model.status.notin_(sorted(TERMINAL_STATUSES)),
            values={},
        )


application_crud = CRUDApplication(Application)
