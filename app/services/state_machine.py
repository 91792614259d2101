"""
申请状态机

把转换守卫的判断落到数据库：读取当前状态 -> 守卫判断 -> 以读到的状态为条件写入。
条件写入失败说明状态被并发修改，重新读取后再判断
"""
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    NotFoundException,
    InvalidTransitionException,
    ConcurrencyConflictException,
)
from app.crud import application_crud
from app.models.application import Application
from .transitions import ApplicationEvent, TransitionFacts, evaluate_transition


async def apply_event(
    db: AsyncSession,
    application_id: str,
    event: ApplicationEvent,
    *,
    facts: Optional[TransitionFacts] = None,
    extra: Optional[Dict[str, Any]] = None,
    strict: bool = True,
    max_retries: Optional[int] = None,
) -> Optional[Application]:
    """
    对申请应用状态事件

    strict=False 用于系统事件：状态已不满足时静默跳过并返回 None
    """
    attempts = max_retries if max_retries is not None else settings.transition_max_retries
    for attempt in range(1, attempts + 1):
        application = await application_crud.get_fresh(db, application_id)
        if application is None:
            raise NotFoundException(f"申请不存在: {application_id}")

        decision = evaluate_transition(application.status, event, facts)
        if not decision.allowed:
            if not strict:
                logger.info(
                    "System event skipped: application={} status={} event={} ({})",
                    application_id, application.status, event.value, decision.reason,
                )
                return None
            logger.info(
                "Transition rejected: application={} status={} event={} ({})",
                application_id, application.status, event.value, decision.reason,
            )
            raise InvalidTransitionException(application.status, event.value, decision.reason)

        written = await application_crud.transition_if(
            db,
            application_id,
            expected_status=application.status,
            new_status=decision.next_status,
            extra=extra,
        )
        if written:
            logger.info(
                "Application {} transitioned {} -> {} via {}",
                application_id, application.status, decision.next_status, event.value,
            )
            return await application_crud.get_fresh(db, application_id)

        logger.warning(
            "Lost status compare-and-set for application {} (attempt {}/{})",
            application_id, attempt, attempts,
        )

    raise ConcurrencyConflictException(f"申请 {application_id} 状态并发更新冲突")


async def check_event(
    db: AsyncSession,
    application_id: str,
    event: ApplicationEvent,
    facts: Optional[TransitionFacts] = None,
) -> Application:
    """只做守卫检查不写入，用于先执行外部副作用再转换的场景"""
    application = await application_crud.get_fresh(db, application_id)
    if application is None:
        raise NotFoundException(f"申请不存在: {application_id}")
    decision = evaluate_transition(application.status, event, facts)
    if not decision.allowed:
        logger.info(
            "Transition rejected: application={} status={} event={} ({})",
            application_id, application.status, event.value, decision.reason,
        )
        raise InvalidTransitionException(application.status, event.value, decision.reason)
    return application
