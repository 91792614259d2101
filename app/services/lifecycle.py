"""
申请生命周期服务

招聘人员与候选人的动作：创建申请、发送商业案例邀请、审阅、面试安排、录用决定。
所有状态写入都经由 state_machine.apply_event；每个动作一个事务，提交后发布变更事件
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.events import ChangeBus, EntityKind
from app.core.exceptions import (
    ConcurrencyConflictException,
    InvalidTransitionException,
    NotFoundException,
)
from app.crud import (
    application_crud,
    decision_crud,
    interview_crud,
    interview_history_crud,
    job_crud,
    review_crud,
)
from app.models.application import Application, ApplicationCreate, ApplicationStatus, ApplicationUpdate
from app.models.base import new_id, utcnow
from app.models.decision import DecisionCreate, DecisionType, HiringDecision
from app.models.interview import (
    CLOSED_INTERVIEW_STATUSES,
    Interview,
    InterviewCreate,
    InterviewReschedule,
    InterviewStatus,
)
from app.models.notification import NotificationType
from app.models.review import ReviewProgress, ReviewSection
from .notifications import NotificationService, raise_if_failed
from .review_gate import is_complete
from .state_machine import apply_event, check_event
from .transitions import ApplicationEvent, TransitionFacts

# 已在面试阶段的申请再安排面试视为追加轮次，不触发状态事件
FOLLOW_UP_INTERVIEW_STATUSES = frozenset({
    ApplicationStatus.INTERVIEW.value,
    ApplicationStatus.INTERVIEWED.value,
})

DECISION_EVENTS = {
    DecisionType.HIRED.value: ApplicationEvent.DECIDE_HIRED,
    DecisionType.REJECTED.value: ApplicationEvent.DECIDE_REJECTED,
}

DECISION_NOTIFICATIONS = {
    DecisionType.HIRED.value: NotificationType.DECISION_OFFER,
    DecisionType.REJECTED.value: NotificationType.DECISION_REJECTION,
}

BCQ_DELAY_THRESHOLD = timedelta(hours=24)


def bcq_timing(sent_at: Optional[datetime], completed_at: datetime) -> Dict[str, Any]:
    """邀请发出到完成的分钟数与是否延迟；没有邀请时间时两项都不写"""
    if sent_at is None:
        return {}
    # SQLite 读回的时间不带时区，按 UTC 处理
    if sent_at.tzinfo is None:
        sent_at = sent_at.replace(tzinfo=timezone.utc)
    elapsed = completed_at - sent_at
    return {
        "bcq_response_time_minutes": round(elapsed.total_seconds() / 60),
        "bcq_delayed": elapsed > BCQ_DELAY_THRESHOLD,
    }


class LifecycleService:
    """申请生命周期服务"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifications: NotificationService,
        bus: ChangeBus,
    ):
        self.session_factory = session_factory
        self.notifications = notifications
        self.bus = bus

    # ==================== 申请 ====================

    async def create_application(self, obj_in: ApplicationCreate) -> Application:
        """创建申请（pending），同时建立空的审阅进度"""
        async with self.session_factory() as db:
            job = await job_crud.get(db, obj_in.job_id)
            if job is None:
                raise NotFoundException(f"岗位不存在: {obj_in.job_id}")
            application = await application_crud.create_application(db, obj_in=obj_in)
            await review_crud.create(db, obj_in={"application_id": application.id})
            await db.commit()

        logger.info("Application created: {} job={} candidate={}", application.id, job.id, application.candidate_id)
        self.bus.emit(EntityKind.APPLICATION, application.id)

        if obj_in.notify_candidate:
            await self.notifications.dispatch(
                application.id, NotificationType.APPLICATION_RECEIVED.value, actor_id=obj_in.actor_id,
            )
        return application

    async def update_application(self, application_id: str, obj_in: ApplicationUpdate) -> Application:
        """更新备注、文档、负责人，不涉及状态"""
        async with self.session_factory() as db:
            application = await self._get_application(db, application_id)
            application = await application_crud.update(db, db_obj=application, obj_in=obj_in)
            await db.commit()
        self.bus.emit(EntityKind.APPLICATION, application_id)
        return application

    async def send_bcq_invitation(
        self,
        application_id: str,
        actor_id: str,
        access_token: Optional[str] = None,
    ) -> Application:
        """
        发送商业案例邀请

        先做守卫检查，再发送通知；只有通知成功才写入 bcq_sent 和发送时间
        """
        async with self.session_factory() as db:
            await check_event(db, application_id, ApplicationEvent.SEND_BCQ_INVITATION)

        token = access_token or new_id()
        portal_url = f"{settings.bcq_portal_base_url.rstrip('/')}/bcq/{application_id}/{token}"
        entry = await self.notifications.dispatch(
            application_id,
            NotificationType.BCQ_INVITATION.value,
            {"portal_url": portal_url},
            actor_id=actor_id,
        )
        raise_if_failed(entry)

        async with self.session_factory() as db:
            application = await apply_event(
                db,
                application_id,
                ApplicationEvent.SEND_BCQ_INVITATION,
                extra={"bcq_invitation_sent_at": entry.sent_at},
            )
            await db.commit()
        logger.info("BCQ invitation sent by {}: application={}", actor_id, application_id)
        self.bus.emit(EntityKind.APPLICATION, application_id)
        return application

    async def complete_business_case(self, application_id: str) -> Application:
        """
        候选人提交商业案例

        完成标记、完成时间与响应耗时在任何非终态下都会写入；
        申请仍处于 pending / bcq_sent 时同一事务内推进到 under_review，其他状态保持不变
        """
        async with self.session_factory() as db:
            application = await self._get_application(db, application_id)
            completed_at = utcnow()
            values: Dict[str, Any] = {
                "business_case_completed": True,
                "business_case_completed_at": completed_at,
            }
            values.update(bcq_timing(application.bcq_invitation_sent_at, completed_at))

            if not await application_crud.record_business_case(db, application_id, values):
                current = await application_crud.get_fresh(db, application_id)
                raise InvalidTransitionException(
                    current.status if current else application.status,
                    "complete_business_case",
                    "申请已处于终态",
                )
            await apply_event(db, application_id, ApplicationEvent.BEGIN_REVIEW, strict=False)
            await db.commit()
            application = await application_crud.get_fresh(db, application_id)

        logger.info(
            "Business case completed: application={} status={} delayed={}",
            application_id, application.status, application.bcq_delayed,
        )
        self.bus.emit(EntityKind.APPLICATION, application_id)
        return application

    async def begin_review(self, application_id: str, actor_id: str) -> Application:
        application = await self._apply(application_id, ApplicationEvent.BEGIN_REVIEW)
        logger.info("Review started by {}: application={}", actor_id, application_id)
        return application

    async def complete_review(
        self,
        application_id: str,
        actor_id: str,
        manual_override: bool = False,
    ) -> Application:
        """under_review -> reviewed，需要四项审阅完成或手动覆盖"""
        async with self.session_factory() as db:
            progress = await review_crud.get_by_application(db, application_id)
            facts = TransitionFacts(review_complete=is_complete(progress), manual_override=manual_override)
            application = await apply_event(db, application_id, ApplicationEvent.COMPLETE_REVIEW, facts=facts)
            await db.commit()
        logger.info(
            "Review completed by {}: application={} manual_override={}",
            actor_id, application_id, manual_override,
        )
        self.bus.emit(EntityKind.APPLICATION, application_id)
        return application

    # ==================== 审阅进度 ====================

    async def set_review_section(
        self,
        application_id: str,
        section: ReviewSection,
        reviewed: bool,
        actor_id: str,
    ) -> ReviewProgress:
        """
        设置单个审阅项

        四项全部完成且申请处于 under_review 时自动推进到 reviewed；
        状态已变化时静默跳过
        """
        async with self.session_factory() as db:
            await self._get_application(db, application_id)
            await review_crud.ensure(db, application_id)
            await review_crud.set_section(db, application_id, section, reviewed, actor_id)
            progress = await review_crud.get_by_application(db, application_id, fresh=True)

            moved = None
            if is_complete(progress):
                moved = await apply_event(
                    db,
                    application_id,
                    ApplicationEvent.COMPLETE_REVIEW,
                    facts=TransitionFacts(review_complete=True),
                    strict=False,
                )
            await db.commit()

        self.bus.emit(EntityKind.REVIEW, application_id)
        if moved is not None:
            self.bus.emit(EntityKind.APPLICATION, application_id)
        return progress

    # ==================== 面试 ====================

    async def schedule_interview(self, application_id: str, obj_in: InterviewCreate) -> Interview:
        """
        安排面试

        under_review / reviewed 触发 interview 事件；
        interview / interviewed 视为追加轮次；其它状态不允许
        """
        moved = False
        async with self.session_factory() as db:
            application = await application_crud.get_fresh(db, application_id)
            if application is None:
                raise NotFoundException(f"申请不存在: {application_id}")
            if application.status not in FOLLOW_UP_INTERVIEW_STATUSES:
                await apply_event(db, application_id, ApplicationEvent.SCHEDULE_INTERVIEW)
                moved = True

            interview = await interview_crud.create(db, obj_in={
                "application_id": application_id,
                "scheduled_by": obj_in.actor_id,
                "interview_date": obj_in.interview_date,
                "duration_minutes": obj_in.duration_minutes,
                "interview_type": obj_in.interview_type,
                "location": obj_in.location,
                "meeting_link": obj_in.meeting_link,
                "notes_for_candidate": obj_in.notes_for_candidate,
                "internal_notes": obj_in.internal_notes,
                "status": InterviewStatus.SCHEDULED.value,
            })
            await interview_history_crud.append(
                db,
                interview_id=interview.id,
                change_type=InterviewStatus.SCHEDULED.value,
                changed_by=obj_in.actor_id,
                new_date=interview.interview_date,
                new_type=interview.interview_type,
            )
            await db.commit()

        logger.info(
            "Interview scheduled by {}: application={} interview={} follow_up={}",
            obj_in.actor_id, application_id, interview.id, not moved,
        )
        self.bus.emit(EntityKind.INTERVIEW, interview.id)
        if moved:
            self.bus.emit(EntityKind.APPLICATION, application_id)

        if obj_in.notify_candidate:
            await self.notifications.dispatch(
                application_id,
                NotificationType.INTERVIEW_SCHEDULED.value,
                self._interview_params(interview),
                actor_id=obj_in.actor_id,
            )
        return interview

    async def reschedule_interview(self, interview_id: str, obj_in: InterviewReschedule) -> Interview:
        """改期：记录前后时间与形式"""
        async with self.session_factory() as db:
            interview = await self._get_open_interview(db, interview_id, "reschedule_interview")
            new_type = obj_in.new_type or interview.interview_type
            written = await interview_crud.update_if_status(
                db,
                interview_id,
                expected_status=interview.status,
                values={
                    "interview_date": obj_in.new_date,
                    "interview_type": new_type,
                    "status": InterviewStatus.RESCHEDULED.value,
                },
            )
            if not written:
                raise ConcurrencyConflictException(f"面试 {interview_id} 已被并发修改")
            await interview_history_crud.append(
                db,
                interview_id=interview_id,
                change_type=InterviewStatus.RESCHEDULED.value,
                changed_by=obj_in.actor_id,
                previous_date=interview.interview_date,
                new_date=obj_in.new_date,
                previous_type=interview.interview_type,
                new_type=new_type,
                reason=obj_in.note,
            )
            await db.commit()
            interview = await interview_crud.get_fresh(db, interview_id)

        logger.info("Interview rescheduled by {}: interview={}", obj_in.actor_id, interview_id)
        self.bus.emit(EntityKind.INTERVIEW, interview_id)
        return interview

    async def cancel_interview(self, interview_id: str, actor_id: str, note: Optional[str] = None) -> Interview:
        return await self._close_interview(interview_id, InterviewStatus.CANCELLED, actor_id, note)

    async def complete_interview(self, interview_id: str, actor_id: str, note: Optional[str] = None) -> Interview:
        return await self._close_interview(interview_id, InterviewStatus.COMPLETED, actor_id, note)

    async def _close_interview(
        self,
        interview_id: str,
        target: InterviewStatus,
        actor_id: str,
        note: Optional[str],
    ) -> Interview:
        async with self.session_factory() as db:
            interview = await self._get_open_interview(db, interview_id, f"{target.value}_interview")
            written = await interview_crud.update_if_status(
                db,
                interview_id,
                expected_status=interview.status,
                values={"status": target.value},
            )
            if not written:
                raise ConcurrencyConflictException(f"面试 {interview_id} 已被并发修改")
            await interview_history_crud.append(
                db,
                interview_id=interview_id,
                change_type=target.value,
                changed_by=actor_id,
                previous_date=interview.interview_date,
                previous_type=interview.interview_type,
                reason=note,
            )
            await db.commit()
            interview = await interview_crud.get_fresh(db, interview_id)

        logger.info("Interview {} by {}: interview={}", target.value, actor_id, interview_id)
        self.bus.emit(EntityKind.INTERVIEW, interview_id)
        return interview

    async def _get_open_interview(self, db: AsyncSession, interview_id: str, event: str) -> Interview:
        interview = await interview_crud.get_fresh(db, interview_id)
        if interview is None:
            raise NotFoundException(f"面试不存在: {interview_id}")
        if interview.status in CLOSED_INTERVIEW_STATUSES:
            raise InvalidTransitionException(interview.status, event, "面试已结束")
        return interview

    @staticmethod
    def _interview_params(interview: Interview) -> Dict[str, Any]:
        return {
            "interview_date": interview.interview_date.isoformat(),
            "interview_type": interview.interview_type.replace("_", " "),
            "duration_minutes": interview.duration_minutes,
            "location": f"Location: {interview.location}\n" if interview.location else "",
            "meeting_link": f"Meeting link: {interview.meeting_link}\n" if interview.meeting_link else "",
            "notes_for_candidate": interview.notes_for_candidate or "",
        }

    # ==================== 录用决定 ====================

    async def record_decision(self, application_id: str, obj_in: DecisionCreate) -> HiringDecision:
        """
        记录录用决定

        hired / rejected 与终态转换在同一事务中，转换不合法时决定不落库；
        on_hold 不改变状态，但终态申请不接受
        """
        decision = DecisionType(obj_in.decision).value
        async with self.session_factory() as db:
            event = DECISION_EVENTS.get(decision)
            if event is not None:
                await apply_event(db, application_id, event, facts=TransitionFacts(decision_accepted=True))
            else:
                await self._get_application(db, application_id)
                if not await application_crud.touch_if_active(db, application_id):
                    application = await application_crud.get_fresh(db, application_id)
                    logger.info("On-hold decision refused: application={} status={}", application_id, application.status)
                    raise InvalidTransitionException(application.status, "decide_on_hold", "申请已处于终态")

            entry = await decision_crud.create(db, obj_in={
                "application_id": application_id,
                "decision": decision,
                "decision_maker_id": obj_in.actor_id,
                "reasoning": obj_in.reasoning,
                "salary_offered": obj_in.salary_offered,
                "start_date": obj_in.start_date,
                "rejection_reason": obj_in.rejection_reason,
            })
            await db.commit()

        logger.info("Decision recorded by {}: application={} decision={}", obj_in.actor_id, application_id, decision)
        self.bus.emit(EntityKind.DECISION, entry.id)
        self.bus.emit(EntityKind.APPLICATION, application_id)

        notification_type = DECISION_NOTIFICATIONS.get(decision)
        if obj_in.notify_candidate and notification_type is not None:
            await self.notifications.dispatch(
                application_id,
                notification_type.value,
                {
                    "salary_offered": obj_in.salary_offered,
                    "start_date": obj_in.start_date.isoformat() if obj_in.start_date else "",
                    "rejection_reason": obj_in.rejection_reason,
                },
                actor_id=obj_in.actor_id,
            )
        return entry

    # ==================== 内部工具 ====================

    async def _apply(
        self,
        application_id: str,
        event: ApplicationEvent,
        *,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Application:
        async with self.session_factory() as db:
            application = await apply_event(db, application_id, event, extra=extra)
            await db.commit()
        self.bus.emit(EntityKind.APPLICATION, application_id)
        return application

    async def _get_application(self, db: AsyncSession, application_id: str) -> Application:
        application = await application_crud.get(db, application_id)
        if application is None:
            raise NotFoundException(f"申请不存在: {application_id}")
        return application
