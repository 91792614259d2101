"""
通知服务

每次调用通知边界都恰好写入一条 NotificationLog（成功或失败），
日志在独立事务中提交，不随调用方的回滚丢失
"""
from collections import defaultdict
from typing import Any, Dict, Optional, Tuple

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.events import ChangeBus, EntityKind
from app.core.exceptions import NotFoundException, NotificationFailureException
from app.crud import application_crud, job_crud, notification_crud
from app.models.notification import NotificationLog, NotificationStatus, NotificationType
from app.schemas.notification import NotificationMessage, NotificationResult
from .mail import NotificationSender

# 纯文本主题与正文；模板渲染不在本服务范围内
MESSAGE_TEMPLATES: Dict[str, Tuple[str, str]] = {
    NotificationType.APPLICATION_RECEIVED.value: (
        "Application received: {job_title}",
        "Hi {candidate_name},\n\nThank you for applying for {job_title}. "
        "We will be in touch about next steps.",
    ),
    NotificationType.BCQ_INVITATION.value: (
        "Business case invitation: {job_title}",
        "Hi {candidate_name},\n\nYou are invited to complete the business case for {job_title}.\n"
        "Open the portal to start: {portal_url}",
    ),
    NotificationType.BUSINESS_CASE_REMINDER.value: (
        "Reminder: business case for {job_title}",
        "Hi {candidate_name},\n\nThis is a reminder to complete your business case for {job_title}.\n"
        "{portal_url}",
    ),
    NotificationType.STATUS_UPDATE.value: (
        "Update on your application for {job_title}",
        "Hi {candidate_name},\n\n{message}",
    ),
    NotificationType.INTERVIEW_SCHEDULED.value: (
        "Interview scheduled: {job_title}",
        "Hi {candidate_name},\n\nYour {interview_type} interview for {job_title} is scheduled on "
        "{interview_date} ({duration_minutes} minutes).\n{location}{meeting_link}\n{notes_for_candidate}",
    ),
    NotificationType.DECISION_OFFER.value: (
        "Offer: {job_title}",
        "Hi {candidate_name},\n\nWe are pleased to offer you the {job_title} position.\n"
        "Start date: {start_date}\nSalary: {salary_offered}",
    ),
    NotificationType.DECISION_REJECTION.value: (
        "Your application for {job_title}",
        "Hi {candidate_name},\n\nThank you for your interest in {job_title}. "
        "We have decided not to move forward with your application.\n{rejection_reason}",
    ),
}


def render_message(notification_type: str, params: Dict[str, Any]) -> Tuple[str, str]:
    """按类型拼出主题与正文，缺失参数替换为空串"""
    subject, body = MESSAGE_TEMPLATES[NotificationType(notification_type).value]
    values = defaultdict(str, {k: "" if v is None else v for k, v in params.items()})
    return subject.format_map(values), body.format_map(values).strip()


class NotificationService:
    """通知分发服务"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        sender: NotificationSender,
        bus: ChangeBus,
    ):
        self.session_factory = session_factory
        self.sender = sender
        self.bus = bus

    async def dispatch(
        self,
        application_id: str,
        notification_type: str,
        template_params: Optional[Dict[str, Any]] = None,
        actor_id: Optional[str] = None,
    ) -> NotificationLog:
        """发送通知并写入一条日志，返回日志记录"""
        notification_type = NotificationType(notification_type).value
        async with self.session_factory() as db:
            application = await application_crud.get(db, application_id)
            if application is None:
                raise NotFoundException(f"申请不存在: {application_id}")
            job = await job_crud.get(db, application.job_id)

        params: Dict[str, Any] = {
            "candidate_name": application.candidate_name,
            "job_title": job.title if job else "",
        }
        params.update(template_params or {})
        subject, body = render_message(notification_type, params)
        recipient = application.candidate_email or ""

        if not recipient:
            result = NotificationResult(success=False, error="候选人邮箱缺失")
        else:
            result = await self._send(NotificationMessage(
                application_id=application_id,
                notification_type=notification_type,
                recipient_email=recipient,
                subject=subject,
                body=body,
                template_params=params,
            ))

        async with self.session_factory() as db:
            entry = await notification_crud.create(db, obj_in={
                "application_id": application_id,
                "notification_type": notification_type,
                "recipient_email": recipient,
                "subject": subject,
                "status": NotificationStatus.SENT.value if result.success else NotificationStatus.FAILED.value,
                "error_message": result.error,
                "sent_by": actor_id,
            })
            await db.commit()
        self.bus.emit(EntityKind.NOTIFICATION, entry.id)

        if result.success:
            logger.info("Notification sent: application={} type={} to={}", application_id, notification_type, recipient)
        else:
            logger.error(
                "Notification failed: application={} type={} error={}",
                application_id, notification_type, result.error,
            )
        return entry

    async def _send(self, message: NotificationMessage) -> NotificationResult:
        try:
            return await self.sender.send(message)
        except Exception as exc:
            logger.exception("Notification sender raised: {}", exc)
            return NotificationResult(success=False, error=str(exc) or exc.__class__.__name__)


def raise_if_failed(entry: NotificationLog) -> NotificationLog:
    """发送失败时抛出 NotificationFailureException（日志已写入）"""
    if entry.status != NotificationStatus.SENT.value:
        raise NotificationFailureException(
            message=f"通知发送失败: {entry.error_message}",
            data={"notification_id": entry.id, "notification_type": entry.notification_type},
        )
    return entry
