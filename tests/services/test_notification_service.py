"""
通知服务测试

每次发送恰好一条日志；失败也记录
"""
import pytest

from app.core.events import EntityKind
from app.core.exceptions import NotificationFailureException
from app.crud import notification_crud
from app.models.notification import NotificationStatus, NotificationType
from app.services.mail import SendGridNotificationSender
from app.schemas.notification import NotificationMessage
from app.services.notifications import raise_if_failed, render_message


@pytest.mark.asyncio
async def test_dispatch_logs_success(seed, notifications, sender, session_factory, bus):
    application = await seed.application()
    sub = bus.subscribe([EntityKind.NOTIFICATION])

    entry = await notifications.dispatch(
        application.id, NotificationType.STATUS_UPDATE.value, {"message": "We are reviewing"}, actor_id="recruiter-1",
    )

    assert entry.status == NotificationStatus.SENT.value
    assert entry.recipient_email == application.candidate_email
    assert entry.sent_by == "recruiter-1"
    assert sender.sent[0].body.endswith("We are reviewing")
    event = await sub.get(timeout=1)
    assert event.entity_id == entry.id
    sub.close()


@pytest.mark.asyncio
async def test_dispatch_logs_failure(seed, notifications, sender, session_factory):
    application = await seed.application()
    sender.succeed = False

    entry = await notifications.dispatch(application.id, NotificationType.BUSINESS_CASE_REMINDER.value)

    assert entry.status == NotificationStatus.FAILED.value
    assert entry.error_message == "mail provider unavailable"
    with pytest.raises(NotificationFailureException):
        raise_if_failed(entry)

    async with session_factory() as db:
        logs = await notification_crud.list_by_application(db, application.id)
    assert len(logs) == 1


@pytest.mark.asyncio
async def test_missing_email_is_logged_as_failure(seed, notifications, sender):
    application = await seed.application(candidate_email=None)

    entry = await notifications.dispatch(application.id, NotificationType.APPLICATION_RECEIVED.value)

    assert entry.status == NotificationStatus.FAILED.value
    assert entry.recipient_email == ""
    assert sender.sent == []


@pytest.mark.asyncio
async def test_sender_exception_is_logged_as_failure(seed, notifications, sender, monkeypatch):
    application = await seed.application()

    async def explode(message):
        raise ConnectionError("smtp down")

    monkeypatch.setattr(sender, "send", explode)
    entry = await notifications.dispatch(application.id, NotificationType.APPLICATION_RECEIVED.value)

    assert entry.status == NotificationStatus.FAILED.value
    assert entry.error_message == "smtp down"


def test_render_message_blanks_missing_params():
    subject, body = render_message(
        NotificationType.INTERVIEW_SCHEDULED.value,
        {"candidate_name": "Ada", "job_title": "Engineer", "interview_type": "video"},
    )
    assert subject == "Interview scheduled: Engineer"
    assert "Hi Ada" in body
    assert "{" not in body


@pytest.mark.asyncio
async def test_sendgrid_sender_without_key_fails_fast():
    sender = SendGridNotificationSender(api_key="")
    result = await sender.send(NotificationMessage(
        application_id="app-1",
        notification_type="status_update",
        recipient_email="a@example.com",
        subject="s",
        body="b",
    ))
    assert result.success is False
    assert "SENDGRID_API_KEY" in result.error
