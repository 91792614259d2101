"""
通知发送边界

NotificationSender 协议：send(NotificationMessage) -> NotificationResult。
默认实现使用 SendGrid SDK，同步调用放到线程池执行
"""
import asyncio
from functools import partial
from typing import Optional, Protocol, runtime_checkable

from loguru import logger
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.core.config import settings
from app.schemas.notification import NotificationMessage, NotificationResult


@runtime_checkable
class NotificationSender(Protocol):
    async def send(self, message: NotificationMessage) -> NotificationResult:
        ...


class SendGridNotificationSender:
    """SendGrid 邮件发送实现"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self.from_email = from_email or settings.mail_from
        self.from_name = from_name or settings.mail_from_name

    def _send_sync(self, message: NotificationMessage) -> int:
        sg = SendGridAPIClient(api_key=self.api_key)
        mail = Mail(
            from_email=(self.from_email, self.from_name),
            to_emails=message.recipient_email,
            subject=message.subject,
            plain_text_content=message.body,
        )
        resp = sg.send(mail)
        return resp.status_code

    async def send(self, message: NotificationMessage) -> NotificationResult:
        if not self.api_key:
            return NotificationResult(success=False, error="SENDGRID_API_KEY 未配置")

        loop = asyncio.get_running_loop()
        try:
            status_code = await loop.run_in_executor(None, partial(self._send_sync, message))
        except Exception as exc:
            logger.error("SendGrid send failed: to={} error={}", message.recipient_email, exc)
            return NotificationResult(success=False, error=str(exc))

        if status_code >= 300:
            return NotificationResult(success=False, error=f"SendGrid 返回状态码 {status_code}")
        return NotificationResult(success=True)


_sender: Optional[SendGridNotificationSender] = None


def get_notification_sender() -> NotificationSender:
    """获取默认通知发送器单例"""
    global _sender
    if _sender is None:
        _sender = SendGridNotificationSender()
    return _sender
