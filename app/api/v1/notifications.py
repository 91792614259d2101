"""
候选人通知 API 路由
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_notification_service
from app.core.database import get_db
from app.core.exceptions import NotFoundException
from app.core.response import success_response, ResponseModel
from app.crud import application_crud, notification_crud
from app.models.notification import NotificationDispatch, NotificationLogResponse
from app.services.notifications import NotificationService, raise_if_failed

router = APIRouter()


@router.post("/{application_id}/notifications", summary="发送候选人通知", response_model=ResponseModel[NotificationLogResponse])
async def send_notification(
    application_id: str,
    data: NotificationDispatch,
    service: NotificationService = Depends(get_notification_service),
):
    """
    发送通知并写入日志；发送失败时日志记为 failed 并返回 502
    """
    entry = await service.dispatch(application_id, data.notification_type, data.template_params, data.actor_id)
    raise_if_failed(entry)
    return success_response(
        data=NotificationLogResponse.model_validate(entry).model_dump(),
        message="通知已发送"
    )


@router.get("/{application_id}/notifications", summary="获取通知日志", response_model=ResponseModel[list[NotificationLogResponse]])
async def list_notifications(
    application_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await application_crud.get(db, application_id):
        raise NotFoundException(f"应聘申请不存在: {application_id}")
    entries = await notification_crud.list_by_application(db, application_id)
    return success_response(data=[NotificationLogResponse.model_validate(e).model_dump() for e in entries])
