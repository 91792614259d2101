"""
API 依赖注入

服务对象在每个请求中按依赖组装，测试通过 app.dependency_overrides 替换
会话工厂、推理客户端与通知发送器
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import AsyncSessionLocal
from app.core.events import ChangeBus, get_change_bus
from app.services.agents.inference import InferenceClient, get_inference_client
from app.services.lifecycle import LifecycleService
from app.services.mail import NotificationSender, get_notification_sender
from app.services.notifications import NotificationService
from app.services.orchestrator import AnalysisOrchestrator


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """获取会话工厂（服务层自行管理事务）"""
    return AsyncSessionLocal


def get_orchestrator(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    inference: InferenceClient = Depends(get_inference_client),
    bus: ChangeBus = Depends(get_change_bus),
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(session_factory, inference, bus)


def get_notification_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    sender: NotificationSender = Depends(get_notification_sender),
    bus: ChangeBus = Depends(get_change_bus),
) -> NotificationService:
    return NotificationService(session_factory, sender, bus)


def get_lifecycle(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    notifications: NotificationService = Depends(get_notification_service),
    bus: ChangeBus = Depends(get_change_bus),
) -> LifecycleService:
    return LifecycleService(session_factory, notifications, bus)
