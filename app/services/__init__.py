"""
服务层模块
"""
from .agents import (
    LLMClient,
    get_llm_client,
    InferenceClient,
    LLMInferenceClient,
    get_inference_client,
)
from .mail import NotificationSender, SendGridNotificationSender, get_notification_sender
from .notifications import NotificationService, render_message, raise_if_failed
from .orchestrator import AnalysisOrchestrator, Claim
from .lifecycle import LifecycleService
from .review_gate import get_completion_count, is_complete
from .transitions import ApplicationEvent, TransitionFacts, evaluate_transition, can_transition
from .state_machine import apply_event, check_event
from .lineage import roll_forward, evaluation_values

__all__ = [
    "LLMClient",
    "get_llm_client",
    "InferenceClient",
    "LLMInferenceClient",
    "get_inference_client",
    "NotificationSender",
    "SendGridNotificationSender",
    "get_notification_sender",
    "NotificationService",
    "render_message",
    "raise_if_failed",
    "AnalysisOrchestrator",
    "Claim",
    "LifecycleService",
    "get_completion_count",
    "is_complete",
    "ApplicationEvent",
    "TransitionFacts",
    "evaluate_transition",
    "can_transition",
    "apply_event",
    "check_event",
    "roll_forward",
    "evaluation_values",
]
