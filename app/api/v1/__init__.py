"""
API v1 路由模块
"""
from . import jobs, applications, reviews, analyses, evaluation, interviews, decisions, notifications, events

__all__ = [
    "jobs",
    "applications",
    "reviews",
    "analyses",
    "evaluation",
    "interviews",
    "decisions",
    "notifications",
    "events",
]
