"""
API 路由模块

申请下的子资源（审阅、分析、评估、面试、决定、通知）都挂在 /applications 下，
面试详情与变更历史按面试 ID 单独寻址
"""
from fastapi import APIRouter

from .v1 import jobs, applications, reviews, analyses, evaluation, interviews, decisions, notifications, events

api_router = APIRouter()

_ROUTES = (
    (jobs.router, "/jobs", "岗位管理"),
    (applications.router, "/applications", "应聘申请"),
    (reviews.router, "/applications", "审阅进度"),
    (analyses.router, "/applications", "文档分析"),
    (evaluation.router, "/applications", "候选人评估"),
    (interviews.router, "/applications", "面试安排"),
    (interviews.detail_router, "/interviews", "面试安排"),
    (decisions.router, "/applications", "录用决定"),
    (notifications.router, "/applications", "候选人通知"),
    (events.router, "/events", "变更事件"),
)

for router, prefix, tag in _ROUTES:
    api_router.include_router(router, prefix=prefix, tags=[tag])
