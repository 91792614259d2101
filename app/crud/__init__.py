"""
CRUD 操作模块
"""
from .job import job_crud
from .application import application_crud
from .analysis import analysis_crud
from .evaluation import evaluation_crud
from .review import review_crud
from .interview import interview_crud, interview_history_crud
from .decision import decision_crud
from .notification import notification_crud

__all__ = [
    "job_crud",
    "application_crud",
    "analysis_crud",
    "evaluation_crud",
    "review_crud",
    "interview_crud",
    "interview_history_crud",
    "decision_crud",
    "notification_crud",
]
