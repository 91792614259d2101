"""
申请状态转换守卫

纯函数：(当前状态, 事件, 前置条件事实) -> 决策。
所有合法转换集中在 TRANSITIONS 表中，调用方不自行判断
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from app.models.application import ApplicationStatus, TERMINAL_STATUSES


class ApplicationEvent(str, Enum):
    """状态事件枚举"""
    SEND_BCQ_INVITATION = "send_bcq_invitation"
    BEGIN_REVIEW = "begin_review"
    COMPLETE_REVIEW = "complete_review"
    SCHEDULE_INTERVIEW = "schedule_interview"
    INTERVIEW_ANALYZED = "interview_analyzed"
    DECIDE_HIRED = "decide_hired"
    DECIDE_REJECTED = "decide_rejected"


NON_TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    status.value for status in ApplicationStatus
) - TERMINAL_STATUSES


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[str]
    target: str


TRANSITIONS: Dict[ApplicationEvent, Transition] = {
    ApplicationEvent.SEND_BCQ_INVITATION: Transition(
        frozenset({ApplicationStatus.PENDING.value}),
        ApplicationStatus.BCQ_SENT.value,
    ),
    ApplicationEvent.BEGIN_REVIEW: Transition(
        frozenset({ApplicationStatus.BCQ_SENT.value, ApplicationStatus.PENDING.value}),
        ApplicationStatus.UNDER_REVIEW.value,
    ),
    ApplicationEvent.COMPLETE_REVIEW: Transition(
        frozenset({ApplicationStatus.UNDER_REVIEW.value}),
        ApplicationStatus.REVIEWED.value,
    ),
    ApplicationEvent.SCHEDULE_INTERVIEW: Transition(
        frozenset({ApplicationStatus.UNDER_REVIEW.value, ApplicationStatus.REVIEWED.value}),
        ApplicationStatus.INTERVIEW.value,
    ),
    ApplicationEvent.INTERVIEW_ANALYZED: Transition(
        frozenset({ApplicationStatus.INTERVIEW.value}),
        ApplicationStatus.INTERVIEWED.value,
    ),
    ApplicationEvent.DECIDE_HIRED: Transition(NON_TERMINAL_STATUSES, ApplicationStatus.HIRED.value),
    ApplicationEvent.DECIDE_REJECTED: Transition(NON_TERMINAL_STATUSES, ApplicationStatus.REJECTED.value),
}


@dataclass(frozen=True)
class TransitionFacts:
    """前置条件事实"""
    review_complete: bool = False
    manual_override: bool = False
    interview_analysis_completed: bool = False
    decision_accepted: bool = False


@dataclass(frozen=True)
class TransitionDecision:
    allowed: bool
    current_status: str
    event: ApplicationEvent
    next_status: Optional[str] = None
    reason: str = ""


def _precondition_failure(event: ApplicationEvent, facts: TransitionFacts) -> str:
    if event is ApplicationEvent.COMPLETE_REVIEW:
        if not (facts.review_complete or facts.manual_override):
            return "审阅项未全部完成"
    elif event is ApplicationEvent.INTERVIEW_ANALYZED:
        if not facts.interview_analysis_completed:
            return "面试分析尚未完成"
    elif event in (ApplicationEvent.DECIDE_HIRED, ApplicationEvent.DECIDE_REJECTED):
        if not facts.decision_accepted:
            return "录用决定未被接受"
    return ""


def evaluate_transition(
    current_status: str,
    event: ApplicationEvent,
    facts: Optional[TransitionFacts] = None,
) -> TransitionDecision:
    """判断事件在当前状态下是否合法，以及目标状态"""
    event = ApplicationEvent(event)
    facts = facts or TransitionFacts()
    rule = TRANSITIONS[event]

    if current_status in TERMINAL_STATUSES:
        return TransitionDecision(False, current_status, event, reason="申请已处于终态")
    if current_status not in rule.sources:
        return TransitionDecision(False, current_status, event, reason="当前状态不接受该事件")

    failure = _precondition_failure(event, facts)
    if failure:
        return TransitionDecision(False, current_status, event, reason=failure)
    return TransitionDecision(True, current_status, event, next_status=rule.target)


def can_transition(current_status: str, event: ApplicationEvent, facts: Optional[TransitionFacts] = None) -> bool:
    return evaluate_transition(current_status, event, facts).allowed
