"""
状态转换守卫测试

纯函数，不需要数据库
"""
import pytest

from app.models.application import ApplicationStatus
from app.services.transitions import (
    ApplicationEvent,
    TransitionFacts,
    can_transition,
    evaluate_transition,
)

S = ApplicationStatus
E = ApplicationEvent


@pytest.mark.parametrize("current, event, facts, expected", [
    (S.PENDING, E.SEND_BCQ_INVITATION, None, S.BCQ_SENT),
    (S.BCQ_SENT, E.BEGIN_REVIEW, None, S.UNDER_REVIEW),
    (S.PENDING, E.BEGIN_REVIEW, None, S.UNDER_REVIEW),
    (S.UNDER_REVIEW, E.COMPLETE_REVIEW, TransitionFacts(review_complete=True), S.REVIEWED),
    (S.UNDER_REVIEW, E.COMPLETE_REVIEW, TransitionFacts(manual_override=True), S.REVIEWED),
    (S.UNDER_REVIEW, E.SCHEDULE_INTERVIEW, None, S.INTERVIEW),
    (S.REVIEWED, E.SCHEDULE_INTERVIEW, None, S.INTERVIEW),
    (S.INTERVIEW, E.INTERVIEW_ANALYZED, TransitionFacts(interview_analysis_completed=True), S.INTERVIEWED),
    (S.INTERVIEWED, E.DECIDE_HIRED, TransitionFacts(decision_accepted=True), S.HIRED),
    (S.PENDING, E.DECIDE_REJECTED, TransitionFacts(decision_accepted=True), S.REJECTED),
])
def test_allowed_transitions(current, event, facts, expected):
    decision = evaluate_transition(current.value, event, facts)
    assert decision.allowed is True
    assert decision.next_status == expected.value


@pytest.mark.parametrize("current, event", [
    (S.BCQ_SENT, E.SEND_BCQ_INVITATION),
    (S.REVIEWED, E.BEGIN_REVIEW),
    (S.PENDING, E.SCHEDULE_INTERVIEW),
    (S.BCQ_SENT, E.SCHEDULE_INTERVIEW),
    (S.REVIEWED, E.INTERVIEW_ANALYZED),
    (S.INTERVIEWED, E.INTERVIEW_ANALYZED),
])
def test_event_not_accepted_in_state(current, event):
    facts = TransitionFacts(
        review_complete=True,
        interview_analysis_completed=True,
        decision_accepted=True,
    )
    decision = evaluate_transition(current.value, event, facts)
    assert decision.allowed is False
    assert decision.next_status is None
    assert decision.current_status == current.value


@pytest.mark.parametrize("terminal", [S.HIRED, S.REJECTED])
def test_terminal_states_accept_nothing(terminal):
    facts = TransitionFacts(
        review_complete=True,
        manual_override=True,
        interview_analysis_completed=True,
        decision_accepted=True,
    )
    for event in ApplicationEvent:
        assert can_transition(terminal.value, event, facts) is False


def test_complete_review_requires_gate_or_override():
    decision = evaluate_transition(S.UNDER_REVIEW.value, E.COMPLETE_REVIEW, TransitionFacts())
    assert decision.allowed is False
    assert decision.reason


def test_interview_analyzed_requires_completed_analysis():
    assert can_transition(S.INTERVIEW.value, E.INTERVIEW_ANALYZED) is False


def test_decision_requires_acceptance():
    assert can_transition(S.INTERVIEWED.value, E.DECIDE_HIRED) is False
    assert can_transition(
        S.INTERVIEWED.value, E.DECIDE_HIRED, TransitionFacts(decision_accepted=True)
    ) is True


def test_event_accepts_plain_string():
    decision = evaluate_transition(S.PENDING.value, "send_bcq_invitation")
    assert decision.event is E.SEND_BCQ_INVITATION
    assert decision.allowed is True
