"""
申请生命周期测试

从创建到录用的完整流程，以及每个非法动作都不改变状态
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.exceptions import (
    InvalidTransitionException,
    NotFoundException,
    NotificationFailureException,
)
from app.crud import application_crud, decision_crud, interview_crud, interview_history_crud, notification_crud
from app.models.application import ApplicationStatus, ApplicationUpdate
from app.models.decision import DecisionCreate
from app.models.interview import InterviewCreate, InterviewReschedule, InterviewStatus
from app.models.notification import NotificationStatus, NotificationType
from app.models.review import ReviewSection
from app.models.evaluation import EvaluationStage


def _interview(**overrides) -> InterviewCreate:
    data = {
        "interview_date": datetime.now(timezone.utc) + timedelta(days=3),
        "interview_type": "video",
        "meeting_link": "https://meet.example.com/abc",
        "actor_id": "recruiter-1",
    }
    data.update(overrides)
    return InterviewCreate(**data)


async def _status(session_factory, application_id) -> str:
    async with session_factory() as db:
        return (await application_crud.get_fresh(db, application_id)).status


async def _review_all(lifecycle, application_id):
    progress = None
    for section in ReviewSection:
        progress = await lifecycle.set_review_section(application_id, section, True, "recruiter-1")
    return progress


# ========== 完整流程 ==========

@pytest.mark.asyncio
async def test_full_pipeline(seed, lifecycle, orchestrator, session_factory, sender):
    application = await seed.application(notify_candidate=True)
    assert application.status == ApplicationStatus.PENDING.value
    assert sender.sent[0].notification_type == NotificationType.APPLICATION_RECEIVED.value

    application = await lifecycle.send_bcq_invitation(application.id, "recruiter-1", access_token="tok-1")
    assert application.status == ApplicationStatus.BCQ_SENT.value
    assert application.bcq_invitation_sent_at is not None
    assert f"/bcq/{application.id}/tok-1" in sender.sent[-1].body

    application = await lifecycle.complete_business_case(application.id)
    assert application.status == ApplicationStatus.UNDER_REVIEW.value
    assert application.business_case_completed is True
    assert application.business_case_completed_at is not None

    await _review_all(lifecycle, application.id)
    assert await _status(session_factory, application.id) == ApplicationStatus.REVIEWED.value

    _, lineage = await orchestrator.request_candidate_evaluation(application.id)
    assert lineage.overall_score == 70

    await lifecycle.schedule_interview(application.id, _interview(notify_candidate=True))
    assert await _status(session_factory, application.id) == ApplicationStatus.INTERVIEW.value
    assert sender.sent[-1].notification_type == NotificationType.INTERVIEW_SCHEDULED.value

    record = await orchestrator.request_analysis(application.id, "interview", input_ref="Great interview")
    assert record.analysis["score_change_explanation"]["change"] == 12
    assert await _status(session_factory, application.id) == ApplicationStatus.INTERVIEWED.value

    _, lineage = await orchestrator.get_evaluation(application.id)
    assert lineage.evaluation_stage == EvaluationStage.POST_INTERVIEW.value
    assert lineage.initial_overall_score == 70
    assert lineage.overall_score == 82

    await lifecycle.record_decision(application.id, DecisionCreate(
        decision="hired",
        actor_id="manager-1",
        reasoning="Strong interview",
        salary_offered=120000,
        start_date=date(2026, 3, 1),
        notify_candidate=True,
    ))
    assert await _status(session_factory, application.id) == ApplicationStatus.HIRED.value
    assert sender.sent[-1].notification_type == NotificationType.DECISION_OFFER.value

    with pytest.raises(InvalidTransitionException):
        await lifecycle.record_decision(application.id, DecisionCreate(
            decision="rejected", actor_id="manager-2", reasoning="Changed mind",
        ))
    assert await _status(session_factory, application.id) == ApplicationStatus.HIRED.value

    async with session_factory() as db:
        decisions = await decision_crud.list_by_application(db, application.id)
        logs = await notification_crud.list_by_application(db, application.id)
    assert [d.decision for d in decisions] == ["hired"]
    assert len(logs) == 4
    assert all(log.status == NotificationStatus.SENT.value for log in logs)


# ========== 商业案例邀请 ==========

@pytest.mark.asyncio
async def test_bcq_invitation_failure_keeps_pending(seed, lifecycle, sender, session_factory):
    application = await seed.application()
    sender.succeed = False

    with pytest.raises(NotificationFailureException):
        await lifecycle.send_bcq_invitation(application.id, "recruiter-1")

    async with session_factory() as db:
        current = await application_crud.get(db, application.id)
        logs = await notification_crud.list_by_application(db, application.id)
    assert current.status == ApplicationStatus.PENDING.value
    assert current.bcq_invitation_sent_at is None
    assert len(logs) == 1
    assert logs[0].status == NotificationStatus.FAILED.value


@pytest.mark.asyncio
async def test_bcq_invitation_refused_outside_pending(seed, lifecycle, sender):
    application = await seed.application()
    await lifecycle.begin_review(application.id, "recruiter-1")

    with pytest.raises(InvalidTransitionException):
        await lifecycle.send_bcq_invitation(application.id, "recruiter-1")
    assert sender.sent == []


# ========== 商业案例完成 ==========

async def _set_invitation_sent_at(session_factory, application_id, sent_at):
    async with session_factory() as db:
        await application_crud.conditional_update(
            db, application_crud.model.id == application_id, values={"bcq_invitation_sent_at": sent_at},
        )
        await db.commit()


@pytest.mark.asyncio
async def test_business_case_from_pending_starts_review(seed, lifecycle):
    application = await seed.application()

    application = await lifecycle.complete_business_case(application.id)

    assert application.status == ApplicationStatus.UNDER_REVIEW.value
    assert application.business_case_completed is True
    # 没有发过邀请就没有响应耗时
    assert application.bcq_response_time_minutes is None
    assert application.bcq_delayed is None


@pytest.mark.asyncio
async def test_business_case_after_review_started_is_still_recorded(seed, lifecycle):
    application = await seed.application()
    await lifecycle.send_bcq_invitation(application.id, "recruiter-1")
    await lifecycle.begin_review(application.id, "recruiter-1")

    application = await lifecycle.complete_business_case(application.id)

    assert application.status == ApplicationStatus.UNDER_REVIEW.value
    assert application.business_case_completed is True
    assert application.business_case_completed_at is not None
    assert application.bcq_delayed is False


@pytest.mark.asyncio
async def test_business_case_during_interview_keeps_status(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.begin_review(application.id, "recruiter-1")
    await lifecycle.schedule_interview(application.id, _interview())

    application = await lifecycle.complete_business_case(application.id)

    assert application.status == ApplicationStatus.INTERVIEW.value
    assert application.business_case_completed is True
    assert await _status(session_factory, application.id) == ApplicationStatus.INTERVIEW.value


@pytest.mark.asyncio
async def test_business_case_refused_for_terminal_application(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.record_decision(application.id, DecisionCreate(
        decision="rejected", actor_id="manager-1", reasoning="Not a fit",
    ))

    with pytest.raises(InvalidTransitionException):
        await lifecycle.complete_business_case(application.id)

    async with session_factory() as db:
        current = await application_crud.get_fresh(db, application.id)
    assert current.status == ApplicationStatus.REJECTED.value
    assert current.business_case_completed is False
    assert current.business_case_completed_at is None


@pytest.mark.asyncio
async def test_business_case_unknown_application(lifecycle):
    with pytest.raises(NotFoundException):
        await lifecycle.complete_business_case("missing")


@pytest.mark.asyncio
async def test_business_case_response_time_on_time(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.send_bcq_invitation(application.id, "recruiter-1")
    await _set_invitation_sent_at(session_factory, application.id, datetime.now(timezone.utc) - timedelta(hours=2))

    application = await lifecycle.complete_business_case(application.id)

    assert application.status == ApplicationStatus.UNDER_REVIEW.value
    assert 119 <= application.bcq_response_time_minutes <= 121
    assert application.bcq_delayed is False


@pytest.mark.asyncio
async def test_business_case_response_time_delayed(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.send_bcq_invitation(application.id, "recruiter-1")
    await _set_invitation_sent_at(session_factory, application.id, datetime.now(timezone.utc) - timedelta(hours=30))

    application = await lifecycle.complete_business_case(application.id)

    assert 30 * 60 - 1 <= application.bcq_response_time_minutes <= 30 * 60 + 1
    assert application.bcq_delayed is True



# ========== 审阅 ==========

@pytest.mark.asyncio
async def test_review_gate_auto_advances_only_when_complete(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.begin_review(application.id, "recruiter-1")

    sections = list(ReviewSection)
    for section in sections[:3]:
        await lifecycle.set_review_section(application.id, section, True, "recruiter-1")
    assert await _status(session_factory, application.id) == ApplicationStatus.UNDER_REVIEW.value

    progress = await lifecycle.set_review_section(application.id, sections[3], True, "recruiter-2")
    assert getattr(progress, sections[3].value) is True
    assert await _status(session_factory, application.id) == ApplicationStatus.REVIEWED.value


@pytest.mark.asyncio
async def test_review_progress_outside_review_does_not_move_status(seed, lifecycle, session_factory):
    application = await seed.application()
    await _review_all(lifecycle, application.id)
    assert await _status(session_factory, application.id) == ApplicationStatus.PENDING.value


@pytest.mark.asyncio
async def test_complete_review_needs_gate_or_override(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.begin_review(application.id, "recruiter-1")

    with pytest.raises(InvalidTransitionException):
        await lifecycle.complete_review(application.id, "recruiter-1")
    assert await _status(session_factory, application.id) == ApplicationStatus.UNDER_REVIEW.value

    application = await lifecycle.complete_review(application.id, "recruiter-1", manual_override=True)
    assert application.status == ApplicationStatus.REVIEWED.value


@pytest.mark.asyncio
async def test_unreviewing_a_section_clears_audit(seed, lifecycle):
    application = await seed.application()
    await lifecycle.set_review_section(application.id, ReviewSection.CV_ANALYSIS, True, "recruiter-1")
    progress = await lifecycle.set_review_section(application.id, ReviewSection.CV_ANALYSIS, False, "recruiter-1")
    assert progress.cv_analysis_reviewed is False
    assert progress.cv_analysis_reviewed_by is None


# ========== 面试 ==========

@pytest.mark.asyncio
async def test_interview_cannot_be_scheduled_from_pending(seed, lifecycle, session_factory):
    application = await seed.application()

    with pytest.raises(InvalidTransitionException):
        await lifecycle.schedule_interview(application.id, _interview())

    async with session_factory() as db:
        assert await interview_crud.list_by_application(db, application.id) == []


@pytest.mark.asyncio
async def test_follow_up_interview_keeps_status(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.begin_review(application.id, "recruiter-1")
    await lifecycle.schedule_interview(application.id, _interview())
    await lifecycle.schedule_interview(application.id, _interview(interview_type="in_person", location="HQ"))

    assert await _status(session_factory, application.id) == ApplicationStatus.INTERVIEW.value
    async with session_factory() as db:
        interviews = await interview_crud.list_by_application(db, application.id)
    assert len(interviews) == 2


@pytest.mark.asyncio
async def test_reschedule_and_cancel_write_history(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.begin_review(application.id, "recruiter-1")
    interview = await lifecycle.schedule_interview(application.id, _interview())

    new_date = datetime.now(timezone.utc) + timedelta(days=7)
    interview = await lifecycle.reschedule_interview(interview.id, InterviewReschedule(
        new_date=new_date, new_type="phone", actor_id="recruiter-2", note="Candidate travelling",
    ))
    assert interview.status == InterviewStatus.RESCHEDULED.value
    assert interview.interview_type == "phone"

    interview = await lifecycle.cancel_interview(interview.id, "recruiter-2", note="Position paused")
    assert interview.status == InterviewStatus.CANCELLED.value

    with pytest.raises(InvalidTransitionException):
        await lifecycle.complete_interview(interview.id, "recruiter-2")

    async with session_factory() as db:
        history = await interview_history_crud.list_by_interview(db, interview.id)
    assert [h.change_type for h in history] == ["scheduled", "rescheduled", "cancelled"]
    assert history[1].previous_type == "video"
    assert history[1].new_type == "phone"
    assert history[1].reason == "Candidate travelling"
    assert history[2].changed_by == "recruiter-2"


@pytest.mark.asyncio
async def test_completing_interview_does_not_advance_application(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.begin_review(application.id, "recruiter-1")
    interview = await lifecycle.schedule_interview(application.id, _interview())

    interview = await lifecycle.complete_interview(interview.id, "recruiter-1")
    assert interview.status == InterviewStatus.COMPLETED.value
    assert await _status(session_factory, application.id) == ApplicationStatus.INTERVIEW.value


# ========== 录用决定 ==========

@pytest.mark.asyncio
async def test_on_hold_keeps_status(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.record_decision(application.id, DecisionCreate(
        decision="on_hold", actor_id="manager-1", reasoning="Budget review",
    ))
    assert await _status(session_factory, application.id) == ApplicationStatus.PENDING.value

    async with session_factory() as db:
        latest = await decision_crud.latest(db, application.id)
    assert latest.decision == "on_hold"


@pytest.mark.asyncio
async def test_on_hold_refused_for_terminal_application(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.record_decision(application.id, DecisionCreate(
        decision="rejected", actor_id="manager-1", reasoning="Not a fit", notify_candidate=True,
    ))

    with pytest.raises(InvalidTransitionException):
        await lifecycle.record_decision(application.id, DecisionCreate(
            decision="on_hold", actor_id="manager-1", reasoning="Wait",
        ))

    async with session_factory() as db:
        decisions = await decision_crud.list_by_application(db, application.id)
    assert len(decisions) == 1


@pytest.mark.asyncio
async def test_terminal_state_blocks_every_action(seed, lifecycle, session_factory):
    application = await seed.application()
    await lifecycle.record_decision(application.id, DecisionCreate(
        decision="rejected", actor_id="manager-1", reasoning="Not a fit",
    ))

    with pytest.raises(InvalidTransitionException):
        await lifecycle.begin_review(application.id, "recruiter-1")
    with pytest.raises(InvalidTransitionException):
        await lifecycle.send_bcq_invitation(application.id, "recruiter-1")
    with pytest.raises(InvalidTransitionException):
        await lifecycle.schedule_interview(application.id, _interview())
    assert await _status(session_factory, application.id) == ApplicationStatus.REJECTED.value


# ========== 申请 ==========

@pytest.mark.asyncio
async def test_create_application_requires_job(seed):
    with pytest.raises(NotFoundException):
        await seed.application(job_id="missing-job")


@pytest.mark.asyncio
async def test_update_application_ignores_status(seed, lifecycle):
    application = await seed.application()
    updated = await lifecycle.update_application(application.id, ApplicationUpdate(notes="Strong referral"))
    assert updated.notes == "Strong referral"
    assert updated.status == ApplicationStatus.PENDING.value
