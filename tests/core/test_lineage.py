"""
评估谱系前滚测试
"""
from datetime import datetime, timezone

from app.models.evaluation import EvaluationLineage, EvaluationStage
from app.schemas.analysis import InterviewAnalysisPayload, parse_analysis_payload
from app.services.lineage import roll_forward


def _lineage(**overrides) -> EvaluationLineage:
    data = {
        "application_id": "app-1",
        "overall_score": 70,
        "skills_match_score": 72,
        "communication_score": 65,
        "cultural_fit_score": 68,
        "recommendation": "review",
        "summary": "initial",
        "evaluation_stage": EvaluationStage.INITIAL.value,
        "version": 1,
    }
    data.update(overrides)
    return EvaluationLineage(**data)


def _payload(overall=82, **overrides) -> InterviewAnalysisPayload:
    data = {
        "interview_summary": "Went well",
        "performance_assessment": "Good",
        "new_overall_score": overall,
        "new_skills_score": 80,
        "new_communication_score": 85,
        "new_cultural_fit_score": 79,
        "new_recommendation": "proceed",
        "reasons_for_score_change": ["Clear answers"],
    }
    data.update(overrides)
    return parse_analysis_payload("interview", data)


def test_first_interview_freezes_snapshot():
    now = datetime(2026, 1, 5, tzinfo=timezone.utc)
    rolled = roll_forward(_lineage(), _payload(82), default_baseline_score=50, now=now)

    values = rolled.values
    assert values["evaluation_stage"] == EvaluationStage.POST_INTERVIEW.value
    assert values["initial_overall_score"] == 70
    assert values["initial_skills_match_score"] == 72
    assert values["initial_communication_score"] == 65
    assert values["initial_cultural_fit_score"] == 68
    assert values["initial_recommendation"] == "review"
    assert values["post_interview_at"] == now
    assert values["overall_score"] == 82
    assert values["recommendation"] == "proceed"


def test_change_is_recomputed_from_previous_score():
    payload = _payload(
        82,
        score_change_explanation={"previous_score": 1, "new_score": 82, "change": 99},
    )
    rolled = roll_forward(_lineage(), payload, default_baseline_score=50)

    explanation = rolled.explanation
    assert explanation.previous_score == 70
    assert explanation.new_score == 82
    assert explanation.change == 12
    assert rolled.payload.score_change_explanation == explanation
    assert rolled.values["raw_response"]["score_change_explanation"]["change"] == 12


def test_later_rounds_keep_the_first_snapshot():
    lineage = _lineage(
        overall_score=82,
        evaluation_stage=EvaluationStage.POST_INTERVIEW.value,
        initial_overall_score=70,
        post_interview_at=datetime(2026, 1, 5, tzinfo=timezone.utc),
    )
    rolled = roll_forward(lineage, _payload(75), default_baseline_score=50)

    assert "initial_overall_score" not in rolled.values
    assert "evaluation_stage" not in rolled.values
    assert "post_interview_at" not in rolled.values
    assert rolled.explanation.previous_score == 82
    assert rolled.explanation.change == -7


def test_missing_overall_score_uses_baseline():
    rolled = roll_forward(_lineage(overall_score=None), _payload(60), default_baseline_score=50)
    assert rolled.explanation.previous_score == 50
    assert rolled.explanation.change == 10


def test_fractional_scores_are_rounded():
    payload = _payload(81.6)
    assert payload.new_overall_score == 82
