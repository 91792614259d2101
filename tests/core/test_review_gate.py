"""
审阅闸门测试
"""
from app.models.review import ReviewProgress, ReviewSection
from app.services.review_gate import get_completion_count, is_complete


def _progress(**flags) -> ReviewProgress:
    return ReviewProgress(application_id="app-1", **flags)


def test_missing_progress_counts_as_nothing_reviewed():
    assert get_completion_count(None) == (0, 4)
    assert is_complete(None) is False


def test_partial_progress():
    progress = _progress(ai_analysis_reviewed=True, cv_analysis_reviewed=True)
    assert get_completion_count(progress) == (2, 4)
    assert is_complete(progress) is False


def test_all_sections_reviewed():
    progress = _progress(**{section.value: True for section in ReviewSection})
    assert get_completion_count(progress) == (4, 4)
    assert is_complete(progress) is True


def test_three_of_four_is_not_complete():
    flags = {section.value: True for section in ReviewSection}
    flags[ReviewSection.BUSINESS_CASE.value] = False
    assert is_complete(_progress(**flags)) is False
