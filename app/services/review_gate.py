"""
审阅闸门

四个审阅项的纯查询，不修改任何状态
"""
from typing import Optional, Tuple

from app.models.review import ReviewProgress, ReviewSection

REVIEW_SECTIONS = tuple(section.value for section in ReviewSection)
TOTAL_SECTIONS = len(REVIEW_SECTIONS)


def get_completion_count(progress: Optional[ReviewProgress]) -> Tuple[int, int]:
    """返回 (已完成项数, 总项数)，progress 为空时为 (0, 4)"""
    if progress is None:
        return 0, TOTAL_SECTIONS
    completed = sum(1 for name in REVIEW_SECTIONS if getattr(progress, name, False))
    return completed, TOTAL_SECTIONS


def is_complete(progress: Optional[ReviewProgress]) -> bool:
    """四项全部完成才算完成"""
    if progress is None:
        return False
    completed, total = get_completion_count(progress)
    return completed == total
