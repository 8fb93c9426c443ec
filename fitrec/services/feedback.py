from typing import Optional, Sequence

from .domain import FitFeedback, FitOutcome


SIZE_UP = {FitOutcome.too_small, FitOutcome.slightly_small}
SIZE_DOWN = {FitOutcome.too_large, FitOutcome.slightly_large}


def latest_feedback(history: Optional[Sequence[FitFeedback]], category: str) -> Optional[FitFeedback]:
    """Most recent record for the category. History is ordered oldest first."""
    if not history:
        return None
    key = (category or "").strip().lower()
    for record in reversed(history):
        if (record.category or "").strip().lower() == key:
            return record
    return None


def bias(candidate_index: int, chart_length: int, history: Optional[Sequence[FitFeedback]], category: str) -> int:
    """Shift one band toward the last purchase's fit outcome. No history is a no-op."""
    record = latest_feedback(history, category)
    if record is None:
        return candidate_index
    index = candidate_index
    if record.outcome in SIZE_UP:
        index += 1
    elif record.outcome in SIZE_DOWN:
        index -= 1
    return max(0, min(chart_length - 1, index))
