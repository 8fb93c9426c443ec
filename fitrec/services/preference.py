"""
Fit preference and body type handling.

The regular-fit match always stays the primary recommendation. A slim or
loose preference only surfaces the neighbouring size as an advisory
alternative (listed first), and an athletic build on tops surfaces one size
up for the shoulders.
"""
from typing import List, Optional

from .domain import Alternative, BodyTypeHint, FitPreference, SizeChart


PREFERENCE_PENALTY = 10.0
BODY_TYPE_PENALTY = 5.0

SLIM_NOTE = "for slim fit"
LOOSE_NOTE = "for relaxed fit"
ATHLETIC_NOTE = "better for broader shoulders"

ATHLETIC_CATEGORIES = {"tops"}


def adjust(best_index: int, chart_length: int, preference: FitPreference) -> int:
    if preference == FitPreference.slim:
        return max(0, best_index - 1)
    if preference == FitPreference.loose:
        return min(chart_length - 1, best_index + 1)
    return best_index


def advisory_alternatives(
    chart: SizeChart,
    best_index: int,
    best_score: float,
    preference: FitPreference,
    body_type: Optional[BodyTypeHint] = None,
    category: str = "",
) -> List[Alternative]:
    out: List[Alternative] = []
    adjusted = adjust(best_index, len(chart), preference)

    if adjusted != best_index:
        note = SLIM_NOTE if preference == FitPreference.slim else LOOSE_NOTE
        out.append(Alternative(
            size=chart.bands[adjusted].label,
            confidence=max(0.0, best_score - PREFERENCE_PENALTY),
            note=note,
        ))

    if body_type == BodyTypeHint.athletic and category in ATHLETIC_CATEGORIES and adjusted < len(chart) - 1:
        out.append(Alternative(
            size=chart.bands[adjusted + 1].label,
            confidence=max(0.0, best_score - BODY_TYPE_PENALTY),
            note=ATHLETIC_NOTE,
        ))
    return out
