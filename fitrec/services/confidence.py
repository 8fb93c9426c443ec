import math


FEW_FIELDS_PENALTY = 15.0
DEFAULTS_PENALTY = 10.0


def penalised_score(raw_score: float, fields_checked: int, total_possible_fields: int, used_defaults: bool) -> float:
    """Raw band score minus the coverage and defaults penalties, clamped to 0..100."""
    value = raw_score
    if fields_checked < total_possible_fields / 2:
        value -= FEW_FIELDS_PENALTY
    if used_defaults:
        value -= DEFAULTS_PENALTY
    return max(0.0, min(100.0, value))


def confidence(raw_score: float, fields_checked: int, total_possible_fields: int, used_defaults: bool, feedback_applied: bool = False) -> int:
    """0..100 heuristic for how well-supported a recommendation is.

    Feedback moves the size but never raises confidence: the prior purchase was a
    different garment and carries its own uncertainty. Halves round up.
    """
    return int(math.floor(penalised_score(raw_score, fields_checked, total_possible_fields, used_defaults) + 0.5))
