from typing import List, Sequence, Tuple

from .domain import BandScore


MAX_ALTERNATIVES = 3
# Alternatives must score strictly above this
ALTERNATIVE_MIN_SCORE = 50.0


def rank(band_scores: Sequence[BandScore], chart_length: int) -> Tuple[BandScore, List[BandScore]]:
    """Pick the best band and up to three runner-up alternatives.

    Ties on the best score go to the band nearest the middle of the chart, then to
    the smaller size. Alternatives are ordered by score, ties by chart order.
    """
    if not band_scores:
        raise ValueError("rank() needs at least one scored band")

    middle = (chart_length - 1) / 2.0
    best = min(band_scores, key=lambda b: (-b.score, abs(b.index - middle), b.index))

    others = [b for b in band_scores if b.index != best.index and b.score > ALTERNATIVE_MIN_SCORE]
    others.sort(key=lambda b: (-b.score, b.index))
    return best, others[:MAX_ALTERNATIVES]
