from typing import List, Mapping, Tuple

from .domain import BandScore, SizeBand, SizeChart


# Partial credit margin outside a band's hard range (cm, or kg for weight)
SOFT_TOLERANCE = 5.0

IN_RANGE_POINTS = 1.0
SOFT_POINTS = 0.5


def _points(value: float, lo: float, hi: float, tolerance: float) -> float:
    if lo <= value <= hi:
        return IN_RANGE_POINTS
    if lo - tolerance <= value <= hi + tolerance:
        return SOFT_POINTS
    return 0.0


def score(measurements: Mapping[str, float], band: SizeBand, tolerance: float = SOFT_TOLERANCE) -> Tuple[float, int]:
    """Score one band 0..100 over the fields present in both the measurements and the band.

    Returns (score, fields_checked). fields_checked == 0 means the band could not be
    judged at all; callers must exclude it rather than treat the 0 as a poor match.
    """
    points = 0.0
    checked = 0
    for name, (lo, hi) in band.ranges.items():
        value = measurements.get(name)
        if value is None:
            continue
        checked += 1
        points += _points(value, lo, hi, tolerance)
    if checked == 0:
        return 0.0, 0
    return points / checked * 100.0, checked


def score_chart(measurements: Mapping[str, float], chart: SizeChart, tolerance: float = SOFT_TOLERANCE) -> List[BandScore]:
    """Score every band of the chart, dropping bands that share no field with the measurements."""
    scored: List[BandScore] = []
    for i, band in enumerate(chart.bands):
        s, checked = score(measurements, band, tolerance)
        if checked == 0:
            continue
        scored.append(BandScore(index=i, band=band, score=s, fields_checked=checked))
    return scored
