from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog

from ..errors import InsufficientDataError
from .charts import ChartRepository
from .confidence import confidence, penalised_score
from .domain import (
    Alternative,
    BodyTypeHint,
    FitFeedback,
    FitPreference,
    MeasurementSet,
    Recommendation,
    normalize_measurements,
)
from .feedback import bias
from .preference import advisory_alternatives
from .ranker import MAX_ALTERNATIVES, rank
from .scoring import SOFT_TOLERANCE, score_chart


logger = structlog.get_logger("fitrec")

FEEDBACK_NOTE = "matches your measurements"

# Fill defaults only when nothing supplied overlaps the chart, or for every missing chart field
FILL_WHEN_UNUSABLE = "when_unusable"
FILL_ALL_MISSING = "all_missing"

FIT_GUARANTEE_THRESHOLD = 80.0


def _merge_alternatives(candidates: Sequence[Alternative], primary: str) -> List[Alternative]:
    """Drop the primary size and collapse duplicates, keeping the first position and the higher confidence."""
    merged: Dict[str, Alternative] = {}
    for alt in candidates:
        if alt.size == primary:
            continue
        seen = merged.get(alt.size)
        if seen is None or alt.confidence > seen.confidence:
            merged[alt.size] = alt
    order: List[str] = []
    for alt in candidates:
        if alt.size in merged and alt.size not in order:
            order.append(alt.size)
    return [merged[s] for s in order][:MAX_ALTERNATIVES]


class Recommender:
    def __init__(
        self,
        repository: ChartRepository | None = None,
        tolerance: float = SOFT_TOLERANCE,
        fill_policy: str = FILL_WHEN_UNUSABLE,
        guarantee_threshold: float = FIT_GUARANTEE_THRESHOLD,
    ) -> None:
        self.repository = repository or ChartRepository()
        self.tolerance = tolerance
        self.fill_policy = fill_policy
        self.guarantee_threshold = guarantee_threshold

    def _fill_defaults(self, measured: MeasurementSet, fields: List[str], defaults: MeasurementSet) -> MeasurementSet:
        if self.fill_policy == FILL_ALL_MISSING:
            return {k: v for k, v in defaults.items() if k not in measured}
        if any(f in measured for f in fields):
            return {}
        return dict(defaults)

    def predict(
        self,
        measurements: Mapping[str, Any],
        category: str,
        preference: FitPreference | str = FitPreference.regular,
        body_type: Optional[BodyTypeHint | str] = None,
        feedback_history: Optional[Sequence[FitFeedback]] = None,
        unit: str = "cm",
    ) -> Recommendation:
        preference = FitPreference(preference or FitPreference.regular)
        if not isinstance(body_type, BodyTypeHint):
            body_type = BodyTypeHint.parse(body_type)
        category_key = (category or "").strip().lower()

        # 1. Chart
        chart, fell_back = self.repository.resolve(category_key)

        # 2. Measurements and defaults
        measured = normalize_measurements(measurements, unit=unit)
        defaults = self.repository.defaults_for(chart)
        filled = self._fill_defaults(measured, chart.fields, defaults)
        if not any(f in measured for f in chart.fields) and not filled:
            raise InsufficientDataError(
                f"None of the supplied measurements are used by the '{chart.category}' size chart",
                guidance=f"Provide at least one of: {', '.join(chart.fields)}.",
            )
        if filled:
            logger.info("measurements_defaulted", category=category_key, fields=sorted(filled))
        used = dict(measured)
        used.update(filled)
        used_defaults = bool(filled) or fell_back

        # 3. Score
        scored = score_chart(used, chart, self.tolerance)
        if not scored:
            raise InsufficientDataError(
                f"No size in the '{chart.category}' chart could be scored",
                guidance=f"Provide at least one of: {', '.join(chart.fields)}.",
            )

        # 4. Rank
        best, ranked = rank(scored, len(chart))

        # 5. Preference / body type (advisory only)
        advisory = advisory_alternatives(chart, best.index, best.score, preference, body_type, category_key)

        # 6. Feedback
        final_index = bias(best.index, len(chart), feedback_history, category_key)
        feedback_applied = final_index != best.index
        if feedback_applied:
            logger.info(
                "feedback_bias_applied",
                category=category_key,
                measured_size=best.band.label,
                biased_size=chart.bands[final_index].label,
            )

        # 7. Confidence
        total = len(chart.fields)
        conf = confidence(best.score, best.fields_checked, total, used_defaults, feedback_applied)

        # 8. Assemble
        # Alternatives carry the same coverage and defaults penalties as the headline
        candidates: List[Alternative] = [
            Alternative(
                size=a.size,
                confidence=penalised_score(a.confidence, best.fields_checked, total, used_defaults),
                note=a.note,
            )
            for a in advisory
        ]
        if feedback_applied:
            candidates.append(Alternative(size=best.band.label, confidence=float(conf), note=FEEDBACK_NOTE))
        candidates.extend(
            Alternative(size=b.band.label, confidence=penalised_score(b.score, b.fields_checked, total, used_defaults))
            for b in ranked
        )
        size = chart.bands[final_index].label
        alternatives = tuple(
            Alternative(size=a.size, confidence=round(a.confidence, 1), note=a.note)
            for a in _merge_alternatives(candidates, size)
        )

        return Recommendation(
            size=size,
            confidence=conf,
            alternatives=alternatives,
            used_defaults=used_defaults,
            category=category_key,
            chart_category=chart.category,
            chart_fallback=fell_back,
            feedback_applied=feedback_applied,
            fit_guarantee_eligible=conf > self.guarantee_threshold,
            measurements=used,
        )
