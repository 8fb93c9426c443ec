from typing import Dict, Optional, List
from pydantic import BaseModel, Field

from ..services.domain import FitOutcome, FitPreference, Recommendation, SizeChart


class MeasurementInput(BaseModel):
    height: Optional[float] = Field(None, gt=0)
    weight: Optional[float] = Field(None, gt=0)
    chest: Optional[float] = Field(None, gt=0)
    waist: Optional[float] = Field(None, gt=0)
    hips: Optional[float] = Field(None, gt=0)
    inseam: Optional[float] = Field(None, gt=0)
    shoulders: Optional[float] = Field(None, gt=0)
    arm_length: Optional[float] = Field(None, gt=0)
    foot_length: Optional[float] = Field(None, gt=0)


class FitFeedbackIn(BaseModel):
    size_given: str
    category: str
    outcome: FitOutcome
    returned: bool = False


class PredictRequest(BaseModel):
    measurements: MeasurementInput = Field(default_factory=MeasurementInput)
    category: str
    preference: FitPreference = FitPreference.regular
    body_type: Optional[str] = None
    unit: str = Field("cm", pattern="^(cm|in|inch|inches)$")
    # Oldest first. When omitted and user_id is set, history is fetched from the feedback service.
    feedback_history: Optional[List[FitFeedbackIn]] = None
    user_id: Optional[str] = Field(None, pattern=r"^[A-Za-z0-9][A-Za-z0-9_.:@-]{0,127}$")


class AlternativeOut(BaseModel):
    size: str
    confidence: float
    note: Optional[str] = None


class RecommendResponse(BaseModel):
    size: str
    confidence: int = Field(ge=0, le=100)
    alternatives: List[AlternativeOut]
    used_defaults: bool
    category: str
    chart_category: str
    chart_fallback: bool
    feedback_applied: bool
    fit_guarantee_eligible: bool
    measurements: Dict[str, float]

    @classmethod
    def from_recommendation(cls, rec: Recommendation) -> "RecommendResponse":
        return cls(
            size=rec.size,
            confidence=rec.confidence,
            alternatives=[AlternativeOut(size=a.size, confidence=a.confidence, note=a.note) for a in rec.alternatives],
            used_defaults=rec.used_defaults,
            category=rec.category,
            chart_category=rec.chart_category,
            chart_fallback=rec.chart_fallback,
            feedback_applied=rec.feedback_applied,
            fit_guarantee_eligible=rec.fit_guarantee_eligible,
            measurements=rec.measurements,
        )


class SizeBandOut(BaseModel):
    label: str
    ranges: Dict[str, List[float]]


class SizeChartResponse(BaseModel):
    category: str
    unit: str = "cm"
    fallback: bool = False
    sizes: List[SizeBandOut]
    recommended_size: Optional[str] = None

    @classmethod
    def from_chart(cls, chart: SizeChart, fallback: bool = False, recommended_size: Optional[str] = None) -> "SizeChartResponse":
        return cls(
            category=chart.category,
            fallback=fallback,
            sizes=[SizeBandOut(label=b.label, ranges={k: [lo, hi] for k, (lo, hi) in b.ranges.items()}) for b in chart.bands],
            recommended_size=recommended_size,
        )
