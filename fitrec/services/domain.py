from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple


# Body measurements in cm (weight in kg). Missing keys mean "unknown", never zero.
MeasurementSet = Dict[str, float]

MEASUREMENT_NAMES: Tuple[str, ...] = (
    "height",
    "weight",
    "chest",
    "waist",
    "hips",
    "inseam",
    "shoulders",
    "arm_length",
    "foot_length",
)

# Measurements that are lengths and therefore follow the request unit
LENGTH_MEASUREMENTS = frozenset(MEASUREMENT_NAMES) - {"weight"}

MEASUREMENT_ALIASES: Dict[str, str] = {
    "armlength": "arm_length",
    "arm": "arm_length",
    "sleeve_length": "arm_length",
    "shoulder": "shoulders",
    "shoulder_width": "shoulders",
    "shoulder_to_shoulder": "shoulders",
    "hip": "hips",
    "bust": "chest",
    "foot": "foot_length",
    "footlength": "foot_length",
}

CM_PER_INCH = 2.54


def canonical_measurement(name: str) -> str:
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    return MEASUREMENT_ALIASES.get(key, key)


def normalize_measurements(raw: Mapping[str, object], unit: str = "cm") -> MeasurementSet:
    """Map aliases to canonical names, drop unknown/empty/non-positive values, convert inches to cm."""
    inch = unit.lower() in ("in", "inch", "inches")
    out: MeasurementSet = {}
    for k, v in raw.items():
        if v is None or v == "":
            continue
        name = canonical_measurement(k)
        if name not in MEASUREMENT_NAMES:
            continue
        try:
            value = float(v)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
        if value <= 0:
            continue
        if inch and name in LENGTH_MEASUREMENTS:
            value *= CM_PER_INCH
        out[name] = value
    return out


class FitPreference(str, Enum):
    slim = "slim"
    regular = "regular"
    loose = "loose"


class BodyTypeHint(str, Enum):
    athletic = "athletic"
    lean = "lean"
    curvy = "curvy"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["BodyTypeHint"]:
        """Unknown body types are advisory noise, not errors."""
        if not value:
            return None
        key = value.strip().lower()
        key = {
            "mesomorph": "athletic",
            "broad_shouldered": "athletic",
            "broad-shouldered": "athletic",
            "ectomorph": "lean",
            "slim": "lean",
            "endomorph": "curvy",
        }.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None


class FitOutcome(str, Enum):
    too_small = "too_small"
    slightly_small = "slightly_small"
    perfect = "perfect"
    slightly_large = "slightly_large"
    too_large = "too_large"


@dataclass(frozen=True)
class SizeBand:
    label: str
    # measurement name -> (min, max), inclusive, in cm
    ranges: Mapping[str, Tuple[float, float]]


@dataclass(frozen=True)
class SizeChart:
    category: str
    # smallest to largest
    bands: Tuple[SizeBand, ...]

    def __len__(self) -> int:
        return len(self.bands)

    @property
    def labels(self) -> List[str]:
        return [b.label for b in self.bands]

    @property
    def fields(self) -> List[str]:
        """Every measurement name used by at least one band, in first-seen order."""
        seen: List[str] = []
        for band in self.bands:
            for name in band.ranges:
                if name not in seen:
                    seen.append(name)
        return seen

    def index_of(self, label: str) -> int:
        return self.labels.index(label)


@dataclass(frozen=True)
class FitFeedback:
    size_given: str
    category: str
    outcome: FitOutcome
    returned: bool = False


@dataclass(frozen=True)
class BandScore:
    index: int
    band: SizeBand
    score: float
    fields_checked: int


@dataclass(frozen=True)
class Alternative:
    size: str
    confidence: float
    note: Optional[str] = None


@dataclass(frozen=True)
class Recommendation:
    size: str
    confidence: int
    alternatives: Tuple[Alternative, ...] = ()
    used_defaults: bool = False
    category: str = ""
    chart_category: str = ""
    chart_fallback: bool = False
    feedback_applied: bool = False
    fit_guarantee_eligible: bool = False
    measurements: MeasurementSet = field(default_factory=dict)


def feedback_from_dict(item: Mapping[str, object]) -> FitFeedback:
    """Build a FitFeedback from a stored record; raises ValueError on an unknown outcome."""
    return FitFeedback(
        size_given=str(item.get("size_given") or item.get("sizeGiven") or ""),
        category=str(item.get("category") or "").strip().lower(),
        outcome=FitOutcome(str(item.get("outcome") or item.get("fitFeedback"))),
        returned=bool(item.get("returned", False)),
    )
