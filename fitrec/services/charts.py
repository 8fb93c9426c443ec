"""
Size chart repository.

Charts are loaded once into an immutable snapshot (category -> SizeChart).
`ChartRepository.reload` builds a complete new snapshot before swapping the
reference, so a prediction running during a reload sees either the old
charts or the new ones, never a mix.

Source format (JSON file, JSON string or mapping)::

    {
      "tops": {
        "unit": "cm",
        "sizes": [
          {"label": "S", "ranges": {"chest": [81, 86], "waist": [66, 71]}},
          {"label": "M", "ranges": {"chest": [86, 91], "waist": [71, 76]}}
        ]
      }
    }

`sizes` may also be an ordered mapping of label -> ranges. Sizes are listed
smallest first.
"""
import json
import os
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

import structlog

from ..errors import ConfigurationError, UnknownCategoryError
from .domain import CM_PER_INCH, LENGTH_MEASUREMENTS, MeasurementSet, SizeBand, SizeChart, canonical_measurement


logger = structlog.get_logger("fitrec")


BUILTIN_CHARTS: Dict[str, Any] = {
    "tops": {
        "unit": "cm",
        "sizes": {
            "XS": {"chest": [76, 81], "waist": [61, 66], "height": [155, 165]},
            "S": {"chest": [81, 86], "waist": [66, 71], "height": [160, 170]},
            "M": {"chest": [86, 91], "waist": [71, 76], "height": [165, 175]},
            "L": {"chest": [91, 96], "waist": [76, 81], "height": [170, 180]},
            "XL": {"chest": [96, 101], "waist": [81, 86], "height": [175, 185]},
            "XXL": {"chest": [101, 106], "waist": [86, 91], "height": [180, 190]},
        },
    },
    "bottoms": {
        "unit": "cm",
        "sizes": {
            "XS": {"waist": [61, 66], "hips": [86, 91], "inseam": [71, 74]},
            "S": {"waist": [66, 71], "hips": [91, 96], "inseam": [74, 76]},
            "M": {"waist": [71, 76], "hips": [96, 101], "inseam": [76, 79]},
            "L": {"waist": [76, 81], "hips": [101, 106], "inseam": [79, 81]},
            "XL": {"waist": [81, 86], "hips": [106, 111], "inseam": [81, 84]},
            "XXL": {"waist": [86, 91], "hips": [111, 116], "inseam": [84, 86]},
        },
    },
    "shoes": {
        "unit": "cm",
        "sizes": {
            "6": {"foot_length": [23.5, 24]},
            "7": {"foot_length": [24, 24.5]},
            "8": {"foot_length": [24.5, 25]},
            "9": {"foot_length": [25, 25.5]},
            "10": {"foot_length": [25.5, 26]},
            "11": {"foot_length": [26, 26.5]},
            "12": {"foot_length": [26.5, 27]},
        },
    },
}

# Population averages used when a shopper gives nothing a chart can use.
POPULATION_DEFAULTS: Mapping[str, float] = MappingProxyType({
    "height": 170.0,
    "weight": 70.0,
    "chest": 90.0,
    "waist": 75.0,
    "hips": 95.0,
    "inseam": 76.0,
    "shoulders": 45.0,
    "arm_length": 62.0,
    "foot_length": 25.0,
})


def _parse_range(category: str, label: str, name: str, raw: Any, inch: bool) -> Tuple[float, float]:
    try:
        lo, hi = (float(v) for v in raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{category}/{label}: range for '{name}' must be a [min, max] pair of numbers")
    if lo > hi:
        raise ConfigurationError(f"{category}/{label}: range for '{name}' has min {lo} > max {hi}")
    if inch and name in LENGTH_MEASUREMENTS:
        lo, hi = lo * CM_PER_INCH, hi * CM_PER_INCH
    return lo, hi


def _parse_chart(category: str, spec: Mapping[str, Any]) -> SizeChart:
    unit = str(spec.get("unit", "cm")).lower()
    if unit not in ("cm", "in", "inch", "inches"):
        raise ConfigurationError(f"{category}: unsupported unit '{unit}'")
    inch = unit != "cm"

    sizes = spec.get("sizes")
    if isinstance(sizes, Mapping):
        entries: List[Tuple[str, Any]] = [(str(k), v) for k, v in sizes.items()]
    elif isinstance(sizes, list):
        try:
            entries = [(str(s["label"]), s["ranges"]) for s in sizes]
        except (KeyError, TypeError):
            raise ConfigurationError(f"{category}: every size needs a 'label' and 'ranges'")
    else:
        entries = []
    if not entries:
        raise ConfigurationError(f"{category}: chart has no sizes")

    bands: List[SizeBand] = []
    seen = set()
    for label, ranges in entries:
        if label in seen:
            raise ConfigurationError(f"{category}: duplicate size label '{label}'")
        seen.add(label)
        if not isinstance(ranges, Mapping) or not ranges:
            raise ConfigurationError(f"{category}/{label}: size has no measurement ranges")
        parsed: Dict[str, Tuple[float, float]] = {}
        for name, raw in ranges.items():
            key = canonical_measurement(name)
            parsed[key] = _parse_range(category, label, key, raw, inch)
        bands.append(SizeBand(label=label, ranges=MappingProxyType(parsed)))
    return SizeChart(category=category, bands=tuple(bands))


def load_charts(source: Any = None) -> Mapping[str, SizeChart]:
    """Load and validate charts from a path, a JSON string or a mapping. None loads the built-ins."""
    if source is None:
        raw: Any = BUILTIN_CHARTS
    elif isinstance(source, Mapping):
        raw = source
    elif isinstance(source, (str, os.PathLike)) and os.path.exists(source):
        try:
            with open(source, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Size chart file {source} is not valid JSON: {e}")
    elif isinstance(source, str):
        try:
            raw = json.loads(source)
        except json.JSONDecodeError:
            raise ConfigurationError(f"Size chart source not found: {source}")
    else:
        raise ConfigurationError(f"Unsupported size chart source: {type(source).__name__}")

    if not isinstance(raw, Mapping) or not raw:
        raise ConfigurationError("Size chart source must map categories to charts")

    charts: Dict[str, SizeChart] = {}
    for category, spec in raw.items():
        key = str(category).strip().lower()
        if not isinstance(spec, Mapping):
            raise ConfigurationError(f"{key}: chart must be an object")
        charts[key] = _parse_chart(key, spec)
    return MappingProxyType(charts)


class ChartRepository:
    """Read-only category -> SizeChart lookup with an explicit fallback category."""

    def __init__(
        self,
        charts: Mapping[str, SizeChart] | None = None,
        fallback_category: str | None = "tops",
        defaults: Mapping[str, float] | None = POPULATION_DEFAULTS,
    ) -> None:
        self._snapshot: Mapping[str, SizeChart] = charts if charts is not None else load_charts()
        self.fallback_category = (fallback_category or "").strip().lower() or None
        self.defaults = defaults
        if self.fallback_category and self.fallback_category not in self._snapshot:
            raise ConfigurationError(f"Fallback category '{self.fallback_category}' has no chart")

    @classmethod
    def from_source(cls, source: Any = None, **kwargs: Any) -> "ChartRepository":
        return cls(load_charts(source), **kwargs)

    @property
    def categories(self) -> List[str]:
        return list(self._snapshot)

    def reload(self, source: Any = None) -> None:
        snapshot = load_charts(source)
        if self.fallback_category and self.fallback_category not in snapshot:
            raise ConfigurationError(f"Fallback category '{self.fallback_category}' has no chart")
        self._snapshot = snapshot
        logger.info("charts_reloaded", categories=list(snapshot))

    def resolve(self, category: str) -> Tuple[SizeChart, bool]:
        """Return (chart, fell_back). Raises ConfigurationError for an unknown category with no fallback."""
        snapshot = self._snapshot
        key = (category or "").strip().lower()
        chart = snapshot.get(key)
        if chart is not None:
            return chart, False
        if self.fallback_category:
            logger.warning("chart_fallback", requested=key, fallback=self.fallback_category)
            return snapshot[self.fallback_category], True
        raise UnknownCategoryError(f"No size chart for category '{key}'")

    def get_size_chart(self, category: str) -> SizeChart:
        return self.resolve(category)[0]

    def defaults_for(self, chart: SizeChart) -> MeasurementSet:
        """Population defaults restricted to the fields the chart uses. Empty when defaults are disabled."""
        if not self.defaults:
            return {}
        return {name: self.defaults[name] for name in chart.fields if name in self.defaults}
