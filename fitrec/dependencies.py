from functools import lru_cache

from .config import settings
from .services.charts import POPULATION_DEFAULTS, ChartRepository
from .services.recommender import Recommender


@lru_cache(maxsize=1)
def get_repository() -> ChartRepository:
    return ChartRepository.from_source(
        settings.size_charts_path,
        fallback_category=settings.fallback_category,
        defaults=POPULATION_DEFAULTS if settings.use_population_defaults else None,
    )


@lru_cache(maxsize=1)
def get_recommender() -> Recommender:
    return Recommender(
        get_repository(),
        tolerance=settings.soft_tolerance_cm,
        fill_policy=settings.default_fill_policy,
        guarantee_threshold=settings.fit_guarantee_threshold,
    )
