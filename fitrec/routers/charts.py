from typing import Optional
from fastapi import APIRouter, Depends

from ..config import settings
from ..dependencies import get_recommender
from ..errors import InsufficientDataError
from ..security import verify_api_key
from ..services.recommender import Recommender
from ..schemas.recommend import SizeChartResponse


router = APIRouter(prefix="/size-charts", tags=["size-charts"], dependencies=[Depends(verify_api_key)])


@router.get("")
async def list_categories(recommender: Recommender = Depends(get_recommender)):
    repo = recommender.repository
    return {"categories": repo.categories, "fallback_category": repo.fallback_category}


@router.get("/{category}", response_model=SizeChartResponse)
async def get_size_chart(
    category: str,
    chest: Optional[float] = None,
    waist: Optional[float] = None,
    hips: Optional[float] = None,
    inseam: Optional[float] = None,
    height: Optional[float] = None,
    foot_length: Optional[float] = None,
    shoulders: Optional[float] = None,
    arm_length: Optional[float] = None,
    weight: Optional[float] = None,
    recommender: Recommender = Depends(get_recommender),
) -> SizeChartResponse:
    """Raw chart ranges. When measurements are passed, the matching size is attached."""
    chart, fell_back = recommender.repository.resolve(category)
    measurements = {
        k: v for k, v in {
            "chest": chest, "waist": waist, "hips": hips,
            "inseam": inseam, "height": height, "foot_length": foot_length,
            "shoulders": shoulders, "arm_length": arm_length, "weight": weight,
        }.items() if v is not None
    }
    recommended = None
    if measurements:
        try:
            recommended = recommender.predict(measurements, category).size
        except InsufficientDataError:
            recommended = None
    return SizeChartResponse.from_chart(chart, fallback=fell_back, recommended_size=recommended)


@router.post("/reload")
async def reload_charts(recommender: Recommender = Depends(get_recommender)):
    """Re-read SIZE_CHARTS_PATH (or the built-ins) and swap the snapshot in one step."""
    repo = recommender.repository
    repo.reload(settings.size_charts_path)
    return {"categories": repo.categories}
