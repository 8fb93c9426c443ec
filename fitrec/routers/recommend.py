from typing import List, Optional
import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_recommender
from ..security import verify_api_key
from ..services.domain import FitFeedback
from ..services.feedback_api import FeedbackApiClient
from ..services.recommender import Recommender
from ..schemas.recommend import PredictRequest, RecommendResponse


logger = structlog.get_logger("fitrec")

router = APIRouter(prefix="/predict", tags=["predict"], dependencies=[Depends(verify_api_key)])


@router.post("", response_model=RecommendResponse)
async def predict(req: PredictRequest, recommender: Recommender = Depends(get_recommender)) -> RecommendResponse:
    history: Optional[List[FitFeedback]] = None
    if req.feedback_history is not None:
        history = [
            FitFeedback(size_given=f.size_given, category=f.category.strip().lower(), outcome=f.outcome, returned=f.returned)
            for f in req.feedback_history
        ]
    elif req.user_id:
        try:
            history = await FeedbackApiClient().get_feedback(req.user_id, req.category.strip().lower())
        except httpx.HTTPError as e:
            logger.error("feedback_fetch_failed", user_id=req.user_id, error=str(e))
            raise HTTPException(status_code=502, detail="Failed to fetch fit feedback history")

    rec = recommender.predict(
        measurements=req.measurements.model_dump(exclude_none=True),
        category=req.category,
        preference=req.preference,
        body_type=req.body_type,
        feedback_history=history,
        unit=req.unit,
    )
    return RecommendResponse.from_recommendation(rec)
