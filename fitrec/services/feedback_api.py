import httpx
from urllib.parse import quote
from typing import List
import structlog

from ..config import settings
from .domain import FitFeedback, feedback_from_dict


logger = structlog.get_logger("fitrec")


class FeedbackApiClient:
    """Reads a shopper's fit outcomes from the order/returns service. Never writes."""

    def __init__(self, base: str | None = None, api_key: str | None = None) -> None:
        self.base = (base or settings.feedback_api_base).rstrip("/")
        self.api_key = api_key or settings.api_key

    async def get_feedback(self, user_id: str, category: str) -> List[FitFeedback]:
        if not user_id.strip("."):
            raise ValueError(f"Invalid user id: {user_id!r}")
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.get(
                f"{self.base}/users/{quote(user_id, safe='')}/fit-feedback",
                params={"category": category},
                headers={"x-api-key": self.api_key},
            )
            resp.raise_for_status()
            payload = resp.json()

        items = payload.get("feedback") if isinstance(payload, dict) else payload
        history: List[FitFeedback] = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            try:
                history.append(feedback_from_dict(item))
            except ValueError:
                logger.warning("feedback_record_skipped", user_id=user_id, outcome=item.get("outcome"))
        return history
