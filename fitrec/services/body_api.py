import os
import mimetypes
import httpx
from ..config import settings
from .domain import MeasurementSet, normalize_measurements


class BodyApiClient:
    def __init__(self) -> None:
        self.base = settings.body_api_base.rstrip("/")
        self.username = settings.body_api_username
        self.password = settings.body_api_password
        self._token: str | None = None

    async def _ensure_token(self) -> str:
        if self._token:
            return self._token
        async with httpx.AsyncClient(timeout=30.0) as client:
            resp = await client.post(
                f"{self.base}/auth/login",
                data={"username": self.username, "password": self.password},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            resp.raise_for_status()
            token = resp.json().get("access_token")
            if not token:
                raise RuntimeError("Body API login failed: no access_token")
            self._token = token
            return token

    async def capture(self, height_cm: float, image_path: str) -> MeasurementSet:
        """Send a photo to the body capture service and return its measurements in canonical form."""
        token = await self._ensure_token()
        with open(image_path, "rb") as f:
            guessed, _ = mimetypes.guess_type(image_path)
            files = {"image": (os.path.basename(image_path), f, guessed or "image/jpeg")}
            async with httpx.AsyncClient(timeout=120.0) as client:
                resp = await client.post(
                    f"{self.base}/measurements/analyze",
                    headers={"Authorization": f"Bearer {token}"},
                    files=files,
                    data={"height": str(height_cm)},
                )
                resp.raise_for_status()
                payload = resp.json()
        if not payload.get("success"):
            raise RuntimeError("Body API analyze failed")
        measured = normalize_measurements(payload.get("measurements") or {})
        measured.setdefault("height", float(height_cm))
        return measured
