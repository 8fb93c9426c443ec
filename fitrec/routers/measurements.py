import os
import tempfile
import httpx
from fastapi import APIRouter, Depends, File, Form, UploadFile, HTTPException

from ..security import verify_api_key
from ..services.body_api import BodyApiClient


router = APIRouter(prefix="/measurements", tags=["measurements"], dependencies=[Depends(verify_api_key)])


@router.post("/capture")
async def capture(
    height: float = Form(..., gt=0),
    image: UploadFile = File(...),
):
    """Proxy a photo to the body capture service and return a measurement set for /v1/predict."""
    if image.content_type is None or not image.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Please upload an image file")

    suffix = os.path.splitext(image.filename or "user.jpg")[1] or ".jpg"
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        tmp.write(await image.read())
        tmp_path = tmp.name
    try:
        measurements = await BodyApiClient().capture(height, tmp_path)
    except (httpx.HTTPError, RuntimeError) as e:
        raise HTTPException(status_code=502, detail=f"Body capture failed: {e}")
    finally:
        os.remove(tmp_path)
    return {"measurements": measurements, "unit": "cm"}
