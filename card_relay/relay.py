# card_relay/relay.py
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from card_relay.config import IMAGE_TIMEOUT_MS, MAX_IMAGE_SIZE, PIN_CODE
from card_relay.detection import CardDetector
from card_relay.errors import InvalidInput
from card_relay.relay_store import RelayStore, format_timestamp, utc_now
from card_relay.schemas import (
    DetectionConfig,
    DetectionProbeRequest,
    DetectionProbeResponse,
    HealthResponse,
    LatestImageResponse,
    PinRequest,
    UploadRequest,
    UploadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ---------- dependencies ----------
def get_store(request: Request) -> RelayStore:
    return request.app.state.store


def get_detector(request: Request) -> CardDetector:
    return request.app.state.detector


def _check_size(image: str | None) -> None:
    if image and len(image) > MAX_IMAGE_SIZE:
        raise HTTPException(413, "Image too large (max 10MB)")


# ---------- endpoints ----------
@router.get("/health", response_model=HealthResponse)
async def health(store: RelayStore = Depends(get_store)):
    logger.debug("Health check request")
    return HealthResponse(status="ok", timestamp=format_timestamp(utc_now()), has_image=store.has_image)


@router.post("/verify-pin")
async def verify_pin(body: PinRequest):
    match = body.pin == PIN_CODE
    logger.info("PIN verification attempt: match=%s", match)  # never log the PIN itself
    if not match:
        raise HTTPException(401, "Invalid PIN")
    return {"success": True}


@router.post("/upload-image", response_model=UploadResponse)
async def upload_image(body: UploadRequest, store: RelayStore = Depends(get_store)):
    _check_size(body.image)
    try:
        result = await store.upload(body.image, timestamp=body.timestamp, detect=body.detect_cards)
    except InvalidInput as e:
        logger.warning("Upload failed: %s", e)
        raise HTTPException(400, str(e))
    return UploadResponse(timestamp=result.timestamp, detection=result.detection)


@router.get("/latest-image", response_model=LatestImageResponse)
async def latest_image(
    max_age_ms: int = Query(IMAGE_TIMEOUT_MS, alias="maxAgeMs", ge=0),
    store: RelayStore = Depends(get_store),
):
    latest = store.fetch_latest(max_age_ms)
    return LatestImageResponse(image=latest.image, timestamp=latest.timestamp, detection=latest.detection)


@router.post("/test-detection", response_model=DetectionProbeResponse)
async def test_detection(body: DetectionProbeRequest, detector: CardDetector = Depends(get_detector)):
    """Run card detection on an image without storing it."""
    if not body.image:
        raise HTTPException(400, "No image provided")
    _check_size(body.image)

    start = time.time() * 1000
    result = await detector.detect(body.image)
    end = time.time() * 1000
    logger.info("Test detection took %dms (success=%s)", end - start, result.success)

    return DetectionProbeResponse(
        **dict(result),
        timing={"start": start, "end": end, "duration": end - start},
    )


@router.get("/detection-config", response_model=DetectionConfig)
async def detection_config(detector: CardDetector = Depends(get_detector)):
    # the API key itself is never returned
    return DetectionConfig(configured=detector.configured, workflow_url=detector.workflow_url)
