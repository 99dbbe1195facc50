# card_relay/relay_store.py
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol

from card_relay.errors import InvalidInput
from card_relay.schemas import DetectionResult, LatestImage, UploadResult

logger = logging.getLogger(__name__)


class Detector(Protocol):
    async def detect(self, image: str) -> DetectionResult: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """ISO-8601 UTC with milliseconds and a ``Z`` suffix."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime | None:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class StoredImage:
    image: str
    captured_at: str
    detection: DetectionResult | None = None


class RelayStore:
    """Single slot holding the latest uploaded image and its detection.

    Reads apply a caller-supplied staleness window but never delete; the
    record only changes when a newer upload commits. Uploads are ordered by
    initiation: a record is written only if no upload started later has
    committed already, so a slow detecting upload cannot overwrite a newer one.
    """

    def __init__(self, detector: Detector, clock: Callable[[], datetime] = utc_now):
        self._detector = detector
        self._clock = clock
        self._lock = threading.Lock()
        self._record: StoredImage | None = None
        self._initiated = 0
        self._committed = 0

    @property
    def has_image(self) -> bool:
        return self._record is not None

    async def upload(self, image: str | None, timestamp: str | None = None, detect: bool = False) -> UploadResult:
        if not image:
            raise InvalidInput("No image provided")

        timestamp = timestamp or format_timestamp(self._clock())
        with self._lock:
            self._initiated += 1
            seq = self._initiated

        logger.info("Image upload #%d: %d KB, timestamp=%s, detect=%s",
                    seq, round(len(image) / 1024), timestamp, detect)

        # recognition runs outside the lock
        detection = await self._detector.detect(image) if detect else None

        record = StoredImage(image=image, captured_at=timestamp, detection=detection)
        with self._lock:
            if seq > self._committed:
                self._record = record
                self._committed = seq
                committed = True
            else:
                committed = False

        if not committed:
            logger.info("Image upload #%d superseded by a newer upload, not stored", seq)
        return UploadResult(timestamp=timestamp, detection=detection)

    def fetch_latest(self, max_age_ms: float) -> LatestImage:
        with self._lock:
            record = self._record

        if record is None:
            logger.debug("Image request: nothing stored")
            return LatestImage()

        captured = parse_timestamp(record.captured_at)
        if captured is None:
            logger.warning("Stored timestamp %r is not ISO-8601, treating image as stale", record.captured_at)
            return LatestImage()

        age_ms = (self._clock() - captured).total_seconds() * 1000
        stale = age_ms > max_age_ms
        logger.debug("Image request: age=%ds, max_age=%dms, stale=%s", round(age_ms / 1000), max_age_ms, stale)
        if stale:
            return LatestImage()

        return LatestImage(image=record.image, timestamp=record.captured_at, detection=record.detection)
