"""Playing-card detection through the Roboflow workflow API.

The recognition service is called once per image; its response is scanned for
the first ``predictions`` list and duplicate detections of the same card are
collapsed into the highest-confidence one. Every failure ends up inside the
returned :class:`DetectionResult`; nothing is raised to the caller.
"""
import logging
import math
import re
from collections.abc import Mapping
from typing import Any, Dict, List

import httpx
from pydantic import ValidationError

from card_relay.config import RECOGNITION_TIMEOUT, ROBOFLOW_API_KEY, ROBOFLOW_WORKFLOW_URL
from card_relay.errors import MalformedUpstreamShape, UpstreamError
from card_relay.schemas import Card, DetectionResult

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = re.compile(r"^data:image/[^;,]+;base64,")
LABEL_KEYS = ("class", "classLabel", "class_name")


def strip_data_uri(image: str) -> str:
    return DATA_URI_PREFIX.sub("", image, count=1)


def _predictions_of(entry: Any) -> List | None:
    if not isinstance(entry, Mapping):
        return None
    preds = entry.get("predictions")
    if isinstance(preds, list):
        return preds
    # workflow blocks nest the list: {"predictions": {"image": ..., "predictions": [...]}}
    if isinstance(preds, Mapping) and isinstance(preds.get("predictions"), list):
        return preds["predictions"]
    return None


def find_predictions(payload: Any) -> List:
    """Return the first ``predictions`` list found in ``payload["outputs"]``.

    ``outputs`` may be a list or a mapping of named entries; entries are
    scanned in response order and the first match wins. Anything else yields
    an empty list.
    """
    if not isinstance(payload, Mapping):
        return []
    outputs = payload.get("outputs")
    if isinstance(outputs, Mapping):
        entries = list(outputs.values())
    elif isinstance(outputs, list):
        entries = outputs
    else:
        return []

    for entry in entries:
        preds = _predictions_of(entry)
        if preds is not None:
            return preds
    return []


def parse_prediction(raw: Any) -> Card:
    if not isinstance(raw, Mapping):
        raise MalformedUpstreamShape(f"prediction is not an object: {raw!r}")

    label = next((raw[k] for k in LABEL_KEYS if raw.get(k) is not None), None)
    if label is None:
        raise MalformedUpstreamShape("prediction has no class label")

    try:
        confidence = float(raw["confidence"])
    except (KeyError, TypeError, ValueError):
        raise MalformedUpstreamShape(f"prediction {label!r} has no numeric confidence")
    # a NaN kept first is never replaced in dedupe_cards
    if not (math.isfinite(confidence) and 0 <= confidence <= 1):
        raise MalformedUpstreamShape(f"prediction {label!r} confidence {confidence} is outside [0, 1]")

    try:
        return Card(class_label=str(label), confidence=confidence, x=raw.get("x"), y=raw.get("y"))
    except ValidationError as e:
        raise MalformedUpstreamShape(f"prediction {label!r} has a bad position: {e}") from e


def dedupe_cards(cards: List[Card]) -> List[Card]:
    """Keep one card per class label: the highest confidence, earliest on ties.

    Output order is the order in which each label first appears.
    """
    best: Dict[str, Card] = {}
    for card in cards:
        kept = best.get(card.class_label)
        if kept is None or card.confidence > kept.confidence:
            best[card.class_label] = card
    return list(best.values())


class CardDetector:
    def __init__(
        self,
        api_key: str = ROBOFLOW_API_KEY,
        workflow_url: str = ROBOFLOW_WORKFLOW_URL,
        timeout: float | None = RECOGNITION_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.workflow_url = workflow_url
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _call_service(self, image: str) -> Any:
        body = {
            "api_key": self.api_key,
            "inputs": {"image": {"type": "base64", "value": image}},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.workflow_url, json=body)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Recognition service unreachable: {e}") from e

        if not response.is_success:
            raise UpstreamError(f"Recognition service returned HTTP {response.status_code}: {response.text[:200]}")

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(f"Recognition response is not valid JSON: {e}") from e

        if not isinstance(payload, Mapping):
            raise MalformedUpstreamShape("Recognition response is not a JSON object")
        return payload

    async def detect(self, image: str) -> DetectionResult:
        if not self.configured:
            logger.warning("Card detection requested but no Roboflow API key is configured")
            return DetectionResult.failure("Card detection is not configured")

        try:
            payload = await self._call_service(strip_data_uri(image))
            raw = find_predictions(payload)
            cards = [parse_prediction(p) for p in raw]
        except UpstreamError as e:
            logger.error("Card detection failed: %s", e)
            return DetectionResult.failure(str(e))

        kept = dedupe_cards(cards)
        logger.info("Card detection: %d raw, %d kept (%s)",
                    len(cards), len(kept), ", ".join(c.class_label for c in kept) or "none")
        return DetectionResult(success=True, cards=kept, total_detections=len(cards))
