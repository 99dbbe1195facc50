from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel
from typing import Dict, List

from card_relay.card_names import card_name


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Card(CamelModel):
    class_label: str
    confidence: float = Field(ge=0, le=1)
    x: float | None = None
    y: float | None = None

    @computed_field(alias="name")
    @property
    def name(self) -> str:
        return card_name(self.class_label)


class DetectionResult(CamelModel):
    success: bool
    cards: List[Card] = Field(default_factory=list)
    total_detections: int = 0
    error: str | None = None

    @computed_field(alias="duplicatesRemoved")
    @property
    def duplicates_removed(self) -> int:
        return self.total_detections - len(self.cards)

    @classmethod
    def failure(cls, error: str) -> "DetectionResult":
        return cls(success=False, cards=[], total_detections=0, error=error)


class LatestImage(CamelModel):
    image: str | None = None
    timestamp: str | None = None
    detection: DetectionResult | None = None


class UploadResult(CamelModel):
    timestamp: str
    detection: DetectionResult | None = None


# ---------- request / response bodies ----------
class UploadRequest(CamelModel):
    image: str | None = None
    timestamp: str | None = None
    detect_cards: bool = False


class UploadResponse(UploadResult):
    success: bool = True


class LatestImageResponse(LatestImage):
    success: bool = True


class DetectionProbeRequest(CamelModel):
    image: str | None = None


class DetectionProbeResponse(DetectionResult):
    timing: Dict[str, float]


class PinRequest(CamelModel):
    pin: str = ""


class HealthResponse(CamelModel):
    status: str
    timestamp: str
    has_image: bool


class DetectionConfig(CamelModel):
    configured: bool
    workflow_url: str
