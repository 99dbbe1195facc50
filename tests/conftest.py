import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from card_relay.detection import CardDetector
from card_relay.relay_store import RelayStore

WORKFLOW_URL = "https://recognition.test/workflows/detect-playing-cards"


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def roboflow_body(predictions):
    """Response shaped like the Roboflow workflow API."""
    return {
        "outputs": [
            {
                "predictions": {
                    "image": {"width": 640, "height": 480},
                    "predictions": predictions,
                }
            }
        ]
    }


class RecordingService:
    """Mock recognition service; remembers the request bodies it received."""

    def __init__(self, status_code=200, body=None, content=None):
        self.status_code = status_code
        self.body = body if body is not None else roboflow_body([])
        self.content = content
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.body)


def make_detector(service, api_key="test-key") -> CardDetector:
    return CardDetector(api_key=api_key, workflow_url=WORKFLOW_URL, transport=httpx.MockTransport(service))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service():
    return RecordingService()


@pytest.fixture
def detector(service):
    return make_detector(service)


@pytest.fixture
def store(detector, clock):
    return RelayStore(detector, clock=clock)
