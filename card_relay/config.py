import os


def _env_bool(name: str, default: bool) -> bool:
    v = os.environ.get(name)
    if v is None:
        return default
    return v.lower() in ("1", "true", "on", "yes")


PORT = int(os.environ.get("PORT", 3000))
PIN_CODE = os.environ.get("PIN_CODE", "1234")  # change for production

IMAGE_TIMEOUT_MS = int(os.environ.get("IMAGE_TIMEOUT_MS", 60_000))  # default viewer tolerance when maxAgeMs is omitted
MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10 MB of base64 text

ROBOFLOW_API_KEY = os.environ.get("ROBOFLOW_API_KEY", "")
ROBOFLOW_WORKFLOW_URL = os.environ.get(
    "ROBOFLOW_WORKFLOW_URL",
    "https://serverless.roboflow.com/mod2133/workflows/detect-playing-cards",
)
# seconds; unset = wait as long as the service takes
RECOGNITION_TIMEOUT = float(os.environ["RECOGNITION_TIMEOUT"]) if os.environ.get("RECOGNITION_TIMEOUT") else None

DEBUG = _env_bool("DEBUG", True)

# built frontend bundle to serve at "/"; unset = API only
FRONTEND_DIST = os.environ.get("FRONTEND_DIST", "")
