class RelayError(Exception):
    """Base class for card relay errors."""


class InvalidInput(RelayError):
    """Upload rejected before touching the store (missing or empty image)."""


class UpstreamError(RelayError):
    """Recognition service unreachable, non-2xx, or body not decodable."""


class MalformedUpstreamShape(UpstreamError):
    """Recognition succeeded but the predictions are not in the expected shape."""
