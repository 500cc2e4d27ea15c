"""
Position sources for movement-gated alerts
"""
import logging
from collections import namedtuple

import requests

from config.settings import Config

logger = logging.getLogger(__name__)

Position = namedtuple("Position", ["latitude", "longitude"])


class PositionUnavailableError(RuntimeError):
    """Raised when the current position cannot be determined"""


class PositionSource:
    """Supplies the user's current position on demand"""

    def get_position(self) -> Position:
        raise NotImplementedError


class StaticPositionSource(PositionSource):
    """Always reports the same position, or none at all"""

    def __init__(self, position: Position = None):
        self.position = position

    def get_position(self) -> Position:
        if self.position is None:
            raise PositionUnavailableError("No position configured")
        return self.position


class HttpPositionSource(PositionSource):
    """
    Polls an HTTP endpoint (a phone GPS bridge, a location API) that answers
    with ``{"latitude": ..., "longitude": ...}``.
    """

    def __init__(self, url: str, timeout: float = Config.POSITION_TIMEOUT_SECONDS,
                 session: requests.Session = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_position(self) -> Position:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.Timeout as e:
            raise PositionUnavailableError(f"Position request timed out: {e}") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise PositionUnavailableError(f"Position request failed: {e}") from e

        try:
            return Position(float(payload["latitude"]), float(payload["longitude"]))
        except (KeyError, TypeError, ValueError) as e:
            raise PositionUnavailableError(f"Malformed position payload: {payload!r}") from e
