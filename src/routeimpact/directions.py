"""
Client for the Google Directions JSON API.

Only the parts the proximity query needs are kept: the overview polyline of
the first route and the distance/duration of each leg.
"""

from typing import Any, Dict, List, NamedTuple, Optional
import logging
import time
import requests

from .config import RouteImpactConfig
from .geometry import Coordinate

logger = logging.getLogger(__name__)


class DirectionsError(RuntimeError):
    """Raised when the routing provider cannot produce a route."""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class NoRouteFoundError(DirectionsError):
    """Raised when the provider answers OK but returns no routes."""


class Leg(NamedTuple):
    """One leg of a provider route."""

    distance: float  # Meters
    duration: float  # Seconds


class DirectionsRoute(NamedTuple):
    """The first route of a provider response."""

    polyline: str
    legs: List[Leg]

    def total_distance(self) -> float:
        return sum(leg.distance for leg in self.legs)

    def total_duration(self) -> float:
        return sum(leg.duration for leg in self.legs)


def _build_params(
    origin: Coordinate, destination: Coordinate, config: RouteImpactConfig, api_key: str
) -> Dict[str, str]:
    """Build query parameters; the provider expects "lat,lng" order."""
    return {
        "origin": f"{origin.latitude},{origin.longitude}",
        "destination": f"{destination.latitude},{destination.longitude}",
        "mode": config.travel_mode,
        "key": api_key,
    }


def _is_retryable_error(e: requests.exceptions.HTTPError) -> bool:
    """Check if an HTTP error is retryable."""
    if e.response is not None and hasattr(e.response, "status_code"):
        return e.response.status_code == 429 or e.response.status_code >= 500
    error_msg = str(e).lower()
    return any(code in error_msg for code in ["429", "500", "502", "503", "504"])


def parse_directions_response(data: Dict[str, Any]) -> DirectionsRoute:
    """
    Extract the first route from a Directions API response body.

    Raises:
        DirectionsError: If the provider status is not OK
        NoRouteFoundError: If no routes were returned
    """
    status = data.get("status")
    if status != "OK":
        details = data.get("error_message")
        message = f"Directions API error: {status}"
        if details:
            message += f" ({details})"
        raise DirectionsError(message, status=status)

    routes = data.get("routes") or []
    if not routes:
        raise NoRouteFoundError(
            "No route found between origin and destination", status=status
        )

    route = routes[0]
    legs = [
        Leg(
            distance=leg["distance"]["value"],
            duration=leg["duration"]["value"],
        )
        for leg in route.get("legs", [])
    ]
    return DirectionsRoute(polyline=route["overview_polyline"]["points"], legs=legs)


def query_directions(
    origin: Coordinate,
    destination: Coordinate,
    config: RouteImpactConfig,
) -> DirectionsRoute:
    """Query the Directions API for a route between two points.

    Retries up to 5 times with exponential backoff on 429 (rate limit) and
    5xx errors.

    Returns:
        DirectionsRoute for the first route returned

    Raises:
        DirectionsError: If no API key is configured or the provider rejects the request
        requests.exceptions.RequestException: On network or HTTP errors after retries
    """
    api_key = config.get_api_key()
    if not api_key:
        raise DirectionsError("Google Maps API key not configured")

    params = _build_params(origin, destination, config, api_key)

    attempt = 0
    max_retries = 5
    base_delay = 2.0

    while True:
        try:
            logger.debug(
                f"Requesting {config.travel_mode} directions from {params['origin']} to {params['destination']}"
            )
            response = requests.get(
                config.directions_url, params=params, timeout=config.timeout
            )
            response.raise_for_status()
            return parse_directions_response(response.json())

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.debug(
                f"HTTPError caught: status={status_code}, attempt={attempt}, max_retries={max_retries}"
            )

            if _is_retryable_error(e) and attempt < max_retries:
                delay = base_delay * (2**attempt)
                error_type = (
                    "Server error"
                    if status_code and status_code >= 500
                    else "Rate limited"
                )
                logger.warning(
                    f"{error_type} ({status_code or 'unknown'}), retrying in {delay:.0f}s (attempt {attempt + 1} of {max_retries + 1})"
                )
                time.sleep(delay)
                attempt += 1
                continue
            raise
