from dataclasses import dataclass, field
from typing import Optional
import argparse
import os

DIRECTIONS_API_URL = "https://maps.googleapis.com/maps/api/directions/json"
API_KEY_ENV_VAR = "GOOGLE_MAPS_API_KEY"


@dataclass
class RouteImpactConfig:
    """Configuration for route impact queries and the CLI."""

    buffer_meters: float = 200.0
    nearby_radius_km: float = 10.0
    map_buffer: float = 500.0
    timeout: int = 30
    workers: int = 1
    log_level: str = "WARNING"
    metrics: bool = False
    directions_url: str = DIRECTIONS_API_URL
    travel_mode: str = "driving"
    api_key: Optional[str] = field(default=None, repr=False)

    def get_api_key(self) -> Optional[str]:
        """Return the configured API key, falling back to the environment."""
        return self.api_key or os.environ.get(API_KEY_ENV_VAR)

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "RouteImpactConfig":
        """Build a config from parsed command-line arguments."""
        return cls(
            buffer_meters=args.buffer,
            nearby_radius_km=args.radius,
            map_buffer=args.map_buffer,
            timeout=args.timeout,
            workers=args.workers,
            log_level=args.log_level,
            metrics=args.metrics,
            travel_mode=args.mode,
            api_key=args.api_key,
        )
