#!/usr/bin/env python3
"""
Route impact command-line tool.

Loads a set of candidate features (e.g. construction sites), builds a route
from a GPX file, a GeoJSON LineString, an encoded polyline or a routing
provider, and reports the candidates within a buffer of the route, nearest
first. Can also search for candidates around a single point.
"""

from typing import List, Optional
import argparse
import json
import logging
import sys
import requests
from gpxpy import gpx

from . import __version__
from . import visualization
from .candidate import Candidate, load_candidates
from .config import RouteImpactConfig
from .directions import DirectionsError, query_directions
from .file_utils import generate_output_filename
from .geometry import Coordinate
from .metrics import collect_metrics, log_metrics
from .polyline import PolylineDecodeError
from .proximity import (
    ProximityReport,
    find_provider_route_proximity,
    find_route_proximity,
    search_nearby,
)
from .route import InvalidRouteError, Route

logger = logging.getLogger("routeimpact")


def parse_lng_lat(value: str) -> Coordinate:
    """Parse a "lng,lat" command-line value into a Coordinate."""
    parts = value.split(",")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Expected LNG,LAT but got {value!r}")
    try:
        lng, lat = float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected numeric LNG,LAT but got {value!r}")
    if not (-180.0 <= lng <= 180.0 and -90.0 <= lat <= 90.0):
        raise argparse.ArgumentTypeError(f"Coordinate out of range: {value!r}")
    return Coordinate(longitude=lng, latitude=lat)


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    defaults = RouteImpactConfig()
    parser = argparse.ArgumentParser(
        description="Find features within a buffer distance of a route",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "filename",
        type=str,
        nargs="?",
        help="GPX file with the route",
    )
    parser.add_argument(
        "--candidates",
        type=str,
        required=True,
        help="JSON file with candidate records (list, or object with a 'docs' list)",
    )
    route_source = parser.add_mutually_exclusive_group()
    route_source.add_argument(
        "--geojson",
        type=str,
        default=None,
        help="GeoJSON file holding the route as a LineString",
    )
    route_source.add_argument(
        "--polyline",
        type=str,
        default=None,
        help="Route as an encoded polyline string",
    )
    route_source.add_argument(
        "--origin",
        type=parse_lng_lat,
        default=None,
        metavar="LNG,LAT",
        help="Route origin; the route is requested from the directions provider",
    )
    route_source.add_argument(
        "--near",
        type=parse_lng_lat,
        default=None,
        metavar="LNG,LAT",
        help="Search around this point instead of along a route",
    )
    parser.add_argument(
        "--destination",
        type=parse_lng_lat,
        default=None,
        metavar="LNG,LAT",
        help="Route destination (required with --origin)",
    )
    parser.add_argument(
        "--buffer",
        type=float,
        default=defaults.buffer_meters,
        help=f"Buffer around route in meters (default: {defaults.buffer_meters:g})",
    )
    parser.add_argument(
        "--radius",
        type=float,
        default=defaults.nearby_radius_km,
        help=f"Search radius in km for --near (default: {defaults.nearby_radius_km:g})",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output JSON file (default: stdout)",
    )
    parser.add_argument(
        "--map",
        type=str,
        nargs="?",
        const="",
        default=None,
        help="Write an HTML map (default name derived from the input file)",
    )
    parser.add_argument(
        "--map-buffer",
        type=float,
        default=defaults.map_buffer,
        help=f"Map margin around route in meters (default: {defaults.map_buffer:g})",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=defaults.workers,
        help="Worker processes for distance computation (default: 1)",
    )
    parser.add_argument(
        "--mode",
        type=str,
        default=defaults.travel_mode,
        choices=["driving", "walking", "bicycling", "transit"],
        help=f"Travel mode for the directions provider (default: {defaults.travel_mode})",
    )
    parser.add_argument(
        "--api-key",
        type=str,
        default=None,
        help="Directions API key (default: $GOOGLE_MAPS_API_KEY)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=defaults.timeout,
        help=f"Directions API timeout in seconds (default: {defaults.timeout})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=defaults.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=f"Set logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Output structured metrics after processing",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"routeimpact {__version__}",
    )
    return parser


def setup_logging(level_name: str) -> None:
    """Setup logging configuration."""
    level = getattr(logging, level_name)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Configure the root logger so all modules inherit the configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Suppress overly verbose third-party logging
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def load_route(args: argparse.Namespace) -> Route:
    """
    Build the route from whichever local source was given.

    Raises:
        ValueError: If no route source was given or the source is malformed
        FileNotFoundError, PermissionError: If a route file can't be read
        gpx.GPXException: If the GPX file is malformed
    """
    if args.polyline is not None:
        return Route.from_polyline(args.polyline)
    if args.geojson is not None:
        with open(args.geojson, "r", encoding="utf-8") as f:
            data = json.load(f)
        # Accept a bare geometry or a Feature wrapping one
        if isinstance(data, dict) and data.get("type") == "Feature":
            data = data.get("geometry")
        return Route.from_geojson(data)
    if args.filename is not None:
        return Route.from_file(args.filename)
    raise ValueError(
        "No route given: pass a GPX file, --geojson, --polyline or --origin/--destination"
    )


def warn_ignored_arguments(args: argparse.Namespace) -> None:
    """Warn about arguments that the chosen route source makes irrelevant."""
    if args.destination is not None and args.origin is None:
        logger.warning("--destination is ignored without --origin")

    if args.filename is None:
        return
    overriding = [
        flag
        for flag, value in (
            ("--polyline", args.polyline),
            ("--geojson", args.geojson),
            ("--origin", args.origin),
            ("--near", args.near),
        )
        if value is not None
    ]
    if overriding:
        logger.warning(f"GPX file {args.filename} is ignored because {overriding[0]} was given")


def write_output(data: dict, output: Optional[str]) -> None:
    """Write the JSON result to a file, or to stdout."""
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output is None:
        print(text)
        return
    with open(output, "w", encoding="utf-8") as f:
        f.write(text + "\n")
    logger.info(f"Results written to {output}")


def log_affected(report: ProximityReport, candidates: List[Candidate]) -> None:
    """Log a one-line summary per affected candidate at INFO level."""
    candidates_by_id = {}
    for candidate in candidates:
        candidates_by_id.setdefault(candidate.id, candidate)

    for result in report.results:
        logger.info(f"{result.distance:>8} m  {candidates_by_id[result.id].get_title()}")


def run_route_query(
    args: argparse.Namespace, config: RouteImpactConfig, candidates: List[Candidate]
) -> dict:
    """Run a route proximity query and return the JSON payload."""
    if args.origin is not None:
        if args.destination is None:
            raise ValueError("--destination is required with --origin")
        directions_route = query_directions(args.origin, args.destination, config)
        impact = find_provider_route_proximity(
            directions_route, candidates, config.buffer_meters, config.workers
        )
        route, report, payload = impact.route, impact.proximity, impact.to_dict()
        logger.info(
            f"Provider route: {impact.distance / 1000:.2f} km, {impact.duration / 60:.0f} min"
        )
    else:
        route = load_route(args)
        report = find_route_proximity(
            route, candidates, config.buffer_meters, config.workers
        )
        payload = report.to_dict()

    logger.info(f"Route has {len(route)} points, {route.length() / 1000:.2f} km")
    log_affected(report, candidates)

    metrics = collect_metrics(report, candidates)
    log_metrics(metrics, config.metrics)

    if args.map is not None:
        if route.is_degenerate():
            logger.warning("Route has fewer than two points; not creating a map")
        else:
            map_filename = args.map or generate_output_filename(
                args.filename or args.geojson or args.candidates
            )
            visualization.create_route_map(
                route, map_filename, report, candidates, metrics, config
            )
            logger.info(f"Map written to {map_filename}")

    return payload


def main():
    """
    Parses command-line arguments, loads candidates and the route,
    and writes the ranked proximity results as JSON.
    """
    parser = create_argument_parser()
    args = parser.parse_args()

    setup_logging(args.log_level)
    config = RouteImpactConfig.from_args(args)

    try:
        candidates = load_candidates(args.candidates)
    except FileNotFoundError:
        logger.error(f"Candidates file not found: {args.candidates}")
        sys.exit(1)
    except (PermissionError, ValueError) as e:
        logger.error(f"Cannot read candidates file {args.candidates}: {e}")
        sys.exit(1)
    logger.info(f"Loaded {len(candidates)} candidates")
    warn_ignored_arguments(args)

    try:
        if args.near is not None:
            payload = search_nearby(
                args.near, candidates, config.nearby_radius_km
            ).to_dict()
        else:
            payload = run_route_query(args, config, candidates)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e.filename}")
        sys.exit(1)
    except PermissionError as e:
        logger.error(f"Cannot read file (permission denied): {e.filename}")
        sys.exit(1)
    except gpx.GPXException as e:
        logger.error(f"Invalid GPX file: {e}")
        sys.exit(1)
    except PolylineDecodeError as e:
        logger.error(f"Invalid polyline: {e}")
        sys.exit(1)
    except InvalidRouteError as e:
        logger.error(f"Invalid route: {e}")
        sys.exit(1)
    except DirectionsError as e:
        logger.error(str(e))
        sys.exit(1)
    except requests.exceptions.RequestException as e:
        logger.error(f"Directions request failed: {e}")
        sys.exit(1)
    except (RuntimeError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)

    write_output(payload, args.output)


if __name__ == "__main__":
    main()
