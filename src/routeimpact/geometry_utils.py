#!/usr/bin/env python3
"""
Point-to-segment and point-to-route distance calculations.
"""

from typing import Sequence
import logging
import math

from .geometry import Coordinate, haversine_distance

logger = logging.getLogger(__name__)


def project_onto_segment(
    point: Coordinate, seg_start: Coordinate, seg_end: Coordinate
) -> Coordinate:
    """
    Find the closest point on a line segment using planar parametric projection.

    The projection works directly in (longitude, latitude) space:
    t = ((P-A) · (B-A)) / |B-A|², clamped to [0, 1].

    Args:
        point: Point to project
        seg_start: Start of line segment
        seg_end: End of line segment

    Returns:
        Coordinate of the projected point on the segment
    """
    ab_x = seg_end.longitude - seg_start.longitude
    ab_y = seg_end.latitude - seg_start.latitude
    ap_x = point.longitude - seg_start.longitude
    ap_y = point.latitude - seg_start.latitude

    ab_ab = ab_x * ab_x + ab_y * ab_y
    ap_ab = ap_x * ab_x + ap_y * ab_y

    # Zero-length segment collapses to its start point
    t = ap_ab / ab_ab if ab_ab != 0 else 0.0
    t = max(0.0, min(1.0, t))

    return Coordinate(
        longitude=seg_start.longitude + t * ab_x,
        latitude=seg_start.latitude + t * ab_y,
    )


def point_to_segment_distance(
    point: Coordinate, seg_start: Coordinate, seg_end: Coordinate
) -> float:
    """
    Calculate the distance from a point to a line segment.

    The closest point is found by planar projection in degree space and the
    distance to it is then measured with the haversine formula. This is
    accurate for buffers up to tens of kilometers at mid-latitudes and
    degrades near the poles and along very long segments.

    Args:
        point: Point to measure distance from
        seg_start: Start of line segment
        seg_end: End of line segment

    Returns:
        Distance in meters
    """
    closest = project_onto_segment(point, seg_start, seg_end)
    return haversine_distance(
        point.latitude, point.longitude, closest.latitude, closest.longitude
    )


def point_to_route_distance(point: Coordinate, route: Sequence[Coordinate]) -> float:
    """
    Calculate the minimum distance from a point to any segment of a route.

    Args:
        point: Point to measure distance from
        route: Ordered route coordinates

    Returns:
        Distance in meters, or infinity if the route has fewer than two points
    """
    min_distance = math.inf

    for i in range(len(route) - 1):
        distance = point_to_segment_distance(point, route[i], route[i + 1])
        if distance < min_distance:
            min_distance = distance

    return min_distance
