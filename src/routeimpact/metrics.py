"""
Module for collecting and logging metrics related to a proximity query.
"""

import collections
import logging
from typing import Dict, NamedTuple, Sequence

from .candidate import Candidate
from .proximity import ProximityReport

logger = logging.getLogger(__name__)


class ProximityMetrics(NamedTuple):
    """Container for proximity query metrics."""

    source_counts: Dict[str, int]
    geometry_type_counts: Dict[str, int]
    included_count: int
    total_checked: int


def collect_metrics(
    report: ProximityReport, candidates: Sequence[Candidate]
) -> ProximityMetrics:
    """
    Collect metrics describing how candidates were measured.

    Args:
        report: Result of the proximity query
        candidates: Candidates the query examined

    Returns:
        ProximityMetrics containing all collected metrics
    """
    source_counts: Dict[str, int] = collections.defaultdict(int)
    geometry_type_counts: Dict[str, int] = collections.defaultdict(int)

    for candidate in candidates:
        if candidate.geometry is not None:
            source_counts["geometry"] += 1
            geometry_type_counts[candidate.geometry.type.value] += 1
        elif candidate.centroid is not None:
            source_counts["centroid"] += 1
        else:
            source_counts["skipped"] += 1

    return ProximityMetrics(
        source_counts=dict(source_counts),
        geometry_type_counts=dict(geometry_type_counts),
        included_count=len(report.results),
        total_checked=report.total_checked,
    )


def log_metrics(metrics: ProximityMetrics, enabled: bool) -> None:
    """
    Log detailed metrics as a structured block.

    Args:
        metrics: ProximityMetrics containing collected metrics
        enabled: Whether metrics output was requested
    """
    if not enabled:
        return

    logger.debug("=== ROUTEIMPACT_METRICS ===")
    logger.debug(f"total_checked={metrics.total_checked}")
    for source in ("geometry", "centroid", "skipped"):
        logger.debug(f"source[{source}]={metrics.source_counts.get(source, 0)}")
    for geometry_type, count in sorted(metrics.geometry_type_counts.items()):
        logger.debug(f"geometry_type[{geometry_type}]={count}")
    logger.debug(f"included={metrics.included_count}")
    logger.debug(f"excluded={metrics.total_checked - metrics.included_count}")
    logger.debug("=== END_ROUTEIMPACT_METRICS ===")
