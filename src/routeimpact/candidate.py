#!/usr/bin/env python3
"""Candidate features checked against a route (e.g. construction sites)."""

from typing import Any, Dict, List, Optional
import json
import logging

from .feature import Geometry, parse_coordinate, parse_geometry
from .geometry import Coordinate

logger = logging.getLogger(__name__)

# Keys consumed by Candidate itself; everything else passes through untouched
_RESERVED_KEYS = ("id", "geometry", "centroid")


class Candidate:
    """A single feature with a geometry and/or a fallback centroid."""

    def __init__(
        self,
        id: Any,
        geometry: Optional[Geometry] = None,
        centroid: Optional[Coordinate] = None,
        properties: Optional[Dict[str, Any]] = None,
    ):
        """Initializes a Candidate object.

        Args:
            id: External identifier of the feature.
            geometry: Parsed geometry, or None if absent or malformed.
            centroid: Fallback point used when there is no geometry.
            properties: Pass-through display fields (title, status, progress...).
        """
        self.id = id
        self.geometry = geometry
        self.centroid = centroid
        self.properties = properties if properties is not None else {}

    def __repr__(self) -> str:
        kind = self.geometry.type.value if self.geometry else "centroid"
        return f"Candidate(id={self.id!r}, {kind})"

    def get_title(self) -> str:
        """Get the display title, or a formatted ID if the record has none."""
        return str(self.properties.get("title") or f"<{self.id}>")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Candidate":
        """
        Build a Candidate from a storage record.

        Malformed geometry and centroid values are dropped silently; such a
        candidate is simply skipped by the proximity query.

        Args:
            record: Mapping with "id", optional "geometry" (GeoJSON) and
                    optional "centroid" ([lon, lat])

        Returns:
            Candidate object

        Raises:
            KeyError: If the record has no "id"
        """
        candidate_id = record["id"]
        properties = {k: v for k, v in record.items() if k not in _RESERVED_KEYS}
        return cls(
            id=candidate_id,
            geometry=parse_geometry(record.get("geometry")),
            centroid=parse_coordinate(record.get("centroid")),
            properties=properties,
        )


def parse_candidates(records: List[Dict[str, Any]]) -> List[Candidate]:
    """
    Convert raw records into Candidate objects, skipping records without an id.

    Args:
        records: Raw records from the storage layer

    Returns:
        List of Candidate objects in input order
    """
    candidates = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning(f"Skipping record {i}: expected an object, got {type(record).__name__}")
            continue
        try:
            candidates.append(Candidate.from_record(record))
        except KeyError:
            logger.warning(f"Skipping record {i}: missing 'id'")
            continue
    return candidates


def load_candidates(filename: str) -> List[Candidate]:
    """
    Load candidates from a JSON file.

    The file holds either a list of records or a page object with a "docs"
    list, as returned by the storage layer.

    Args:
        filename: Path to JSON file

    Returns:
        List of Candidate objects

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If the file is not valid JSON or has an unexpected shape.
    """
    logger.debug(f"Reading candidates file: {filename}")
    with open(filename, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("docs")
    if not isinstance(data, list):
        raise ValueError(
            "Candidates file must contain a list of records or an object with a 'docs' list"
        )

    candidates = parse_candidates(data)
    logger.debug(f"Loaded {len(candidates)} candidates from {filename}")
    return candidates
