"""
Encoded polyline codec.

Routing providers return route geometry as an encoded polyline: each
coordinate component (latitude first, then longitude) is stored as the
signed delta from the previous point, scaled by 10**precision, zig-zag
folded, split into 5-bit groups (low group first) and written as ASCII
characters offset by 63. The 0x20 bit marks that another group follows.
"""

from typing import List, Sequence, Tuple
import logging
import math

from .geometry import Coordinate

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 5

_CHAR_OFFSET = 63
_CONTINUATION_BIT = 0x20
_GROUP_MASK = 0x1F
_MAX_CHAR = _CHAR_OFFSET + 0x3F


class PolylineDecodeError(ValueError):
    """Raised when an encoded polyline is truncated or contains invalid characters."""

    def __init__(self, message: str, position: int):
        super().__init__(f"{message} at position {position}")
        self.position = position


def _decode_value(encoded: str, index: int) -> Tuple[int, int]:
    """
    Decode one signed varint starting at index.

    Returns:
        Tuple of (value, next_index)

    Raises:
        PolylineDecodeError: If the stream ends mid-group or holds a bad character
    """
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise PolylineDecodeError("Truncated polyline: stream ended mid-value", index)
        code = ord(encoded[index])
        if code < _CHAR_OFFSET or code > _MAX_CHAR:
            raise PolylineDecodeError(
                f"Invalid polyline character {encoded[index]!r}", index
            )
        chunk = code - _CHAR_OFFSET
        index += 1
        result |= (chunk & _GROUP_MASK) << shift
        shift += 5
        if chunk < _CONTINUATION_BIT:
            break

    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode_polyline(encoded: str, precision: int = DEFAULT_PRECISION) -> List[Coordinate]:
    """
    Decode an encoded polyline into an ordered list of Coordinates.

    Args:
        encoded: Encoded polyline string
        precision: Number of decimal digits the values were scaled by (5 for
                   Google, 6 for OSRM "polyline6")

    Returns:
        List of Coordinate objects in (longitude, latitude) order

    Raises:
        PolylineDecodeError: If the string is truncated or malformed
    """
    coords: List[Coordinate] = []
    factor = 10**precision
    index = 0
    lat = 0
    lng = 0

    while index < len(encoded):
        dlat, index = _decode_value(encoded, index)
        if index >= len(encoded):
            raise PolylineDecodeError(
                "Truncated polyline: latitude without longitude", index
            )
        dlng, index = _decode_value(encoded, index)
        lat += dlat
        lng += dlng
        coords.append(Coordinate(longitude=lng / factor, latitude=lat / factor))

    logger.debug(f"Decoded {len(coords)} points from {len(encoded)}-character polyline")
    return coords


def _encode_value(value: int) -> str:
    folded = ~(value << 1) if value < 0 else value << 1
    chars = []
    while folded >= _CONTINUATION_BIT:
        chars.append(chr((_CONTINUATION_BIT | (folded & _GROUP_MASK)) + _CHAR_OFFSET))
        folded >>= 5
    chars.append(chr(folded + _CHAR_OFFSET))
    return "".join(chars)


def encode_polyline(
    coords: Sequence[Coordinate], precision: int = DEFAULT_PRECISION
) -> str:
    """
    Encode Coordinates as a polyline string (inverse of decode_polyline).

    Args:
        coords: Sequence of Coordinate objects
        precision: Number of decimal digits to keep

    Returns:
        Encoded polyline string
    """
    factor = 10**precision
    parts = []
    prev_lat = 0
    prev_lng = 0

    for coord in coords:
        # Halves round up, matching the reference encoder
        lat = math.floor(coord.latitude * factor + 0.5)
        lng = math.floor(coord.longitude * factor + 0.5)
        parts.append(_encode_value(lat - prev_lat))
        parts.append(_encode_value(lng - prev_lng))
        prev_lat, prev_lng = lat, lng

    return "".join(parts)
