#!/usr/bin/env python3
"""
Filename utilities for generating output filenames.
"""

import os
import logging

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 180
_KNOWN_EXTENSIONS = (".gpx", ".geojson", ".json")


def generate_output_filename(input_filename: str, suffix: str = " impact map") -> str:
    """
    Generates an output HTML filename and reserves it by creating an empty file.

    Strategy:
    1. Drop a known input extension (.gpx, .geojson, .json; case-insensitive)
    2. Append the suffix and ".html"
    3. If file exists, try " (1).html", " (2).html", etc.
    4. Stop at 180 attempts
    5. Use exclusive open (`open(path, 'x')`) to avoid race conditions and reserve the name.

    Args:
        input_filename: Path to the input file the map is derived from
        suffix: Text appended to the base name

    Returns:
        Safe output filename that has been created as an empty file to reserve its name

    Raises:
        RuntimeError: If no available filename found after 180 attempts
        ValueError: If a filename cannot be created (e.g., due to permissions)
    """
    input_dir = os.path.dirname(input_filename)
    base_name = os.path.basename(input_filename)

    for extension in _KNOWN_EXTENSIONS:
        if base_name.lower().endswith(extension):
            base_name = base_name[: -len(extension)]
            break

    base_output = base_name + suffix
    candidates = [os.path.join(input_dir, base_output + ".html")]
    candidates.extend(
        os.path.join(input_dir, f"{base_output} ({i}).html")
        for i in range(1, MAX_ATTEMPTS + 1)
    )

    for candidate in candidates:
        try:
            with open(candidate, "x"):
                pass
            return candidate
        except FileExistsError:
            continue
        except OSError as e:
            logger.error(f"Cannot create file {candidate}: {e}")
            raise ValueError(f"Cannot create file: {e}")

    logger.error(
        f"Could not find an available filename after {MAX_ATTEMPTS} attempts. "
        f"Please clean up your output directory or specify a map path explicitly."
    )
    raise RuntimeError(f"No available filename found after {MAX_ATTEMPTS} attempts")
