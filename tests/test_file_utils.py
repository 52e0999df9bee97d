import os
import pytest
from unittest.mock import patch

from routeimpact import file_utils
from routeimpact.file_utils import generate_output_filename


def test_strips_known_extension_and_reserves_file(tmp_path):
    input_path = str(tmp_path / "Morning Ride.GPX")

    output = generate_output_filename(input_path)

    assert output == str(tmp_path / "Morning Ride impact map.html")
    assert os.path.exists(output)


@pytest.mark.parametrize("name", ["route.geojson", "constructions.json"])
def test_other_known_extensions(tmp_path, name):
    output = generate_output_filename(str(tmp_path / name))
    base = name.rsplit(".", 1)[0]
    assert output == str(tmp_path / f"{base} impact map.html")


def test_unknown_extension_is_kept(tmp_path):
    output = generate_output_filename(str(tmp_path / "route.txt"), suffix="")
    assert output == str(tmp_path / "route.txt.html")


def test_numbered_variants_when_taken(tmp_path):
    input_path = str(tmp_path / "ride.gpx")

    first = generate_output_filename(input_path)
    second = generate_output_filename(input_path)
    third = generate_output_filename(input_path)

    assert first.endswith("ride impact map.html")
    assert second.endswith("ride impact map (1).html")
    assert third.endswith("ride impact map (2).html")


def test_exhausted_attempts(tmp_path):
    input_path = str(tmp_path / "ride.gpx")

    with patch.object(file_utils, "MAX_ATTEMPTS", 2):
        for _ in range(3):
            generate_output_filename(input_path)
        with pytest.raises(RuntimeError):
            generate_output_filename(input_path)


def test_unwritable_directory(tmp_path):
    input_path = str(tmp_path / "missing-dir" / "ride.gpx")

    with pytest.raises(ValueError):
        generate_output_filename(input_path)
