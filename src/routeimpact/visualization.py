#!/usr/bin/env python3
"""
Route visualization using folium maps.
"""

from typing import Any, Dict, Sequence
import html
import logging
import folium
from folium.template import Template

from .candidate import Candidate
from .config import RouteImpactConfig
from .metrics import ProximityMetrics
from .proximity import ProximityReport, ProximityResult
from .route import Route

logger = logging.getLogger(__name__)

ROUTE_COLOR = "#2E86AB"
FEATURE_COLOR = "#D23C4C"


class ImpactLegend(folium.MacroElement):
    """Custom legend for route impact visualization with dynamic counts."""

    def __init__(self, metrics: ProximityMetrics, buffer_meters: float):
        super().__init__()
        self.included_count = metrics.included_count
        self.total_checked = metrics.total_checked
        self.buffer_meters = buffer_meters

        self._template = Template(
            """
        {% macro html(this, kwargs) %}
        <div id="impact-legend" style="
            position: fixed;
            bottom: 50px;
            left: 50px;
            width: 230px;
            background-color: white;
            border: 2px solid grey;
            z-index: 9999;
            font-size: 13px;
            padding: 12px;
            font-family: Arial, sans-serif;
            border-radius: 5px;
            box-shadow: 0 2px 5px rgba(0,0,0,0.2);
            box-sizing: border-box;
        ">
            <b>Legend</b><br>
            <div style="margin: 4px 0; line-height: 1.3;">
                <span style="color: #2E86AB; font-weight: normal; font-size: 18px;">—</span>
                Route
            </div>
            <div style="margin: 4px 0; line-height: 1.3;">
                <span style="color: #D23C4C; font-weight: bold; font-size: 18px;">—</span>
                Within {{ this.buffer_meters }} m ({{ this.included_count }}/{{ this.total_checked }})
            </div>
        </div>
        {% endmacro %}
        """
        )


def result_to_html(result: ProximityResult) -> str:
    """
    Format a proximity result into HTML for popup display.

    Args:
        result: The ProximityResult to format

    Returns:
        HTML-formatted string
    """
    properties = result.properties
    html_parts = []

    if properties.get("title"):
        html_parts.append(f"<b>{html.escape(str(properties['title']))}</b><br>")

    html_parts.append(f"<b>Distance:</b> {result.distance} m")
    html_parts.append(f"<br><b>ID:</b> {html.escape(str(result.id))}")

    remaining = {k: v for k, v in properties.items() if k != "title"}
    if remaining:
        html_parts.append("<br><b>Details:</b>")
        for key, value in sorted(remaining.items()):
            value_str = str(value)
            if len(value_str) > 50:
                value_str = value_str[:47] + "..."
            html_parts.append(
                f"<br>&nbsp;&nbsp;<i>{html.escape(key)}:</i> {html.escape(value_str)}"
            )

    return "".join(html_parts)


def _add_result(
    route_map: folium.Map, result: ProximityResult, candidate: Candidate
) -> None:
    """Draw one affected candidate: its geometry if it has one, else its centroid."""
    popup = folium.Popup(result_to_html(result), max_width=400)

    if candidate.geometry is not None:
        folium.GeoJson(
            candidate.geometry.to_mapping(),
            style_function=lambda _feature: {
                "color": FEATURE_COLOR,
                "weight": 4,
                "opacity": 0.9,
                "fillOpacity": 0.3,
            },
            popup=popup,
        ).add_to(route_map)
    elif result.center is not None:
        folium.CircleMarker(
            [result.center.latitude, result.center.longitude],
            radius=6,
            color=FEATURE_COLOR,
            fill=True,
            popup=popup,
        ).add_to(route_map)


def create_route_map(
    route: Route,
    output_filename: str,
    report: ProximityReport,
    candidates: Sequence[Candidate],
    metrics: ProximityMetrics,
    config: RouteImpactConfig,
) -> None:
    """
    Create an interactive map showing the route and affected candidates, save as HTML.

    Args:
        route: Route object representing the route
        output_filename: Path where HTML map file should be saved
        report: ProximityReport whose results are drawn
        candidates: Candidates the report was computed from
        metrics: ProximityMetrics for the legend
        config: RouteImpactConfig with the map buffer

    Raises:
        ValueError: If route is degenerate
    """
    if route.is_degenerate():
        raise ValueError("Cannot create map for a route with fewer than two points")

    south, west, north, east = route.get_bbox(config.map_buffer)

    center_lat = (south + north) / 2
    center_lon = (west + east) / 2

    logger.debug(f"Creating map centered at ({center_lat:.4f}, {center_lon:.4f})")

    route_map = folium.Map(
        location=[center_lat, center_lon],
        tiles=None,
    )

    folium.TileLayer(
        tiles="CartoDB positron",
        attr=(
            "&copy; <a href='https://www.openstreetmap.org/copyright'>OpenStreetMap</a> "
            "contributors &copy; <a href='https://carto.com/attributions'>CARTO</a>"
        ),
        name="Standard",
        control=True,
        show=True,
    ).add_to(route_map)

    folium.TileLayer(
        tiles="https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        attr=(
            "Tiles &copy; Esri &mdash; Source: Esri, i-cubed, USDA, USGS, AEX, GeoEye, "
            "Getmapping, Aerogrid, IGN, IGP, UPR-EGP, and the GIS User Community"
        ),
        name="Satellite",
        control=True,
        show=False,
    ).add_to(route_map)

    folium.LayerControl().add_to(route_map)

    coordinates = [[c.latitude, c.longitude] for c in route.coords]
    folium.PolyLine(
        coordinates,
        color=ROUTE_COLOR,
        weight=3,
        opacity=0.6,
        popup=f"Route ({route.length() / 1000:.2f} km)",
        z_index=1,
    ).add_to(route_map)

    folium.Marker(
        [route[0].latitude, route[0].longitude],
        popup="Start",
        icon=folium.Icon(color="green", icon="play"),
    ).add_to(route_map)

    folium.Marker(
        [route[-1].latitude, route[-1].longitude],
        popup="End",
        icon=folium.Icon(color="red", icon="stop"),
    ).add_to(route_map)

    candidates_by_id: Dict[Any, Candidate] = {}
    for candidate in candidates:
        candidates_by_id.setdefault(candidate.id, candidate)

    for result in report.results:
        candidate = candidates_by_id.get(result.id)
        if candidate is None:
            logger.warning(f"No candidate found for result {result.id!r}")
            continue
        _add_result(route_map, result, candidate)

    route_map.add_child(ImpactLegend(metrics, report.buffer_meters))

    route_map.fit_bounds([[south, west], [north, east]])
    route_map.save(output_filename)

    logger.debug(
        f"Map saved to {output_filename} with {len(report.results)}/{report.total_checked} candidates within buffer"
    )
