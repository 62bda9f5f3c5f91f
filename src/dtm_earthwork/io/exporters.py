"""
Export utilities for earthwork results.

JSON volume summaries and GeoJSON for contours, TIN triangles and
boundary rings. Uses only the standard library json module.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Union

from ..core.validation import validate_boundary, validate_output_path

if TYPE_CHECKING:
    from ..core.contours import ContourLine
    from ..core.tin import TIN
    from ..core.volume import VolumeResult


def _with_crs(geojson: Dict[str, Any], crs: Optional[str]) -> Dict[str, Any]:
    # Named CRS as a foreign member (GeoJSON 2008 style)
    if crs:
        geojson["crs"] = {
            "type": "name",
            "properties": {"name": crs}
        }
    return geojson


def _write_json(data: Dict[str, Any], filepath: Union[str, Path], context: str, indent: int = 2) -> Path:
    path = validate_output_path(filepath, context)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent)
    return path


def export_volume_json(
    result: 'VolumeResult',
    filepath: Union[str, Path],
    base_elevation: Optional[float] = None,
    indent: int = 2,
) -> Path:
    """
    Export a cut/fill summary to JSON.

    Args:
        result: VolumeResult from VolumeEngine
        filepath: Output JSON file path
        base_elevation: Reference elevation to record alongside the totals
        indent: JSON indentation level (default: 2)
    """
    data = result.to_dict()
    if base_elevation is not None:
        data['base_elevation'] = base_elevation

    return _write_json(data, filepath, "volume summary", indent=indent)


def export_contours_geojson(
    contours: Sequence['ContourLine'],
    filepath: Union[str, Path],
    crs: Optional[str] = None,
) -> Path:
    """
    Export contour lines as a FeatureCollection of LineStrings.

    Each feature carries its `elevation` property.
    """
    features: List[Dict[str, Any]] = [
        {
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [[x, y] for x, y in line.points],
            },
            "properties": {"elevation": line.elevation},
        }
        for line in contours
    ]

    geojson = {"type": "FeatureCollection", "features": features}
    return _write_json(_with_crs(geojson, crs), filepath, "contour GeoJSON")


def export_tin_geojson(
    tin: 'TIN',
    filepath: Union[str, Path],
    crs: Optional[str] = None,
) -> Path:
    """
    Export TIN triangles as 3D Polygon features.

    Properties record the triangle number, its vertex indices and mean
    elevation.
    """
    features: List[Dict[str, Any]] = []

    for n, (tri, corners) in enumerate(zip(tin.triangles, tin.triangle_vertices())):
        ring = [[float(x), float(y), float(z)] for x, y, z in corners]
        ring.append(ring[0])
        features.append({
            "type": "Feature",
            "geometry": {"type": "Polygon", "coordinates": [ring]},
            "properties": {
                "triangle": n,
                "vertices": [int(i) for i in tri],
                "mean_elevation": float(corners[:, 2].mean()),
            },
        })

    geojson = {
        "type": "FeatureCollection",
        "features": features,
        "properties": {
            "vertex_count": tin.vertex_count,
            "triangle_count": tin.triangle_count,
        },
    }
    return _write_json(_with_crs(geojson, crs), filepath, "TIN GeoJSON")


def export_boundary_geojson(
    boundary: Any,
    filepath: Union[str, Path],
    properties: Optional[Dict[str, Any]] = None,
    crs: Optional[str] = None,
) -> Path:
    """
    Export a boundary ring (e.g. from create_buffer) as a Polygon feature.

    Args:
        boundary: Ring of at least 3 (x, y) points; closed on output
        filepath: Output GeoJSON file path
        properties: Optional properties dict to attach to feature
        crs: Optional CRS string (added as foreign member)
    """
    ring = validate_boundary(boundary)
    coordinates = [] if ring is None else [[float(x), float(y)] for x, y in ring]
    if coordinates:
        coordinates.append(coordinates[0])

    geojson: Dict[str, Any] = {
        "type": "FeatureCollection",
        "features": [{
            "type": "Feature",
            "geometry": {
                "type": "Polygon",
                "coordinates": [coordinates] if coordinates else [],
            },
            "properties": properties or {},
        }],
    }
    return _write_json(_with_crs(geojson, crs), filepath, "boundary GeoJSON")
