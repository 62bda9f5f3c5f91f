"""
Site Survey Earthwork Example

This example demonstrates:
1. Generating scattered survey points
2. Interpolating a DTM and tracing contours
3. Grid and TIN cut/fill against a pad elevation
4. Exporting the mesh, contours and volume summary

Run from the project root:
    python examples/site_survey.py
"""

import logging
import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dtm_earthwork import EarthworkEngine
from dtm_earthwork.io.point_cloud import generate_sample_terrain
from dtm_earthwork.io.exporters import (
    export_contours_geojson,
    export_tin_geojson,
    export_volume_json,
)


def main(output_dir=None):
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    output_dir = Path(output_dir) if output_dir else Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    print("=" * 60)
    print("DTM EARTHWORK - SITE SURVEY EXAMPLE")
    print("=" * 60)

    # Step 1: survey points (replace with PointCloudLoader.load() for field data)
    print("\n[1] Generating survey points...")
    survey = generate_sample_terrain(num_points=400, size=(120.0, 80.0), seed=42)

    bounds_min, bounds_max = survey.bounds
    print(f"   Points: {survey.num_points:,}")
    print(f"   Z range: {bounds_min[2]:.1f} to {bounds_max[2]:.1f}")

    engine = EarthworkEngine()

    # Step 2: DTM and contours
    print("\n[2] Interpolating DTM (2 m cells)...")
    dtm = engine.generate_dtm(survey, pixel_size=2.0)
    if not dtm.ok:
        print(f"   Failed: {dtm.error}")
        return 1
    print(f"   Grid: {dtm.value.width} x {dtm.value.height}")

    contours = engine.generate_contours(interval=1.0)
    if contours.ok:
        print(f"   Contours: {len(contours.value)} lines")
        export_contours_geojson(contours.value, output_dir / "contours.geojson")
    else:
        print(f"   Contours failed: {contours.error}")

    # Step 3: volumes against a pad elevation over a building footprint
    pad_elevation = 100.0
    footprint = [(30.0, 20.0), (90.0, 20.0), (90.0, 60.0), (30.0, 60.0)]

    print(f"\n[3] Cut/fill at {pad_elevation} over the footprint...")
    grid_volume = engine.calculate_volume(pad_elevation, footprint)
    if grid_volume.ok:
        print(grid_volume.value.summary())
    else:
        print(f"   Grid volume failed: {grid_volume.error}")

    if engine.generate_tin(survey).ok:
        tin_volume = engine.calculate_volume_tin(pad_elevation, footprint)
        if tin_volume.ok:
            print(tin_volume.value.summary())
        else:
            print(f"   TIN volume failed: {tin_volume.error}")
    else:
        print(f"   TIN failed: {engine.last_error}")

    # Step 4: exports
    print("\n[4] Exporting...")
    if grid_volume.ok:
        export_volume_json(grid_volume.value, output_dir / "volume.json", base_elevation=pad_elevation)
    if engine.tin is not None:
        export_tin_geojson(engine.tin, output_dir / "tin.geojson")
    obj = engine.export_dtm_as_obj(output_dir / "dtm.obj")
    if obj.ok:
        print(f"   Mesh: {obj.value}")

    saved = engine.save_dtm(output_dir / "dtm.tif")
    if not saved.ok:
        print(f"   GeoTIFF skipped: {saved.error}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
