"""Mesh representation and geometry metrics: bounding box, volume, complexity."""

from stl_quote.geometry.mesh import Triangle, TriangleMesh, mesh_from_triangles
from stl_quote.geometry.mesh_stats import (
    BoundingBox,
    ComplexityClass,
    GeometryMetrics,
    analyze_mesh,
    calculate_bounding_box,
    calculate_surface_area,
    calculate_volume,
    classify_complexity,
)

__all__ = [
    "Triangle",
    "TriangleMesh",
    "mesh_from_triangles",
    "BoundingBox",
    "ComplexityClass",
    "GeometryMetrics",
    "analyze_mesh",
    "calculate_bounding_box",
    "calculate_surface_area",
    "calculate_volume",
    "classify_complexity",
]
