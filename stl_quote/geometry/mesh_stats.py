"""
Geometry analysis of triangle meshes.

Provides:
- Axis-aligned bounding box
- Enclosed volume via the divergence theorem
- Surface area
- Face/vertex counts and complexity classification

All arithmetic is float64. Values are rounded only by the presentation
helpers (summary, to_dict), never when stored.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np
from numpy.typing import NDArray

from stl_quote.config import (
    COMPLEXITY_HIGH_FACES,
    COMPLEXITY_MEDIUM_FACES,
    DISPLAY_DECIMALS,
)
from stl_quote.geometry.mesh import TriangleMesh

logger = logging.getLogger(__name__)


class ComplexityClass(Enum):
    """Coarse mesh-size bucket used as a manufacturing cost signal."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True, eq=False)
class BoundingBox:
    """Axis-Aligned Bounding Box (AABB) for a mesh.

    Attributes:
        min_point: Minimum corner (x_min, y_min, z_min)
        max_point: Maximum corner (x_max, y_max, z_max)
    """
    min_point: NDArray[np.float64]
    max_point: NDArray[np.float64]

    @property
    def dimensions(self) -> NDArray[np.float64]:
        """Box size per axis (width, height, depth)."""
        return self.max_point - self.min_point

    @property
    def width(self) -> float:
        """X-axis dimension."""
        return float(self.dimensions[0])

    @property
    def height(self) -> float:
        """Y-axis dimension."""
        return float(self.dimensions[1])

    @property
    def depth(self) -> float:
        """Z-axis dimension."""
        return float(self.dimensions[2])

    @property
    def center(self) -> NDArray[np.float64]:
        return (self.min_point + self.max_point) / 2

    @property
    def volume(self) -> float:
        dims = self.dimensions
        return float(dims[0] * dims[1] * dims[2])

    @property
    def diagonal(self) -> float:
        return float(np.linalg.norm(self.dimensions))

    @property
    def max_dimension(self) -> float:
        return float(np.max(self.dimensions))

    def contains_point(self, point: NDArray[np.float64]) -> bool:
        """Check if point is inside the box (boundary included)."""
        return bool(
            np.all(point >= self.min_point) and
            np.all(point <= self.max_point)
        )

    def to_dict(self) -> dict:
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
            'dimensions': self.dimensions.tolist(),
            'center': self.center.tolist(),
        }


@dataclass(frozen=True, eq=False)
class GeometryMetrics:
    """Physical metrics of one mesh.

    Attributes:
        bbox: Axis-aligned bounding box
        volume: Enclosed volume in mm^3 (absolute value of signed_volume)
        signed_volume: Raw divergence-theorem sum; negative when the mesh
            is wound inward
        surface_area: Total facet area in mm^2
        n_vertices: Vertex count (3 x faces for triangle soup)
        n_faces: Triangle count
        complexity: Complexity class derived from n_faces
        indexed: True if the mesh came from a shared vertex buffer
    """
    bbox: BoundingBox
    volume: float
    signed_volume: float
    surface_area: float
    n_vertices: int
    n_faces: int
    complexity: ComplexityClass
    indexed: bool = False

    @property
    def dimensions(self) -> Tuple[float, float, float]:
        """Mesh dimensions (width, height, depth) in mm."""
        dims = self.bbox.dimensions
        return (float(dims[0]), float(dims[1]), float(dims[2]))

    def summary(self) -> str:
        """Generate human-readable summary."""
        w, h, d = self.dimensions
        p = DISPLAY_DECIMALS
        lines = [
            "Geometry Analysis",
            "=" * 40,
            f"Dimensions:   {w:.{p}f} x {h:.{p}f} x {d:.{p}f} mm",
            f"Volume:       {self.volume:.{p}f} mm^3",
            f"Surface Area: {self.surface_area:.{p}f} mm^2",
            f"Complexity:   {self.complexity.value}",
            f"Vertices:     {self.n_vertices:,}",
            f"Faces:        {self.n_faces:,}",
        ]
        return "\n".join(lines)

    def to_dict(self, precision: int = DISPLAY_DECIMALS) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Dimensions and volume are rounded to `precision` decimals here and
        only here.
        """
        w, h, d = self.dimensions
        return {
            'dimensions': {
                'width': round(w, precision),
                'height': round(h, precision),
                'depth': round(d, precision),
            },
            'volume': round(self.volume, precision),
            'surfaceArea': round(self.surface_area, precision),
            'features': {
                'vertexCount': self.n_vertices,
                'faceCount': self.n_faces,
                'complexity': self.complexity.value,
            },
            'boundingBox': self.bbox.to_dict(),
        }


def calculate_bounding_box(vertices: NDArray[np.float64]) -> BoundingBox:
    """Calculate axis-aligned bounding box for vertices.

    Args:
        vertices: Nx3 array of vertex coordinates

    Returns:
        BoundingBox; a zero box at the origin when there are no vertices
    """
    if len(vertices) == 0:
        return BoundingBox(min_point=np.zeros(3), max_point=np.zeros(3))

    return BoundingBox(
        min_point=np.min(vertices, axis=0),
        max_point=np.max(vertices, axis=0),
    )


def calculate_signed_volume(mesh: TriangleMesh) -> float:
    """Sum the signed tetrahedra formed by each face and the origin.

    Formula: V = (1/6) * sum(v1 . (v2 x v3))

    Exact for a single closed, consistently wound, non-self-intersecting
    shell. Open meshes, nested shells or mixed winding give a number with
    no physical meaning; nothing here detects that.
    """
    if mesh.n_faces == 0:
        return 0.0

    v1 = mesh.vectors[:, 0]
    v2 = mesh.vectors[:, 1]
    v3 = mesh.vectors[:, 2]

    signed_volumes = np.einsum('ij,ij->i', v1, np.cross(v2, v3)) / 6.0
    return float(np.sum(signed_volumes))


def calculate_volume(mesh: TriangleMesh) -> float:
    """Enclosed volume in mm^3 (absolute value of the signed sum)."""
    return abs(calculate_signed_volume(mesh))


def calculate_face_areas(mesh: TriangleMesh) -> NDArray[np.float64]:
    """Area of each face: 0.5 * |e1 x e2|."""
    if mesh.n_faces == 0:
        return np.array([], dtype=np.float64)

    v0 = mesh.vectors[:, 0]
    e1 = mesh.vectors[:, 1] - v0
    e2 = mesh.vectors[:, 2] - v0
    return 0.5 * np.linalg.norm(np.cross(e1, e2), axis=1)


def calculate_surface_area(mesh: TriangleMesh) -> float:
    """Total mesh surface area in mm^2."""
    return float(np.sum(calculate_face_areas(mesh)))


def classify_complexity(n_faces: int) -> ComplexityClass:
    """Bucket a face count: Low < 100, Medium < 1000, else High."""
    if n_faces < COMPLEXITY_MEDIUM_FACES:
        return ComplexityClass.LOW
    if n_faces < COMPLEXITY_HIGH_FACES:
        return ComplexityClass.MEDIUM
    return ComplexityClass.HIGH


def analyze_mesh(mesh: TriangleMesh) -> GeometryMetrics:
    """Compute GeometryMetrics for a mesh.

    Pure and deterministic. An empty mesh yields a zero-size, zero-volume
    Low result.

    Example:
        >>> metrics = analyze_mesh(mesh)
        >>> print(metrics.summary())
    """
    bbox = calculate_bounding_box(mesh.points)
    signed_volume = calculate_signed_volume(mesh)
    surface_area = calculate_surface_area(mesh)

    metrics = GeometryMetrics(
        bbox=bbox,
        volume=abs(signed_volume),
        signed_volume=signed_volume,
        surface_area=surface_area,
        n_vertices=mesh.n_vertices,
        n_faces=mesh.n_faces,
        complexity=classify_complexity(mesh.n_faces),
        indexed=mesh.is_indexed,
    )

    if signed_volume < 0:
        logger.debug("Negative signed volume %.3f: faces wound inward", signed_volume)

    logger.debug(
        "Geometry analyzed",
        extra={
            'faces': metrics.n_faces,
            'vertices': metrics.n_vertices,
            'volume': metrics.volume,
            'complexity': metrics.complexity.value,
        }
    )
    return metrics
