"""
Generator for simple test parts.

Writes an axis-aligned box as ASCII or binary STL, so a quote can be tried
without a CAD export at hand.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
from numpy.typing import NDArray
from stl import Mode
from stl import mesh as stl_mesh

from stl_quote.config import MAX_SAMPLE_DIMENSION_MM

logger = logging.getLogger(__name__)

# Corner index = x_bit | y_bit << 1 | z_bit << 2
_BOX_FACES = [
    # z = 0 (normal -Z)
    [0, 2, 3], [0, 3, 1],
    # z = d (normal +Z)
    [4, 5, 7], [4, 7, 6],
    # y = 0 (normal -Y)
    [0, 1, 5], [0, 5, 4],
    # y = h (normal +Y)
    [2, 6, 7], [2, 7, 3],
    # x = 0 (normal -X)
    [0, 4, 6], [0, 6, 2],
    # x = w (normal +X)
    [1, 3, 7], [1, 7, 5],
]


def _check_dimension(name: str, value: float) -> float:
    value = float(value)
    if not value > 0:
        raise ValueError(f"{name} must be a positive number, got {value}")
    if value > MAX_SAMPLE_DIMENSION_MM:
        raise ValueError(f"{name} {value} exceeds the {MAX_SAMPLE_DIMENSION_MM:g}mm maximum")
    return value


def box_triangles(width: float, height: float, depth: float) -> NDArray[np.float64]:
    """Return the 12 outward-wound triangles of a box at the origin corner.

    Args:
        width, height, depth: box size along X, Y, Z in mm (0 < size <= 100)

    Returns:
        (12, 3, 3) float64 array
    """
    w = _check_dimension("width", width)
    h = _check_dimension("height", height)
    d = _check_dimension("depth", depth)

    corners = np.array(
        [[(i & 1) * w, ((i >> 1) & 1) * h, ((i >> 2) & 1) * d] for i in range(8)],
        dtype=np.float64,
    )
    return corners[np.array(_BOX_FACES)]


def _face_normals(triangles: NDArray[np.float64]) -> NDArray[np.float64]:
    cross = np.cross(triangles[:, 1] - triangles[:, 0], triangles[:, 2] - triangles[:, 0])
    norms = np.linalg.norm(cross, axis=1, keepdims=True)
    return cross / np.where(norms < 1e-12, 1.0, norms)


def write_ascii_stl(path: Union[str, Path], triangles: NDArray[np.float64],
                    name: str = "part") -> Path:
    """Write triangles as an ASCII STL file."""
    path = Path(path)
    normals = _face_normals(triangles)
    with open(path, 'w', encoding='ascii') as f:
        f.write(f"solid {name}\n")
        for tri, n in zip(triangles, normals):
            f.write(f"  facet normal {n[0]:e} {n[1]:e} {n[2]:e}\n")
            f.write("    outer loop\n")
            for v in tri:
                f.write(f"      vertex {v[0]:e} {v[1]:e} {v[2]:e}\n")
            f.write("    endloop\n")
            f.write("  endfacet\n")
        f.write(f"endsolid {name}\n")
    return path


def write_binary_stl(path: Union[str, Path], triangles: NDArray[np.float64]) -> Path:
    """Write triangles as a binary STL file via numpy-stl."""
    path = Path(path)
    part = stl_mesh.Mesh(np.zeros(len(triangles), dtype=stl_mesh.Mesh.dtype))
    part.vectors[:] = triangles
    part.normals[:] = _face_normals(triangles)
    part.save(str(path), mode=Mode.BINARY, update_normals=False)
    return path


def write_box_stl(
    path: Union[str, Path],
    width: float,
    height: float,
    depth: float,
    binary: bool = False,
) -> Path:
    """Write a width x height x depth box to an STL file.

    Example:
        >>> write_box_stl("test_cube_10x10x10mm.stl", 10, 10, 10)
    """
    triangles = box_triangles(width, height, depth)
    if binary:
        path = write_binary_stl(path, triangles)
    else:
        path = write_ascii_stl(path, triangles, name="cube")
    logger.info("Wrote %gx%gx%g mm box to %s", width, height, depth, path)
    return path
