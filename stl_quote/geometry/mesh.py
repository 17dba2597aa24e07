"""
In-memory triangle mesh.

A TriangleMesh is an ordered sequence of triangles held as a read-only
(F, 3, 3) float64 array. It is built either from a flat vertex buffer
(triangle soup, the form STL files use) or from a shared vertex buffer plus
an index buffer.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

from stl_quote.config import VERTEX_MERGE_DECIMALS

logger = logging.getLogger(__name__)


def _frozen(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class Triangle:
    """Single facet: three vertices and an optional face normal."""
    v1: NDArray[np.float64]
    v2: NDArray[np.float64]
    v3: NDArray[np.float64]
    normal: Optional[NDArray[np.float64]] = None

    @property
    def vertices(self) -> Tuple[NDArray[np.float64], ...]:
        return (self.v1, self.v2, self.v3)


class TriangleMesh:
    """Immutable triangle mesh.

    Attributes:
        vectors: (F, 3, 3) float64 array, one row of three vertices per face
        normals: (F, 3) float64 array of stored face normals, or None
        indices: (F, 3) int array when built in indexed form, else None
    """

    __slots__ = ("_vectors", "_normals", "_indices", "_n_vertices")

    def __init__(
        self,
        vectors: ArrayLike,
        normals: Optional[ArrayLike] = None,
        indices: Optional[np.ndarray] = None,
        n_vertices: Optional[int] = None,
    ):
        vectors = np.array(vectors, dtype=np.float64).reshape(-1, 3, 3)
        if normals is not None:
            normals = np.array(normals, dtype=np.float64).reshape(-1, 3)
            if len(normals) != len(vectors):
                raise ValueError(
                    f"{len(normals)} normals given for {len(vectors)} triangles"
                )
            normals = _frozen(normals)
        if indices is not None:
            indices = _frozen(np.array(indices, dtype=np.int64).reshape(-1, 3))

        self._vectors = _frozen(vectors)
        self._normals = normals
        self._indices = indices
        self._n_vertices = n_vertices if n_vertices is not None else 3 * len(vectors)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> 'TriangleMesh':
        return cls(np.zeros((0, 3, 3)))

    @classmethod
    def from_flat(
        cls,
        positions: ArrayLike,
        normals: Optional[ArrayLike] = None,
    ) -> 'TriangleMesh':
        """Build a non-indexed mesh from a flat coordinate buffer.

        Args:
            positions: x, y, z triples; length must be a multiple of 9
            normals: optional per-face normals, 3 components per face

        Raises:
            ValueError: if the buffer does not hold whole triangles
        """
        flat = np.asarray(positions, dtype=np.float64).ravel()
        if flat.size % 9 != 0:
            raise ValueError(
                f"Vertex buffer length {flat.size} is not a multiple of 9 "
                "(3 vertices x 3 components)"
            )
        return cls(flat.reshape(-1, 3, 3), normals=normals)

    @classmethod
    def from_indexed(
        cls,
        vertices: ArrayLike,
        indices: ArrayLike,
    ) -> 'TriangleMesh':
        """Build a mesh from a shared vertex buffer and a triangle-index buffer.

        Args:
            vertices: (V, 3) coordinates, or a flat buffer of V*3 values
            indices: 3 vertex indices per triangle, flat or (F, 3)

        Raises:
            ValueError: on a partial triangle or an out-of-range index
        """
        verts = np.asarray(vertices, dtype=np.float64)
        if verts.size % 3 != 0:
            raise ValueError(f"Vertex buffer length {verts.size} is not a multiple of 3")
        verts = verts.reshape(-1, 3)

        idx = np.asarray(indices)
        if idx.size % 3 != 0:
            raise ValueError(f"Index buffer length {idx.size} is not a multiple of 3")
        if idx.size and not np.issubdtype(idx.dtype, np.integer):
            raise ValueError(f"Index buffer must hold integers, got {idx.dtype}")
        idx = idx.astype(np.int64).reshape(-1, 3)

        if idx.size and (idx.min() < 0 or idx.max() >= len(verts)):
            raise ValueError(
                f"Triangle index out of range for {len(verts)} vertices"
            )

        n_distinct = int(np.unique(idx).size)
        return cls(verts[idx], indices=idx, n_vertices=n_distinct)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def vectors(self) -> NDArray[np.float64]:
        return self._vectors

    @property
    def normals(self) -> Optional[NDArray[np.float64]]:
        return self._normals

    @property
    def indices(self) -> Optional[np.ndarray]:
        return self._indices

    @property
    def is_indexed(self) -> bool:
        return self._indices is not None

    @property
    def n_faces(self) -> int:
        return len(self._vectors)

    @property
    def n_vertices(self) -> int:
        """3 x faces for triangle soup, distinct referenced vertices when indexed."""
        return self._n_vertices

    @property
    def points(self) -> NDArray[np.float64]:
        """Every vertex reference as an (F*3, 3) array."""
        return self._vectors.reshape(-1, 3)

    def __len__(self) -> int:
        return self.n_faces

    def __iter__(self) -> Iterator[Triangle]:
        for i in range(self.n_faces):
            yield self[i]

    def __getitem__(self, i: int) -> Triangle:
        v1, v2, v3 = self._vectors[i]
        normal = self._normals[i] if self._normals is not None else None
        return Triangle(v1, v2, v3, normal)

    def __repr__(self) -> str:
        form = "indexed" if self.is_indexed else "soup"
        return f"TriangleMesh(faces={self.n_faces}, vertices={self.n_vertices}, {form})"

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_indexed(self, decimals: int = VERTEX_MERGE_DECIMALS) -> 'TriangleMesh':
        """Merge coincident vertices into a shared buffer.

        Coordinates are rounded to `decimals` places before comparison so that
        float32 noise from STL export does not split a vertex in two.
        """
        if self.n_faces == 0:
            return TriangleMesh(
                np.zeros((0, 3, 3)),
                indices=np.zeros((0, 3), dtype=np.int64),
                n_vertices=0,
            )

        rounded = np.round(self.points, decimals)
        unique, inverse = np.unique(rounded, axis=0, return_inverse=True)
        indices = inverse.reshape(-1, 3)

        logger.debug(
            "Merged %d vertex references into %d vertices",
            len(rounded), len(unique),
        )
        return TriangleMesh(
            unique[indices],
            normals=self._normals,
            indices=indices,
            n_vertices=len(unique),
        )


def mesh_from_triangles(triangles: Sequence[Sequence[Sequence[float]]]) -> TriangleMesh:
    """Build a non-indexed mesh from nested [[x, y, z] x 3] triangles."""
    if len(triangles) == 0:
        return TriangleMesh.empty()
    return TriangleMesh(np.asarray(triangles, dtype=np.float64))
