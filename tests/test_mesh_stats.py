"""
Unit tests for stl_quote.geometry.mesh_stats module.

Tests:
- BoundingBox properties
- Volume, including winding and multi-shell boundaries
- Surface area
- Complexity classification boundaries
- analyze_mesh output and serialization
"""

import numpy as np
import pytest

from stl_quote.geometry.mesh import TriangleMesh
from stl_quote.geometry.mesh_stats import (
    BoundingBox,
    ComplexityClass,
    analyze_mesh,
    calculate_bounding_box,
    calculate_face_areas,
    calculate_signed_volume,
    calculate_surface_area,
    calculate_volume,
    classify_complexity,
)
from stl_quote.io.sample_parts import box_triangles
from stl_quote.io.stl_loader import load_mesh_file


def _box_mesh(w, h, d, offset=(0.0, 0.0, 0.0)):
    return TriangleMesh(box_triangles(w, h, d) + np.asarray(offset))


class TestBoundingBox:
    """Tests for BoundingBox class."""

    def test_dimensions(self):
        bbox = BoundingBox(
            min_point=np.array([0.0, 0.0, 0.0]),
            max_point=np.array([10.0, 20.0, 30.0]),
        )

        assert bbox.width == 10.0
        assert bbox.height == 20.0
        assert bbox.depth == 30.0
        assert bbox.volume == 6000.0
        assert bbox.max_dimension == 30.0
        assert bbox.diagonal == pytest.approx(np.sqrt(1400.0))

    def test_center(self):
        bbox = BoundingBox(
            min_point=np.array([-10.0, -20.0, -30.0]),
            max_point=np.array([10.0, 20.0, 30.0]),
        )
        np.testing.assert_array_almost_equal(bbox.center, [0, 0, 0])

    def test_contains_point(self):
        bbox = BoundingBox(
            min_point=np.array([0.0, 0.0, 0.0]),
            max_point=np.array([10.0, 10.0, 10.0]),
        )

        assert bbox.contains_point(np.array([5.0, 5.0, 5.0]))
        assert bbox.contains_point(np.array([10.0, 0.0, 10.0]))
        assert not bbox.contains_point(np.array([15.0, 5.0, 5.0]))

    def test_from_vertices(self):
        vertices = np.array([[1, -2, 3], [4, 5, -6], [0, 0, 0]], dtype=float)
        bbox = calculate_bounding_box(vertices)

        np.testing.assert_array_equal(bbox.min_point, [0, -2, -6])
        np.testing.assert_array_equal(bbox.max_point, [4, 5, 3])

    def test_no_vertices(self):
        bbox = calculate_bounding_box(np.zeros((0, 3)))
        assert bbox.volume == 0.0

    def test_to_dict(self):
        bbox = calculate_bounding_box(np.array([[0, 0, 0], [2, 4, 6]], dtype=float))
        data = bbox.to_dict()

        assert data['min'] == [0, 0, 0]
        assert data['dimensions'] == [2, 4, 6]
        assert data['center'] == [1, 2, 3]


class TestVolume:
    """Tests for volume calculation."""

    @pytest.mark.parametrize("w, h, d", [(10, 10, 10), (20, 10, 5), (1, 2, 3), (100, 0.5, 7)])
    def test_box_volume(self, w, h, d):
        """Closed outward-wound box gives w*h*d."""
        mesh = _box_mesh(w, h, d)
        assert calculate_volume(mesh) == pytest.approx(w * h * d)
        assert calculate_signed_volume(mesh) == pytest.approx(w * h * d)

    def test_translation_invariant(self):
        mesh = _box_mesh(10, 10, 10, offset=(-50.0, 25.0, 300.0))
        assert calculate_volume(mesh) == pytest.approx(1000.0)

    def test_inverted_winding(self):
        """Inward winding gives a negative signed sum but the same volume."""
        mesh = TriangleMesh(box_triangles(10, 10, 10)[:, ::-1, :])

        assert calculate_signed_volume(mesh) == pytest.approx(-1000.0)
        assert calculate_volume(mesh) == pytest.approx(1000.0)

    def test_two_shells_add(self):
        """Two disjoint outward shells add up."""
        a = box_triangles(10, 10, 10)
        b = box_triangles(10, 10, 10) + np.array([50.0, 0.0, 0.0])
        mesh = TriangleMesh(np.concatenate([a, b]))

        assert calculate_volume(mesh) == pytest.approx(2000.0)

    def test_mixed_winding_shells_cancel(self):
        """One outward and one inward shell cancel; the sum is not checked for sense."""
        a = box_triangles(10, 10, 10)
        b = box_triangles(10, 10, 10)[:, ::-1, :] + np.array([50.0, 0.0, 0.0])
        mesh = TriangleMesh(np.concatenate([a, b]))

        assert calculate_volume(mesh) == pytest.approx(0.0, abs=1e-9)

    def test_empty_mesh(self):
        assert calculate_volume(TriangleMesh.empty()) == 0.0


class TestSurfaceArea:
    """Tests for surface area calculation."""

    def test_single_triangle(self):
        mesh = TriangleMesh([[[0, 0, 0], [1, 0, 0], [0, 1, 0]]])
        assert calculate_surface_area(mesh) == pytest.approx(0.5)

    def test_box_area(self):
        mesh = _box_mesh(10, 20, 30)
        expected = 2 * (10 * 20 + 20 * 30 + 10 * 30)
        assert calculate_surface_area(mesh) == pytest.approx(expected)

    def test_face_areas_shape(self):
        areas = calculate_face_areas(_box_mesh(10, 10, 10))
        assert areas.shape == (12,)
        assert np.allclose(areas, 50.0)

    def test_empty_mesh(self):
        assert calculate_surface_area(TriangleMesh.empty()) == 0.0


class TestComplexity:
    """Tests for classify_complexity."""

    @pytest.mark.parametrize("n_faces, expected", [
        (0, ComplexityClass.LOW),
        (12, ComplexityClass.LOW),
        (99, ComplexityClass.LOW),
        (100, ComplexityClass.MEDIUM),
        (999, ComplexityClass.MEDIUM),
        (1000, ComplexityClass.HIGH),
        (250000, ComplexityClass.HIGH),
    ])
    def test_boundaries(self, n_faces, expected):
        assert classify_complexity(n_faces) is expected

    def test_from_mesh(self):
        mesh = TriangleMesh(np.zeros((100, 3, 3)))
        assert analyze_mesh(mesh).complexity is ComplexityClass.MEDIUM

    def test_labels(self):
        assert [c.value for c in ComplexityClass] == ["Low", "Medium", "High"]


class TestAnalyzeMesh:
    """Tests for analyze_mesh."""

    def test_cube_file(self, cube_stl_path):
        """10 mm ASCII cube read from disk."""
        metrics = analyze_mesh(load_mesh_file(cube_stl_path))

        assert metrics.dimensions == pytest.approx((10.0, 10.0, 10.0))
        assert metrics.volume == pytest.approx(1000.0)
        assert metrics.surface_area == pytest.approx(600.0)
        assert metrics.n_faces == 12
        assert metrics.n_vertices == 36
        assert metrics.n_faces == metrics.n_vertices // 3
        assert metrics.complexity is ComplexityClass.LOW

    def test_binary_box(self, binary_box_stl_path):
        metrics = analyze_mesh(load_mesh_file(binary_box_stl_path))

        assert metrics.dimensions == pytest.approx((20.0, 10.0, 5.0))
        assert metrics.volume == pytest.approx(1000.0, rel=1e-6)

    def test_inverted_file(self, inverted_cube_stl_path):
        metrics = analyze_mesh(load_mesh_file(inverted_cube_stl_path))

        assert metrics.signed_volume < 0
        assert metrics.volume == pytest.approx(1000.0)

    def test_indexed_mesh_counts(self):
        indexed = _box_mesh(10, 10, 10).to_indexed()
        metrics = analyze_mesh(indexed)

        assert metrics.indexed
        assert metrics.n_vertices == 8
        assert metrics.volume == pytest.approx(1000.0)

    def test_empty_mesh(self):
        """Empty mesh yields zeros and Low complexity."""
        metrics = analyze_mesh(TriangleMesh.empty())

        assert metrics.dimensions == (0.0, 0.0, 0.0)
        assert metrics.volume == 0.0
        assert metrics.surface_area == 0.0
        assert metrics.n_faces == 0
        assert metrics.n_vertices == 0
        assert metrics.complexity is ComplexityClass.LOW

    def test_summary(self):
        summary = analyze_mesh(_box_mesh(10, 10, 10)).summary()

        assert "Dimensions:" in summary
        assert "10.00 x 10.00 x 10.00 mm" in summary
        assert "Volume:" in summary
        assert "Complexity:   Low" in summary

    def test_to_dict(self):
        """Values are rounded only in the serialized form."""
        mesh = _box_mesh(10, 10, 10, offset=(0.0, 0.0, 0.0))
        metrics = analyze_mesh(mesh)
        data = metrics.to_dict(precision=2)

        assert data['dimensions'] == {'width': 10.0, 'height': 10.0, 'depth': 10.0}
        assert data['volume'] == 1000.0
        assert data['features'] == {
            'vertexCount': 36,
            'faceCount': 12,
            'complexity': 'Low',
        }
        assert 'boundingBox' in data

    def test_unrounded_storage(self):
        mesh = TriangleMesh([[[0, 0, 0], [1 / 3, 0, 0], [0, 1, 0]]])
        metrics = analyze_mesh(mesh)

        assert metrics.dimensions[0] == 1 / 3
        assert metrics.to_dict(precision=2)['dimensions']['width'] == 0.33
