"""
Pytest configuration and fixtures for stl_quote.

Provides:
- Sample part fixtures (ASCII and binary box STL files)
- Raw binary STL payload builder for malformed-input tests
- Upload directory and service fixtures
- Logger reset between tests
"""

import logging
import struct
from pathlib import Path
from typing import Callable, Optional, Sequence

import numpy as np
import pytest

from stl_quote.io.sample_parts import box_triangles, write_ascii_stl, write_box_stl
from stl_quote.logging_config import PACKAGE_LOGGER
from stl_quote.project_config import ProjectConfig
from stl_quote.service import QuoteService


# ============================================================================
# Pytest Configuration Hooks
# ============================================================================

@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog sees package records in every test."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ============================================================================
# STL File Fixtures
# ============================================================================

@pytest.fixture
def tmp_stl_dir(tmp_path: Path) -> Path:
    """Temporary directory for STL files created during tests."""
    path = tmp_path / "parts"
    path.mkdir()
    return path


@pytest.fixture
def cube_stl_path(tmp_stl_dir: Path) -> Path:
    """10 x 10 x 10 mm box as ASCII STL."""
    return write_box_stl(tmp_stl_dir / "cube.stl", 10, 10, 10)


@pytest.fixture
def binary_box_stl_path(tmp_stl_dir: Path) -> Path:
    """20 x 10 x 5 mm box as binary STL."""
    return write_box_stl(tmp_stl_dir / "box.stl", 20, 10, 5, binary=True)


@pytest.fixture
def inverted_cube_stl_path(tmp_stl_dir: Path) -> Path:
    """10 mm box with every facet wound inward."""
    triangles = box_triangles(10, 10, 10)[:, ::-1, :]
    return write_ascii_stl(tmp_stl_dir / "inverted.stl", triangles, name="inverted")


@pytest.fixture
def ascii_cube_bytes(cube_stl_path: Path) -> bytes:
    return cube_stl_path.read_bytes()


@pytest.fixture
def binary_box_bytes(binary_box_stl_path: Path) -> bytes:
    return binary_box_stl_path.read_bytes()


# ============================================================================
# Raw payload builders
# ============================================================================

def build_binary_stl(
    triangles: Sequence,
    declared_count: Optional[int] = None,
    header: bytes = b"binary test part",
) -> bytes:
    """Pack triangles into a binary STL payload by hand.

    declared_count lets a test lie about the triangle count in the header.
    """
    triangles = np.asarray(triangles, dtype=np.float64).reshape(-1, 3, 3)
    count = len(triangles) if declared_count is None else declared_count
    parts = [header.ljust(80, b"\x00")[:80], struct.pack("<I", count)]
    for tri in triangles:
        parts.append(struct.pack("<3f", 0.0, 0.0, 0.0))
        for vertex in tri:
            parts.append(struct.pack("<3f", *vertex))
        parts.append(struct.pack("<H", 0))
    return b"".join(parts)


@pytest.fixture
def binary_stl_builder() -> Callable[..., bytes]:
    """Function building raw binary STL bytes (see build_binary_stl)."""
    return build_binary_stl


@pytest.fixture
def box_triangles_10mm() -> np.ndarray:
    return box_triangles(10, 10, 10)


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def project_config(upload_dir: Path) -> ProjectConfig:
    config = ProjectConfig()
    config.upload.upload_dir = str(upload_dir)
    config.analysis.max_workers = 2
    config.analysis.timeout_seconds = 10.0
    return config


@pytest.fixture
def service(project_config: ProjectConfig):
    """QuoteService writing into a temporary upload directory."""
    with QuoteService(project_config) as svc:
        yield svc
