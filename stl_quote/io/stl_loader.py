"""
Parsing of STL payloads into TriangleMesh.

Supports:
- Binary STL (80-byte header, uint32 count, 50-byte little-endian records)
- ASCII STL (solid / facet normal / outer loop / vertex x3 / endloop / endfacet)

Single responsibility: turn bytes into a TriangleMesh or raise a
MeshParseError. No partial mesh is ever returned.
"""

import logging
import math
import os
import struct
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

import numpy as np
from stl import mesh as stl_mesh

from stl_quote.config import (
    MESH_EXTENSIONS,
    STL_DATA_OFFSET,
    STL_HEADER_SIZE,
    STL_RECORD_SIZE,
)
from stl_quote.errors import (
    EmptyInputError,
    MalformedDataError,
    MalformedHeaderError,
    MeshFileNotFoundError,
    TruncatedDataError,
    UnsupportedExtensionError,
)
from stl_quote.geometry.mesh import TriangleMesh

logger = logging.getLogger(__name__)

# numpy-stl's 50-byte record layout (normals, vectors, attr), pinned to little-endian
RECORD_DTYPE = stl_mesh.Mesh.dtype.newbyteorder('<')

# Vertex data starts after the 12-byte normal
_VECTORS_OFFSET = 12

# How much of the payload to inspect when telling ASCII from binary
_DETECT_CHUNK = 1024


class STLFormat(Enum):
    """STL file format type."""
    BINARY = "binary"
    ASCII = "ascii"


@dataclass
class STLInfo:
    """Metadata about a parsed STL payload."""
    filename: str
    format: STLFormat
    size_bytes: int
    n_triangles: int
    solid_name: Optional[str] = None

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


# ---------------------------------------------------------------------------
# Format detection
# ---------------------------------------------------------------------------

def _declared_binary_size(data: bytes) -> Optional[int]:
    if len(data) < STL_DATA_OFFSET:
        return None
    (count,) = struct.unpack_from('<I', data, STL_HEADER_SIZE)
    return STL_DATA_OFFSET + count * STL_RECORD_SIZE


def detect_stl_format(data: bytes) -> Tuple[STLFormat, Optional[str]]:
    """Detect STL format (binary vs ASCII) from the payload.

    ASCII files start with the 'solid' keyword. Some binary exporters also
    write 'solid' into the 80-byte header, so a 'solid' payload counts as
    ASCII only if its length does not match the binary layout implied by its
    triangle count and its first kilobyte is ASCII text mentioning 'facet'
    or 'endsolid'.

    Returns:
        Tuple of (format, solid_name or None)
    """
    head = data[:STL_HEADER_SIZE]
    stripped = head.lstrip()

    if stripped[:5].lower() == b'solid' and _declared_binary_size(data) != len(data):
        chunk = data[:_DETECT_CHUNK]
        try:
            text = chunk.decode('ascii').lower()
        except UnicodeDecodeError:
            text = ""
        if 'facet' in text or 'endsolid' in text:
            first_line = stripped.split(b'\n', 1)[0]
            name = first_line[5:].decode('ascii', errors='ignore').strip()
            return STLFormat.ASCII, name or None

    return STLFormat.BINARY, _header_solid_name(head)


def _header_solid_name(header: bytes) -> Optional[str]:
    text = header.split(b'\x00')[0].decode('ascii', errors='ignore').strip()
    if text.lower().startswith('solid'):
        return text[5:].strip() or None
    return None


# ---------------------------------------------------------------------------
# Binary
# ---------------------------------------------------------------------------

def parse_binary_stl(data: bytes) -> TriangleMesh:
    """Decode a binary STL payload.

    Raises:
        MalformedHeaderError: fewer than 84 bytes
        TruncatedDataError: fewer triangle records than declared
        MalformedDataError: NaN or infinite coordinates
    """
    if len(data) < STL_DATA_OFFSET:
        raise MalformedHeaderError(
            f"Binary STL needs a {STL_DATA_OFFSET}-byte header, got {len(data)} bytes",
            offset=len(data),
        )

    (count,) = struct.unpack_from('<I', data, STL_HEADER_SIZE)
    expected = STL_DATA_OFFSET + count * STL_RECORD_SIZE

    if len(data) < expected:
        available = (len(data) - STL_DATA_OFFSET) // STL_RECORD_SIZE
        raise TruncatedDataError(
            f"Header declares {count} triangles but only {available} complete "
            f"records are present",
            offset=STL_DATA_OFFSET + available * STL_RECORD_SIZE,
            triangle_index=available,
        )
    if len(data) > expected:
        logger.debug("Ignoring %d trailing bytes after %d triangles",
                     len(data) - expected, count)
    if count == 0:
        return TriangleMesh.empty()

    records = np.frombuffer(data, dtype=RECORD_DTYPE, count=count,
                            offset=STL_DATA_OFFSET)
    vectors = records['vectors'].astype(np.float64)
    normals = records['normals'].astype(np.float64)

    finite = np.isfinite(vectors).reshape(count, -1).all(axis=1)
    if not finite.all():
        bad = int(np.argmin(finite))
        raise MalformedDataError(
            "Non-finite vertex coordinate",
            offset=STL_DATA_OFFSET + bad * STL_RECORD_SIZE + _VECTORS_OFFSET,
            triangle_index=bad,
        )

    return TriangleMesh(vectors, normals=normals)


# ---------------------------------------------------------------------------
# ASCII
# ---------------------------------------------------------------------------

def _tokenized_lines(text: str) -> Iterator[Tuple[int, List[str]]]:
    for lineno, raw in enumerate(text.splitlines(), 1):
        tokens = raw.split()
        if tokens:
            yield lineno, tokens


def _parse_floats(tokens: List[str], lineno: int, what: str) -> List[float]:
    if len(tokens) != 3:
        raise MalformedDataError(f"Expected 3 components for {what}", line=lineno)
    try:
        values = [float(t) for t in tokens]
    except ValueError:
        raise MalformedDataError(f"Invalid number in {what}: {' '.join(tokens)!r}",
                                 line=lineno) from None
    if not all(math.isfinite(v) for v in values):
        raise MalformedDataError(f"Non-finite value in {what}", line=lineno)
    return values


def parse_ascii_stl(data: bytes) -> TriangleMesh:
    """Decode an ASCII STL payload.

    Raises:
        MalformedHeaderError: not ASCII text, or no leading 'solid'
        MalformedDataError: unexpected keyword or bad number
        TruncatedDataError: input ends inside a facet or before 'endsolid'
    """
    try:
        text = data.decode('ascii')
    except UnicodeDecodeError as exc:
        raise MalformedHeaderError("ASCII STL contains non-ASCII bytes",
                                   offset=exc.start) from None

    lines = _tokenized_lines(text)

    def expect(keyword: str, facet: int) -> Tuple[int, List[str]]:
        try:
            lineno, tokens = next(lines)
        except StopIteration:
            raise TruncatedDataError(f"Input ended while expecting {keyword!r}",
                                     triangle_index=facet, line=last_line) from None
        head = ' '.join(tokens[:2]).lower() if ' ' in keyword else tokens[0].lower()
        if head != keyword:
            raise MalformedDataError(f"Expected {keyword!r}, found {tokens[0]!r}",
                                     triangle_index=facet, line=lineno)
        return lineno, tokens[len(keyword.split()):]

    last_line = 0
    first = next(lines, None)
    if first is None or first[1][0].lower() != 'solid':
        raise MalformedHeaderError("ASCII STL must begin with 'solid'", line=1)
    last_line = first[0]

    vectors: List[List[List[float]]] = []
    normals: List[List[float]] = []

    while True:
        try:
            lineno, tokens = next(lines)
        except StopIteration:
            raise TruncatedDataError("Input ended before 'endsolid'",
                                     triangle_index=len(vectors), line=last_line) from None
        last_line = lineno
        keyword = tokens[0].lower()

        if keyword == 'endsolid':
            break
        if keyword != 'facet' or len(tokens) < 2 or tokens[1].lower() != 'normal':
            raise MalformedDataError(f"Expected 'facet normal', found {tokens[0]!r}",
                                     triangle_index=len(vectors), line=lineno)

        facet = len(vectors)
        normal = _parse_floats(tokens[2:], lineno, "facet normal")

        last_line, _ = expect('outer loop', facet)
        triangle = []
        for _ in range(3):
            last_line, coords = expect('vertex', facet)
            triangle.append(_parse_floats(coords, last_line, "vertex"))
        last_line, _ = expect('endloop', facet)
        last_line, _ = expect('endfacet', facet)

        vectors.append(triangle)
        normals.append(normal)

    if next(lines, None) is not None:
        logger.debug("Ignoring content after 'endsolid'")

    if not vectors:
        return TriangleMesh.empty()
    return TriangleMesh(np.array(vectors, dtype=np.float64),
                        normals=np.array(normals, dtype=np.float64))


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def check_mesh_extension(filename: str) -> str:
    """Return the lower-cased extension, or raise UnsupportedExtensionError."""
    ext = Path(filename).suffix.lower()
    if ext not in MESH_EXTENSIONS:
        raise UnsupportedExtensionError(filename, MESH_EXTENSIONS)
    return ext


def load_mesh(data: bytes, filename: str) -> TriangleMesh:
    """Parse an STL payload into a TriangleMesh.

    Args:
        data: raw file bytes
        filename: declared file name; only its extension is used

    Raises:
        UnsupportedExtensionError: extension other than .stl (.step included)
        EmptyInputError: zero-byte payload
        MeshParseError: malformed or truncated content
    """
    mesh, _ = load_mesh_with_info(data, filename)
    return mesh


def load_mesh_with_info(data: bytes, filename: str) -> Tuple[TriangleMesh, STLInfo]:
    """Parse an STL payload and also return STLInfo metadata."""
    check_mesh_extension(filename)
    if len(data) == 0:
        raise EmptyInputError(f"File {filename!r} is empty")

    stl_format, solid_name = detect_stl_format(data)
    logger.info("Parsing STL: %s (format: %s, size: %.1f KB)",
                filename, stl_format.value, len(data) / 1024)
    if solid_name:
        logger.debug("Solid name: %s", solid_name)

    if stl_format is STLFormat.ASCII:
        mesh = parse_ascii_stl(data)
    else:
        mesh = parse_binary_stl(data)

    if mesh.n_faces == 0:
        logger.warning("STL file %s contains no triangles", filename)
    else:
        logger.info("Parsed %d triangles from %s", mesh.n_faces, filename)

    info = STLInfo(
        filename=filename,
        format=stl_format,
        size_bytes=len(data),
        n_triangles=mesh.n_faces,
        solid_name=solid_name,
    )
    return mesh, info


def load_mesh_file(filepath: Union[str, os.PathLike]) -> TriangleMesh:
    """Read an STL file from disk and parse it.

    Raises:
        MeshFileNotFoundError: if the file does not exist
        plus everything load_mesh raises
    """
    path = Path(filepath)
    check_mesh_extension(path.name)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        raise MeshFileNotFoundError(f"File not found: {str(path)!r}") from None
    return load_mesh(data, path.name)
