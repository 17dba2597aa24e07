"""
Fixed constants for mesh ingestion, geometry analysis and pricing.

Operational settings (upload directory, worker count, timeouts) live in
project_config.py and can be overridden per deployment; the values below
cannot.
"""

from types import MappingProxyType

# ---------------------------------------------------------------------------
# Binary STL layout
# ---------------------------------------------------------------------------

STL_HEADER_SIZE = 80
STL_COUNT_SIZE = 4
STL_DATA_OFFSET = STL_HEADER_SIZE + STL_COUNT_SIZE   # 84
STL_RECORD_SIZE = 50                                 # 12 normal + 36 vertices + 2 attr

# ---------------------------------------------------------------------------
# Upload limits
# ---------------------------------------------------------------------------

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
UPLOAD_EXTENSIONS = (".stl", ".step")
MESH_EXTENSIONS = (".stl",)

# Sample-part generator limit, mm
MAX_SAMPLE_DIMENSION_MM = 100.0

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

# Complexity class boundaries, in faces (Low < 100 <= Medium < 1000 <= High)
COMPLEXITY_MEDIUM_FACES = 100
COMPLEXITY_HIGH_FACES = 1000

# Coordinate rounding used when merging duplicate vertices
VERTEX_MERGE_DECIMALS = 6

# Display rounding for dimensions and volume
DISPLAY_DECIMALS = 2

# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

BASE_COST = 100.0
THICKNESS_REFERENCE_MM = 10.0
QUANTITY_DISCOUNT_STEP = 0.01
QUANTITY_DISCOUNT_FLOOR = 0.8
NEUTRAL_MATERIAL_MULTIPLIER = 1.0

# Input ceilings; keep every total a finite float
MAX_THICKNESS_MM = 1000.0
MAX_QUANTITY = 1_000_000

KNOWN_MATERIALS = ("steel", "aluminum", "brass", "copper")

# Read-only; shared by all requests without locking.
MATERIAL_MULTIPLIERS = MappingProxyType({
    "steel": 1.2,
    "aluminum": 1.0,
    "brass": 1.0,
    "copper": 1.0,
})
