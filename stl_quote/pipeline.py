"""
End-to-end pipeline: STL bytes -> GeometryMetrics, pricing inputs -> Quote.

These functions are synchronous and CPU-bound; service.py schedules them on
a worker pool.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from stl_quote.geometry.mesh_stats import GeometryMetrics, analyze_mesh
from stl_quote.io.stl_loader import load_mesh, load_mesh_file
from stl_quote.logging_config import log_timing
from stl_quote.pricing.estimator import CostInputs, estimate_cost
from stl_quote.pricing.quote import Quote, assemble_quote

logger = logging.getLogger(__name__)


def analyze_bytes(data: bytes, filename: str) -> GeometryMetrics:
    """Parse an STL payload and analyze its geometry."""
    with log_timing(logger, "Geometry analysis", file=filename):
        mesh = load_mesh(data, filename)
        return analyze_mesh(mesh)


def analyze_file(path: Union[str, os.PathLike]) -> GeometryMetrics:
    """Read an STL file and analyze its geometry."""
    path = Path(path)
    with log_timing(logger, "Geometry analysis", file=path.name):
        mesh = load_mesh_file(path)
        return analyze_mesh(mesh)


def quote_inputs(inputs: CostInputs) -> Quote:
    """Price-only quote: no geometry attached."""
    return assemble_quote(inputs, estimate_cost(inputs))


def quote_file(
    path: Union[str, os.PathLike],
    inputs: CostInputs,
    source_name: Optional[str] = None,
) -> Quote:
    """Analyze a part file and price it.

    Raises:
        QuoteError subclasses from loading or validation
    """
    path = Path(path)
    metrics = analyze_file(path)
    breakdown = estimate_cost(inputs)
    return assemble_quote(
        inputs,
        breakdown,
        metrics=metrics,
        source_name=source_name or path.name,
    )
