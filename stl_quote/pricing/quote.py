"""Quote assembly: cost breakdown plus optional geometry, stamped with a time."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from stl_quote.geometry.mesh_stats import GeometryMetrics
from stl_quote.pricing.estimator import CostBreakdown, CostInputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Quote:
    """Immutable quote returned to the caller; never persisted here.

    Attributes:
        inputs: pricing inputs the breakdown was computed from
        breakdown: itemized cost
        metrics: geometry of the part, None for a price-only estimate
        source_name: original file name of the part, if any
        created_at: UTC creation time
    """
    inputs: CostInputs
    breakdown: CostBreakdown
    created_at: datetime
    metrics: Optional[GeometryMetrics] = None
    source_name: Optional[str] = None

    @property
    def total_cost(self) -> float:
        return self.breakdown.total_cost

    @property
    def has_geometry(self) -> bool:
        return self.metrics is not None

    def summary(self) -> str:
        parts = [f"Quote ({self.created_at.isoformat(timespec='seconds')})"]
        if self.source_name:
            parts.append(f"Part: {self.source_name}")
        parts.append(
            f"Material: {self.inputs.material or '(none)'}, "
            f"thickness {self.inputs.thickness:g} mm, quantity {self.inputs.quantity}"
        )
        if self.metrics is not None:
            parts.extend(["", self.metrics.summary()])
        parts.extend(["", self.breakdown.summary()])
        return "\n".join(parts)

    def to_dict(self, precision: int = 2) -> Dict[str, Any]:
        return {
            'createdAt': self.created_at.isoformat(),
            'source': self.source_name,
            'inputs': self.inputs.to_dict(),
            'cost': self.breakdown.to_dict(),
            'geometry': self.metrics.to_dict(precision) if self.metrics else None,
        }


def assemble_quote(
    inputs: CostInputs,
    breakdown: CostBreakdown,
    metrics: Optional[GeometryMetrics] = None,
    source_name: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Quote:
    """Combine a cost breakdown and optional geometry into a Quote.

    Raises:
        ValueError: if breakdown is None
    """
    if breakdown is None:
        raise ValueError("A cost breakdown is required to assemble a quote")

    quote = Quote(
        inputs=inputs,
        breakdown=breakdown,
        created_at=created_at or datetime.now(timezone.utc),
        metrics=metrics,
        source_name=source_name,
    )
    logger.info(
        "Quote assembled: total %.2f%s",
        breakdown.total_cost,
        f" for {source_name}" if source_name else "",
    )
    return quote
