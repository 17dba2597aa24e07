"""Cost estimation and quote assembly."""

from stl_quote.pricing.estimator import CostBreakdown, CostInputs, estimate_cost
from stl_quote.pricing.quote import Quote, assemble_quote

__all__ = [
    "CostBreakdown",
    "CostInputs",
    "estimate_cost",
    "Quote",
    "assemble_quote",
]
