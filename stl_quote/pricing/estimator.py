"""
Parametric cost estimation.

    baseCost         = 100
    materialCost     = baseCost * materialMultiplier
    thicknessCost    = baseCost * thickness / 10
    quantityDiscount = max(0.8, 1 - quantity * 0.01)
    totalCost        = baseCost * materialMultiplier * thickness / 10
                       * quantityDiscount * quantity

Steel carries a 1.2 multiplier; every other material, recognized or not,
prices at 1.0. Unrecognized materials are accepted with a warning rather
than rejected.
"""

import logging
import math
from dataclasses import dataclass
from numbers import Integral, Real
from typing import Any, Dict, Mapping, Tuple

from stl_quote.config import (
    BASE_COST,
    KNOWN_MATERIALS,
    MATERIAL_MULTIPLIERS,
    MAX_QUANTITY,
    MAX_THICKNESS_MM,
    NEUTRAL_MATERIAL_MULTIPLIER,
    QUANTITY_DISCOUNT_FLOOR,
    QUANTITY_DISCOUNT_STEP,
    THICKNESS_REFERENCE_MM,
)
from stl_quote.errors import InputValidationError, InvalidQuantityError, InvalidThicknessError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostInputs:
    """User-chosen pricing inputs.

    Attributes:
        material: material name, lower-cased
        thickness: part thickness in mm, positive
        quantity: number of parts, positive integer
    """
    material: str
    thickness: float
    quantity: int

    def __post_init__(self):
        object.__setattr__(self, 'material', normalize_material(self.material))
        thickness, quantity = validate_inputs(self.thickness, self.quantity)
        object.__setattr__(self, 'thickness', thickness)
        object.__setattr__(self, 'quantity', quantity)

    @property
    def is_known_material(self) -> bool:
        return self.material in KNOWN_MATERIALS

    @classmethod
    def from_request(cls, request: Mapping[str, Any]) -> 'CostInputs':
        """Build inputs from a JSON-like record.

        Numbers may arrive as numeric strings (form fields); anything that
        does not coerce raises the matching validation error.
        """
        if not isinstance(request, Mapping):
            raise InputValidationError(
                f"Request must be an object, got {type(request).__name__}", request
            )
        return cls(
            material=request.get('material'),
            thickness=request.get('thickness'),
            quantity=request.get('quantity'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'material': self.material,
            'thickness': self.thickness,
            'quantity': self.quantity,
        }


@dataclass(frozen=True)
class CostBreakdown:
    """Itemized cost for one request."""
    base_cost: float
    material_cost: float
    thickness_cost: float
    quantity_discount: float
    total_cost: float

    def to_dict(self) -> Dict[str, float]:
        """Response record for the cost-calculation boundary."""
        return {
            'baseCost': self.base_cost,
            'materialCost': self.material_cost,
            'thicknessCost': self.thickness_cost,
            'quantityDiscount': self.quantity_discount,
            'totalCost': self.total_cost,
        }

    def summary(self) -> str:
        lines = [
            "Cost Breakdown",
            "=" * 40,
            f"Base cost:         {self.base_cost:10.2f}",
            f"Material cost:     {self.material_cost:10.2f}",
            f"Thickness cost:    {self.thickness_cost:10.2f}",
            f"Quantity discount: {self.quantity_discount:10.2f}",
            f"Total cost:        {self.total_cost:10.2f}",
        ]
        return "\n".join(lines)


def normalize_material(material: Any) -> str:
    if material is None:
        return ""
    return str(material).strip().lower()


def _coerce_thickness(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidThicknessError("Thickness must be a number", value)
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise InvalidThicknessError(f"Thickness must be a number, got {value!r}",
                                        value) from None
    if not isinstance(value, Real):
        raise InvalidThicknessError(f"Thickness must be a number, got {value!r}", value)

    thickness = float(value)
    if not math.isfinite(thickness) or thickness <= 0:
        raise InvalidThicknessError(
            f"Thickness must be a positive finite number, got {value!r}", value
        )
    if thickness > MAX_THICKNESS_MM:
        raise InvalidThicknessError(
            f"Thickness must not exceed {MAX_THICKNESS_MM:g} mm, got {value!r}", value
        )
    return thickness


def _coerce_quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidQuantityError("Quantity must be an integer", value)
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise InvalidQuantityError(f"Quantity must be an integer, got {text!r}",
                                           text) from None
    if isinstance(value, Real) and not isinstance(value, Integral):
        if not (math.isfinite(value) and float(value).is_integer()):
            raise InvalidQuantityError(f"Quantity must be a whole number, got {value!r}",
                                       value)
        value = int(value)
    if not isinstance(value, Integral):
        raise InvalidQuantityError(f"Quantity must be an integer, got {value!r}", value)

    quantity = int(value)
    if quantity <= 0:
        raise InvalidQuantityError(f"Quantity must be a positive integer, got {quantity}",
                                   value)
    if quantity > MAX_QUANTITY:
        raise InvalidQuantityError(f"Quantity must not exceed {MAX_QUANTITY}", value)
    return quantity


def validate_inputs(thickness: Any, quantity: Any) -> Tuple[float, int]:
    """Coerce and check thickness, then quantity.

    Raises:
        InvalidThicknessError: non-numeric, non-finite or <= 0 thickness
        InvalidQuantityError: non-integer, boolean or <= 0 quantity
    """
    return _coerce_thickness(thickness), _coerce_quantity(quantity)


def material_multiplier(material: str) -> float:
    """Multiplier for a material; unrecognized names price at 1.0."""
    key = normalize_material(material)
    multiplier = MATERIAL_MULTIPLIERS.get(key)
    if multiplier is None:
        logger.warning("Unknown material %r, using neutral multiplier %.1f",
                       material, NEUTRAL_MATERIAL_MULTIPLIER)
        return NEUTRAL_MATERIAL_MULTIPLIER
    return multiplier


def quantity_discount(quantity: int) -> float:
    """Per-unit discount factor: 1% per unit ordered, floored at 0.8."""
    return max(QUANTITY_DISCOUNT_FLOOR, 1 - quantity * QUANTITY_DISCOUNT_STEP)


def estimate_cost(inputs: CostInputs) -> CostBreakdown:
    """Compute the itemized cost for validated inputs.

    Example:
        >>> round(estimate_cost(CostInputs("steel", 10, 1)).total_cost, 2)
        118.8
    """
    multiplier = material_multiplier(inputs.material)
    thickness_factor = inputs.thickness / THICKNESS_REFERENCE_MM
    discount = quantity_discount(inputs.quantity)

    total = BASE_COST * multiplier * thickness_factor * discount * inputs.quantity

    breakdown = CostBreakdown(
        base_cost=BASE_COST,
        material_cost=BASE_COST * multiplier,
        thickness_cost=BASE_COST * thickness_factor,
        quantity_discount=discount,
        total_cost=total,
    )
    logger.debug(
        "Cost estimated",
        extra={
            'material': inputs.material,
            'thickness': inputs.thickness,
            'quantity': inputs.quantity,
            'total_cost': total,
        }
    )
    return breakdown


def estimate_from_request(request: Mapping[str, Any]) -> CostBreakdown:
    """Validate a JSON-like record and estimate its cost."""
    return estimate_cost(CostInputs.from_request(request))
