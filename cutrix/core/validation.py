from __future__ import annotations

from decimal import Decimal

from cutrix.core.name_normalize import clean, normalize
from cutrix.core.schema import LayoutSpec


class ValidationError(Exception):
    """Raised when domain validation fails."""


class LayoutSpecError(ValidationError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def positive_ratios(ratios: dict[str, Decimal]) -> dict[str, Decimal]:
    """Ratios as persisted: zero and missing sizes are omitted."""

    return {clean(size): Decimal(ratio) for size, ratio in ratios.items() if Decimal(ratio) > 0}


def check_layout_spec(spec: LayoutSpec) -> list[str]:
    errors: list[str] = []
    if not spec.colors:
        errors.append("at least one color is required")
    else:
        seen: set[str] = set()
        for color in spec.colors:
            key = normalize(color)
            if not key:
                errors.append("color must not be blank")
            elif key in seen:
                errors.append(f"duplicate color: {clean(color)}")
            seen.add(key)
    if spec.planned_layers <= 0:
        errors.append("planned_layers must be greater than zero")
    if any(Decimal(ratio) < 0 for ratio in spec.ratios.values()):
        errors.append("ratios must not be negative")
    if sum((Decimal(ratio) for ratio in spec.ratios.values()), Decimal("0")) <= 0:
        errors.append("ratio sum must be greater than zero")
    return errors


def validate_layout_spec(spec: LayoutSpec) -> None:
    errors = check_layout_spec(spec)
    if errors:
        raise LayoutSpecError(errors)
