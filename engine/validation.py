"""
Input boundary checks
Collects every field problem of a request before the engine is called
"""
from typing import List, Dict, Optional


class InputValidationError(ValueError):
    """Raised when an input fails boundary validation"""

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(f"Invalid input ({summary})")


class FieldErrors:
    """Accumulates field errors and raises them together"""

    def __init__(self):
        self.errors: List[Dict[str, str]] = []

    def add(self, field: str, message: str):
        self.errors.append({"field": field, "message": message})

    def check_range(
        self,
        field: str,
        value: float,
        minimum: Optional[float] = None,
        maximum: Optional[float] = None,
        message: Optional[str] = None,
    ) -> bool:
        """Record an error if value falls outside [minimum, maximum]"""
        if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
            if message is None:
                low = "-inf" if minimum is None else f"{minimum:g}"
                high = "inf" if maximum is None else f"{maximum:g}"
                message = f"{low} ~ {high} 범위여야 합니다"
            self.add(field, message)
            return False
        return True

    def raise_if_any(self):
        if self.errors:
            raise InputValidationError(self.errors)


def pct_sum_matches(values: List[float], expected: float, tolerance: float) -> bool:
    """Whether values sum to expected within tolerance (inclusive)"""
    return abs(sum(values) - expected) <= tolerance + 1e-9


def parse_enum(enum_cls, value, field_name: str, errors: FieldErrors):
    """Convert a wire value to enum_cls, recording an error instead of raising"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(str(member.value) for member in enum_cls)
        errors.add(field_name, f"허용되지 않는 값입니다: {value!r} (허용: {allowed})")
        return None
