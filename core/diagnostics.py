"""
Validation Diagnostics
======================

Per-parse record of what went wrong, attached to a result instead of raising.
"""

from typing import Dict, List, Optional

import pydantic
from pydantic import BaseModel, ConfigDict


class Diagnostics(BaseModel):
    """
    Structured record of validation and parse problems.

    Created fresh for every parse attempt and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    missing_fields: List[str] = pydantic.Field(
        default_factory=list,
        description="Required output fields that were not found"
    )
    type_errors: Dict[str, str] = pydantic.Field(
        default_factory=dict,
        description="Type coercion errors by field name"
    )
    class_errors: Dict[str, str] = pydantic.Field(
        default_factory=dict,
        description="Enum validation errors by field name (keeps the raw value)"
    )
    parse_error: Optional[str] = pydantic.Field(
        default=None,
        description="Text-level failure downgraded to a diagnostic in partial mode"
    )
    repaired: bool = pydantic.Field(
        default=False,
        description="Whether the repair engine was needed to read structured text"
    )

    @property
    def is_parse_failure(self) -> bool:
        return self.parse_error is not None

    @property
    def has_errors(self) -> bool:
        return (
            self.is_parse_failure
            or bool(self.missing_fields)
            or bool(self.type_errors)
            or bool(self.class_errors)
        )

    @property
    def error_count(self) -> int:
        """
        Number of problems recorded.

        A parse failure outweighs any number of field-level errors so that
        a partially valid result always ranks ahead of a total failure.
        """
        count = len(self.missing_fields) + len(self.type_errors) + len(self.class_errors)
        if self.is_parse_failure:
            count += 1_000_000
        return count

    def summary(self) -> str:
        parts = []
        if self.parse_error:
            parts.append(f"parse error: {self.parse_error}")
        if self.missing_fields:
            parts.append(f"missing: {', '.join(self.missing_fields)}")
        for name, err in self.type_errors.items():
            parts.append(f"type error on {name}: {err}")
        for name, err in self.class_errors.items():
            parts.append(f"class error on {name}: {err}")
        return "; ".join(parts) if parts else "ok"
