"""
Prediction
==========

Parsed output record returned by every adapter.
"""

from typing import Any, Dict, Optional

import pydantic
from pydantic import BaseModel, ConfigDict

from core.diagnostics import Diagnostics


class Prediction(BaseModel):
    """
    Typed outputs recovered from one model response, plus parse provenance.

    `outputs` maps output field names to coerced values (str, int, float,
    bool, dict/list for json fields, datetime for timestamps). Fields that
    failed validation in partial mode are present with a None value and
    explained in `diagnostics`.

    Example:
        >>> pred = adapter.parse(sig, raw_text)
        >>> pred.get_str("sentiment")
        'positive'
        >>> pred.fallback_used
        False
    """
    model_config = ConfigDict(frozen=True)

    outputs: Dict[str, Any] = pydantic.Field(default_factory=dict, description="Typed output values")
    diagnostics: Diagnostics = pydantic.Field(default_factory=Diagnostics)

    # Provenance
    adapter_used: str = pydantic.Field(default="", description="Adapter that produced the outputs")
    parse_attempts: int = pydantic.Field(default=1, description="Adapters tried before this result")
    fallback_used: bool = pydantic.Field(default=False, description="Whether the first adapter was bypassed")
    rationale: Optional[str] = pydantic.Field(default=None, description="Reasoning text, when requested")
    raw_text: str = pydantic.Field(default="", description="Response the outputs were parsed from")

    @property
    def parse_success(self) -> bool:
        """True when the first adapter parsed the response without errors."""
        return self.parse_attempts == 1 and not self.diagnostics.has_errors

    def with_provenance(self, adapter_used: str, parse_attempts: int, fallback_used: bool) -> "Prediction":
        return self.model_copy(update={
            "adapter_used": adapter_used,
            "parse_attempts": parse_attempts,
            "fallback_used": fallback_used,
        })

    def get(self, key: str, default: Any = None) -> Any:
        value = self.outputs.get(key)
        return default if value is None else value

    def get_str(self, key: str) -> Optional[str]:
        value = self.outputs.get(key)
        return value if isinstance(value, str) else None

    def get_int(self, key: str) -> Optional[int]:
        value = self.outputs.get(key)
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return None

    def get_float(self, key: str) -> Optional[float]:
        value = self.outputs.get(key)
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        return None

    def get_bool(self, key: str) -> Optional[bool]:
        value = self.outputs.get(key)
        return value if isinstance(value, bool) else None
