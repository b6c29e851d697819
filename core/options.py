"""
Generation Options
==================

Caller-owned options passed alongside a formatted prompt.

Callers commonly share one options value across many concurrent
invocations, so adapters always work on a copy.
"""

from typing import Any, Dict, List, Optional

import pydantic
from pydantic import BaseModel


class GenerateOptions(BaseModel):
    """Sampling and output-format options for a generation backend."""
    temperature: float = pydantic.Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = pydantic.Field(default=2048, gt=0)
    top_p: float = pydantic.Field(default=1.0, ge=0.0, le=1.0)
    stop: List[str] = pydantic.Field(default_factory=list)
    response_format: str = pydantic.Field(default="text", description='"text" or "json"')
    response_schema: Optional[Dict[str, Any]] = pydantic.Field(
        default=None,
        description="JSON Schema for backends with structured-output support"
    )

    def copy_for_call(self) -> "GenerateOptions":
        """Deep copy, safe to adjust without touching the caller's instance."""
        return self.model_copy(deep=True)

    def to_payload(self) -> Dict[str, Any]:
        """Request fields in OpenAI-compatible chat-completion form."""
        payload: Dict[str, Any] = {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
        }
        if self.stop:
            payload["stop"] = list(self.stop)
        if self.response_format == "json":
            if self.response_schema:
                payload["response_format"] = {
                    "type": "json_schema",
                    "json_schema": {"name": "outputs", "schema": self.response_schema},
                }
            else:
                payload["response_format"] = {"type": "json_object"}
        return payload
