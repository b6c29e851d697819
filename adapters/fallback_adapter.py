"""
Fallback Adapter
================

Ordered chain of adapters tried against the same raw response.

Selection:
1. Every adapter parses in PARTIAL mode, in order.
2. The first result without diagnostics errors wins immediately.
3. Otherwise the result with the fewest errors wins (earlier adapter on ties);
   a total parse failure always counts as worse than any field-level error.

The winning Prediction records which adapter was used, how many were
attempted and whether the first one was bypassed.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from adapters.base import Adapter
from adapters.chat_adapter import ChatAdapter
from adapters.heuristics import ReasoningLoopDetector
from adapters.json_adapter import JSONAdapter
from core.config import AdapterConfig
from core.errors import AllStrategiesFailed, ContractDefinitionError
from core.messages import Example, History, Prompt
from core.options import GenerateOptions
from core.prediction import Prediction
from core.signature import Signature
from core.validation import ValidationMode

logger = logging.getLogger(__name__)


class FallbackAdapter(Adapter):
    """
    Adapter chain: Chat first, JSON as fallback by default.

    Example:
        >>> adapter = FallbackAdapter()
        >>> pred = adapter.parse(sig, '{"answer": "4"}')
        >>> pred.adapter_used, pred.fallback_used
        ('JSONAdapter', True)
    """

    name = "FallbackAdapter"

    def __init__(
        self,
        adapters: Optional[List[Adapter]] = None,
        mode: ValidationMode = ValidationMode.STRICT
    ):
        """
        Args:
            adapters: Strategies in priority order (Chat, then JSON by default)
            mode: Validation mode used when parse() is called without one
        """
        if adapters is None:
            adapters = [ChatAdapter(), JSONAdapter()]
        if not adapters:
            raise ContractDefinitionError("FallbackAdapter needs at least one adapter")
        self.adapters = list(adapters)
        self.mode = mode

    @classmethod
    def from_config(cls, config: AdapterConfig) -> "FallbackAdapter":
        """Build the chain named by `config.fallback_chain`."""
        config.validate()
        detector = ReasoningLoopDetector(labels=config.reasoning_markers)
        builders = {
            "chat": lambda: ChatAdapter(
                include_reasoning=config.include_reasoning,
                debug_parse=config.debug_parse,
                detector=detector,
            ),
            "json": lambda: JSONAdapter(
                include_reasoning=config.include_reasoning,
                debug_parse=config.debug_parse,
            ),
        }
        return cls(
            [builders[name]() for name in config.fallback_chain],
            mode=config.validation_mode,
        )

    def with_reasoning(self, include: bool = True) -> "FallbackAdapter":
        for adapter in self.adapters:
            if hasattr(adapter, "with_reasoning"):
                adapter.with_reasoning(include)
        return self

    @property
    def primary(self) -> Adapter:
        return self.adapters[0]

    def format(
        self,
        signature: Signature,
        inputs: Dict[str, Any],
        demos: Optional[List[Example]] = None,
        history: Optional[History] = None,
        options: Optional[GenerateOptions] = None
    ) -> Prompt:
        return self.primary.format(signature, inputs, demos=demos, history=history, options=options)

    def render_outputs(self, signature: Signature, values: Dict[str, Any]) -> str:
        return self.primary.render_outputs(signature, values)

    def parse(
        self,
        signature: Signature,
        raw_text: str,
        mode: Optional[ValidationMode] = None
    ) -> Prediction:
        mode = mode or self.mode
        raw_text = raw_text or ""
        failures: List[Tuple[str, str]] = []
        best: Optional[Prediction] = None
        best_index = -1
        attempts = 0

        for index, adapter in enumerate(self.adapters):
            attempts = index + 1
            candidate = adapter.parse(signature, raw_text, ValidationMode.PARTIAL)
            diagnostics = candidate.diagnostics

            if diagnostics.is_parse_failure:
                failures.append((adapter.name, diagnostics.parse_error))
                logger.debug(f"[{self.name}] {adapter.name} failed: {diagnostics.parse_error}")
            elif diagnostics.has_errors:
                logger.debug(f"[{self.name}] {adapter.name} partial: {diagnostics.summary()}")

            if best is None or diagnostics.error_count < best.diagnostics.error_count:
                best, best_index = candidate, index

            if not diagnostics.has_errors:
                break

        if best_index > 0:
            logger.warning(
                f"⚠️ [{self.name}] Fell back to {self.adapters[best_index].name} "
                f"after {best_index} adapter(s) could not parse the response"
            )
        else:
            logger.info(f"[{self.name}] Parsed with {self.adapters[best_index].name}")

        if mode == ValidationMode.STRICT and best.diagnostics.has_errors:
            if best.diagnostics.is_parse_failure:
                logger.error(f"❌ [{self.name}] All {len(self.adapters)} adapters failed to parse response")
                raise AllStrategiesFailed(failures, raw_text)
            # Re-run the chosen adapter strictly so its contract error propagates
            best = self.adapters[best_index].parse(signature, raw_text, ValidationMode.STRICT)

        if best.diagnostics.is_parse_failure and len(failures) > 1:
            summary = "; ".join(f"{name}: {message}" for name, message in failures)
            best = best.model_copy(update={
                "diagnostics": best.diagnostics.model_copy(update={"parse_error": summary})
            })

        return best.with_provenance(
            adapter_used=self.adapters[best_index].name,
            parse_attempts=attempts,
            fallback_used=best_index > 0,
        )


def build_fallback_adapter(config: Optional[AdapterConfig] = None) -> FallbackAdapter:
    """Fallback chain from `config`, or from the environment when omitted."""
    return FallbackAdapter.from_config(config or AdapterConfig.from_env())
