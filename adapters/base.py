"""
Adapter Interface
=================

An adapter pairs a prompting convention with a parsing algorithm:

- format(): Signature + inputs -> ordered prompt messages
- parse():  Signature + raw model text -> typed Prediction

Adapters hold no mutable state, so one instance can serve many
concurrent callers.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from core.diagnostics import Diagnostics
from core.errors import TextError
from core.messages import Example, History, Message, Prompt, Role
from core.options import GenerateOptions
from core.prediction import Prediction
from core.signature import Field, FieldType, Signature
from core.validation import ValidationMode, validate_inputs, validate_outputs

logger = logging.getLogger(__name__)

REASONING_FIELD = "reasoning"
STEP_BY_STEP = "Think through this step-by-step before providing your final answer.\n\n"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any, indent: Optional[int] = None) -> str:
    return json.dumps(value, ensure_ascii=False, indent=indent, default=_json_default)


def render_value(value: Any) -> str:
    """Render a field value as prompt text."""
    if isinstance(value, (dict, list)):
        return to_json(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def describe_field(field: Field) -> str:
    """One schema line: "- name (type) (optional) [one of: a, b]: description"."""
    line = f"- {field.name} ({field.type.value})"
    if field.optional:
        line += " (optional)"
    if field.type == FieldType.CLASS:
        line += f" [one of: {', '.join(field.classes)}]"
    if field.description:
        line += f": {field.description}"
    return line


def render_inputs(signature: Signature, inputs: Dict[str, Any]) -> str:
    """Render bound inputs as "name: value" lines under an Inputs header."""
    if not signature.input_fields:
        return ""
    lines = ["--- Inputs ---"]
    for field in signature.input_fields:
        if field.name not in inputs:
            continue
        label = f"{field.name} ({field.description})" if field.description else field.name
        lines.append(f"{label}: {render_value(inputs[field.name])}")
    return "\n".join(lines) + "\n\n"


class Adapter(ABC):
    """Strategy turning a Signature into prompts and model text back into outputs."""

    name: str = "Adapter"

    @abstractmethod
    def format(
        self,
        signature: Signature,
        inputs: Dict[str, Any],
        demos: Optional[List[Example]] = None,
        history: Optional[History] = None,
        options: Optional[GenerateOptions] = None
    ) -> Prompt:
        """
        Build the prompt for a generation call.

        Args:
            signature: Task contract
            inputs: Bound input values
            demos: Few-shot demonstrations
            history: Prior conversation, prepended to the prompt
            options: Caller-owned options; never mutated

        Raises:
            MissingInput, TypeMismatch: inputs do not satisfy the signature
        """
        pass

    @abstractmethod
    def parse(
        self,
        signature: Signature,
        raw_text: str,
        mode: ValidationMode = ValidationMode.STRICT
    ) -> Prediction:
        """
        Recover typed outputs from raw model text.

        STRICT raises contract and text errors; PARTIAL never raises for
        either and reports them in the Prediction's diagnostics.
        """
        pass

    @abstractmethod
    def render_outputs(self, signature: Signature, values: Dict[str, Any]) -> str:
        """Render output values the way a conforming model response would."""
        pass


class PromptAdapter(Adapter):
    """
    Shared format/parse pipeline for single-convention adapters.

    Subclasses provide the task prompt, the demonstration messages and
    `_extract`, which turns raw text into an untyped field mapping or
    raises a TextError.
    """

    name = "PromptAdapter"
    allow_list_join = False

    def __init__(self, include_reasoning: bool = False, debug_parse: bool = False):
        """
        Args:
            include_reasoning: Ask for (and recover) a step-by-step reasoning field
            debug_parse: Log a preview of the raw text when parsing fails
        """
        self.include_reasoning = include_reasoning
        self.debug_parse = debug_parse

    def with_reasoning(self, include: bool = True) -> "PromptAdapter":
        self.include_reasoning = include
        return self

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _build_task_prompt(self, signature: Signature, inputs: Dict[str, Any], demos: List[Example]) -> str:
        pass

    def _format_demos(self, signature: Signature, demos: List[Example]) -> List[Message]:
        return []

    def _adjust_options(self, signature: Signature, options: GenerateOptions):
        pass

    @abstractmethod
    def _extract(self, signature: Signature, raw_text: str) -> Tuple[Dict[str, Any], bool]:
        """Return (raw field values, repaired flag) or raise TextError."""
        pass

    # ------------------------------------------------------------------
    # Format
    # ------------------------------------------------------------------

    def format(
        self,
        signature: Signature,
        inputs: Dict[str, Any],
        demos: Optional[List[Example]] = None,
        history: Optional[History] = None,
        options: Optional[GenerateOptions] = None
    ) -> Prompt:
        bound = validate_inputs(signature, inputs)
        demos = list(demos or [])

        call_options = options.copy_for_call() if options is not None else GenerateOptions()
        self._adjust_options(signature, call_options)

        messages: List[Message] = []
        if history is not None and not history.is_empty():
            messages.extend(history.messages)
        messages.extend(self._format_demos(signature, demos))
        messages.append(Message(role=Role.USER, content=self._build_task_prompt(signature, bound, demos)))

        logger.debug(f"[{self.name}] Formatted {len(messages)} messages ({len(demos)} demos)")
        return Prompt(messages=messages, options=call_options)

    # ------------------------------------------------------------------
    # Parse
    # ------------------------------------------------------------------

    def parse(
        self,
        signature: Signature,
        raw_text: str,
        mode: ValidationMode = ValidationMode.STRICT
    ) -> Prediction:
        return self._parse_with(self._extract, signature, raw_text, mode)

    def _parse_with(self, extract, signature: Signature, raw_text: str, mode: ValidationMode) -> Prediction:
        raw_text = raw_text or ""
        try:
            raw, repaired = extract(signature, raw_text)
        except TextError as e:
            self._log_failure(raw_text, e)
            if mode == ValidationMode.STRICT:
                raise
            return self._failed_prediction(signature, raw_text, e)

        if repaired:
            logger.warning(f"🔧 [{self.name}] Response needed structured-text repair")

        rationale = None
        if self.include_reasoning and signature.get_output_field(REASONING_FIELD) is None:
            reasoning = raw.pop(REASONING_FIELD, None)
            if reasoning is not None:
                rationale = render_value(reasoning).strip()

        outputs, diagnostics = validate_outputs(
            signature,
            raw,
            mode,
            allow_list_join=self.allow_list_join,
            repaired=repaired
        )
        return Prediction(
            outputs=outputs,
            diagnostics=diagnostics,
            adapter_used=self.name,
            rationale=rationale,
            raw_text=raw_text,
        )

    def _failed_prediction(self, signature: Signature, raw_text: str, error: TextError) -> Prediction:
        required = [f.name for f in signature.output_fields if f.required]
        return Prediction(
            outputs={name: None for name in required},
            diagnostics=Diagnostics(missing_fields=required, parse_error=str(error)),
            adapter_used=self.name,
            raw_text=raw_text,
        )

    def _log_failure(self, raw_text: str, error: Exception):
        logger.debug(f"[{self.name}] Parse failed: {error}")
        if self.debug_parse:
            preview = raw_text if len(raw_text) <= 500 else raw_text[:500] + "..."
            logger.warning(
                f"⚠️ [{self.name}] Parse error: {error} | length={len(raw_text)} | preview:\n{preview}"
            )
