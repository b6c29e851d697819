"""
JSON Adapter
============

Structured strategy: describes the output contract as a JSON schema and
expects a single JSON object back.

Parsing tolerates prose around the object and code fences, and runs the
repair engine once when the object is malformed.
"""

import logging
from typing import Any, Dict, List, Tuple

from adapters.base import PromptAdapter, STEP_BY_STEP, describe_field, render_inputs, to_json
from core.coercion import normalize_output_keys
from core.errors import UnrepairableStructuredText
from core.messages import Example
from core.options import GenerateOptions
from core.repair import parse_structured_text
from core.signature import FieldType, Signature

logger = logging.getLogger(__name__)


class JSONAdapter(PromptAdapter):
    """
    Adapter using JSON for structured outputs.

    Example:
        >>> adapter = JSONAdapter()
        >>> prompt = adapter.format(sig, {"question": "2+2?"})
        >>> pred = adapter.parse(sig, '{"answer": "4"}')
    """

    name = "JSONAdapter"
    allow_list_join = True

    def _build_task_prompt(self, signature: Signature, inputs: Dict[str, Any], demos: List[Example]) -> str:
        parts = []
        if signature.description:
            parts.append(signature.description + "\n\n")
        if self.include_reasoning:
            parts.append(STEP_BY_STEP)

        if demos:
            parts.append("--- Examples ---\n")
            for i, demo in enumerate(demos, 1):
                parts.append(f"Example {i}:\nInputs:\n")
                for key, value in demo.inputs.items():
                    parts.append(f"  {key}: {value}\n")
                if demo.outputs:
                    parts.append("Expected Output:\n")
                    parts.append(f"  {self.render_outputs(signature, demo.outputs)}\n")
            parts.append("\n")

        parts.append(render_inputs(signature, inputs))

        if signature.output_fields:
            parts.append("--- Required Output Format ---\n")
            parts.append("Respond with a JSON object containing:\n")
            if self.include_reasoning:
                parts.append("- reasoning (string): Your step-by-step thought process\n")
            for field in signature.output_fields:
                parts.append(describe_field(field) + "\n")
            parts.append("\nJSON schema:\n")
            parts.append(to_json(signature.to_json_schema(), indent=2) + "\n")
            parts.append(
                "\nIMPORTANT: Return ONLY valid JSON in your response. "
                "Do not include any markdown formatting, code blocks, or explanatory text.\n"
            )
        return "".join(parts)

    def _adjust_options(self, signature: Signature, options: GenerateOptions):
        options.response_format = "json"
        if options.response_schema is None:
            options.response_schema = signature.to_json_schema()

    def _extract(self, signature: Signature, raw_text: str) -> Tuple[Dict[str, Any], bool]:
        try:
            obj, repaired = parse_structured_text(raw_text)
        except UnrepairableStructuredText:
            # A lone string output can be answered in plain prose
            outputs = signature.output_fields
            if (
                len(outputs) == 1
                and outputs[0].type == FieldType.STRING
                and raw_text.strip()
                and "{" not in raw_text
            ):
                logger.debug(f"[{self.name}] No JSON found, using whole response for '{outputs[0].name}'")
                return {outputs[0].name: raw_text.strip()}, False
            raise

        return normalize_output_keys(signature, obj), repaired

    def render_outputs(self, signature: Signature, values: Dict[str, Any]) -> str:
        ordered = {f.name: values[f.name] for f in signature.output_fields if f.name in values}
        return to_json(ordered)
