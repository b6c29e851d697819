"""
Two-Step Adapter
================

Splits generation into two calls for models that reason poorly under
strict formatting pressure:

1. format() asks for a free-form, natural response (no schema).
2. parse() hands that response to an extraction model together with the
   output contract and parses the extraction reply as JSON.

A failure in the second phase is reported as ExtractionFailed. Failures
of the first generation belong to whoever made that call.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from adapters.base import PromptAdapter, REASONING_FIELD, describe_field, render_inputs, render_value
from adapters.json_adapter import JSONAdapter
from core.errors import ExtractionFailed, TextError
from core.messages import Example, Message, Prompt, Role
from core.options import GenerateOptions
from core.prediction import Prediction
from core.signature import Signature
from core.validation import ValidationMode
from providers.base import LanguageModel

logger = logging.getLogger(__name__)


class TwoStepAdapter(PromptAdapter):
    """
    Two-phase adapter: free-form generation, then structured extraction.

    Example:
        >>> adapter = TwoStepAdapter(extraction_lm=OpenRouterProvider(model="openai/gpt-4o-mini"))
        >>> prompt = adapter.format(sig, {"question": "Why is the sky blue?"})
        >>> free_text = reasoning_model.generate(prompt.messages, prompt.options)
        >>> pred = adapter.parse(sig, free_text)
    """

    name = "TwoStepAdapter"
    allow_list_join = True

    def __init__(
        self,
        extraction_lm: Optional[LanguageModel] = None,
        include_reasoning: bool = True,
        debug_parse: bool = False,
        extraction_options: Optional[GenerateOptions] = None
    ):
        """
        Args:
            extraction_lm: Model used for the extraction phase
            include_reasoning: Also extract the reasoning into Prediction.rationale
            debug_parse: Log a preview of the raw text when parsing fails
            extraction_options: Options for the extraction call (copied per call)
        """
        super().__init__(include_reasoning=include_reasoning, debug_parse=debug_parse)
        self.extraction_lm = extraction_lm
        self.extraction_options = extraction_options or GenerateOptions(temperature=0.0)
        self._json = JSONAdapter()

    # ------------------------------------------------------------------
    # Phase one
    # ------------------------------------------------------------------

    def _build_task_prompt(self, signature: Signature, inputs: Dict[str, Any], demos: List[Example]) -> str:
        parts = []
        if signature.description:
            parts.append(signature.description + "\n\n")

        parts.append("Please provide a thorough, natural response to the following inputs.\n")
        parts.append("Think carefully and explain your reasoning.\n\n")

        if demos:
            parts.append("--- Examples ---\n")
            for i, demo in enumerate(demos, 1):
                parts.append(f"\nExample {i}:\nInputs:\n")
                for key, value in demo.inputs.items():
                    parts.append(f"  {key}: {render_value(value)}\n")
                if demo.outputs:
                    parts.append("Response:\n")
                    for key, value in demo.outputs.items():
                        parts.append(f"  {key}: {render_value(value)}\n")
            parts.append("\n")

        parts.append(render_inputs(signature, inputs))

        if signature.output_fields:
            parts.append("--- Please Address ---\n")
            for field in signature.output_fields:
                if field.description:
                    parts.append(f"- {field.name}: {field.description}\n")
                else:
                    parts.append(f"- {field.name}\n")
            parts.append("\nProvide your response in a clear, natural format.\n")
        return "".join(parts)

    def render_outputs(self, signature: Signature, values: Dict[str, Any]) -> str:
        lines = []
        for field in signature.output_fields:
            if values.get(field.name) is not None:
                lines.append(f"{field.name}: {render_value(values[field.name])}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Phase two
    # ------------------------------------------------------------------

    def build_extraction_prompt(self, signature: Signature, phase_one_text: str) -> Prompt:
        """Prompt asking the extraction model to turn free text into JSON."""
        parts = [
            "Extract structured information from the following response.\n\n",
            "--- Original Response ---\n",
            phase_one_text,
            "\n\n--- Required Output Format ---\n",
            "Extract the following fields as a JSON object:\n",
        ]
        if self.include_reasoning:
            parts.append(f"- {REASONING_FIELD} (string): The reasoning or thought process from the response\n")
        for field in signature.output_fields:
            parts.append(describe_field(field) + "\n")
        parts.append("\nIMPORTANT: Return ONLY valid JSON. Extract information accurately from the original response.\n")

        options = self.extraction_options.copy_for_call()
        options.response_format = "json"
        if options.response_schema is None:
            options.response_schema = signature.to_json_schema()

        return Prompt(messages=[Message(role=Role.USER, content="".join(parts))], options=options)

    def _run_extraction(self, signature: Signature, phase_one_text: str) -> str:
        if self.extraction_lm is None:
            raise ExtractionFailed(f"{self.name} requires an extraction model to parse")

        prompt = self.build_extraction_prompt(signature, phase_one_text)
        try:
            reply = self.extraction_lm.generate(prompt.messages, prompt.options)
        except Exception as e:
            raise ExtractionFailed(f"extraction model failed: {e}") from e

        logger.debug(f"[{self.name}] Extraction reply: {len(reply or '')} chars")
        return reply or ""

    def _extract_reply(self, signature: Signature, extraction_text: str) -> Tuple[Dict[str, Any], bool]:
        try:
            return self._json._extract(signature, extraction_text)
        except TextError as e:
            raise ExtractionFailed(f"failed to parse extraction result: {e}") from e

    def _extract(self, signature: Signature, raw_text: str) -> Tuple[Dict[str, Any], bool]:
        return self._extract_reply(signature, self._run_extraction(signature, raw_text))

    def parse_extraction(
        self,
        signature: Signature,
        extraction_text: str,
        mode: ValidationMode = ValidationMode.STRICT
    ) -> Prediction:
        """Parse an extraction reply obtained by the caller (no model call)."""
        return self._parse_with(self._extract_reply, signature, extraction_text, mode)
