"""
Chat Adapter
============

Marker-delimited strategy. Each output field is requested as

    [[ ## field_name ## ]]
    value

Parsing is tolerant of marker spacing, missing closing brackets and
case, and falls back to heuristic extraction (labels, synonyms,
qualitative phrases, reasoning-loop final answers) for fields the model
left unmarked.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from adapters.base import PromptAdapter, STEP_BY_STEP, REASONING_FIELD, render_inputs, render_value
from adapters.heuristics import ReasoningLoopDetector, extract_field
from core.coercion import normalize_class_value, normalize_output_keys
from core.errors import NoMarkersFound
from core.messages import Example, Message, Role
from core.signature import Field, FieldType, Signature

logger = logging.getLogger(__name__)

COMPLETED_MARKER = "completed"

_MARKER_RE = re.compile(r"\[\[\s*##\s*(\w+)\s*##\s*\]{0,2}", re.IGNORECASE)
_WORD_RE = re.compile(r"[A-Za-z0-9_-]+")
_DECORATION = "*_`\"'.,;:!()[] \t"
_LEADING_BLANK_LINES_RE = re.compile(r"\A(?:[ \t]*\r?\n)+")
_TRAILING_BLANK_LINES_RE = re.compile(r"(?:\r?\n[ \t]*)+\Z")


def field_marker(name: str) -> str:
    return f"[[ ## {name} ## ]]"


def strip_markers(value: str) -> str:
    """Remove stray field markers and surrounding whitespace."""
    return _MARKER_RE.sub("", value).strip()


def section_value(section: str) -> str:
    """
    Remove the line breaks enclosing a marked section.

    A value on the marker's own line is trimmed; a value on the following
    lines keeps its indentation and inner whitespace.
    """
    block = _LEADING_BLANK_LINES_RE.sub("", section)
    if block == section:
        return section.strip()
    trimmed = _TRAILING_BLANK_LINES_RE.sub("", block)
    if trimmed == block:
        return block.rstrip(" \t")
    return trimmed


def split_marked_sections(text: str) -> Dict[str, str]:
    """
    Split text at field markers.

    Each value runs from the end of its marker to the start of the next
    one. The first occurrence of a name wins.
    """
    matches = list(_MARKER_RE.finditer(text))
    sections: Dict[str, str] = {}
    for i, match in enumerate(matches):
        name = match.group(1).lower()
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        if name == COMPLETED_MARKER or name in sections:
            continue
        sections[name] = section_value(text[match.end():end])
    return sections


def _first_line(value: str) -> str:
    for line in value.splitlines():
        if line.strip():
            return line.strip()
    return ""


def clean_class_value(value: str, field: Field) -> str:
    """
    Narrow free text to a class label.

    Tries the whole value, its first line, and its first word in turn;
    returns the first line when none of them is an allowed value.
    """
    first = _first_line(value)
    candidates = [value.strip(), first, first.strip(_DECORATION)]
    word = _WORD_RE.search(first)
    if word:
        candidates.append(word.group(0))
    for candidate in candidates:
        if normalize_class_value(candidate, field) is not None:
            return candidate
    return first.strip(_DECORATION) or first


def clean_value(value: str, field: Field) -> str:
    if field.type == FieldType.JSON:
        return value.strip()
    if field.type == FieldType.CLASS:
        return clean_class_value(value, field)
    if field.type == FieldType.BOOL:
        word = _WORD_RE.search(value)
        return word.group(0) if word else value.strip()
    if field.type in (FieldType.INT, FieldType.FLOAT, FieldType.DATETIME, FieldType.IMAGE):
        return _first_line(value)
    return strip_markers(value) if "[[" in value else value


class ChatAdapter(PromptAdapter):
    """
    Adapter using [[ ## field ## ]] markers for structured outputs.

    Example:
        >>> adapter = ChatAdapter()
        >>> pred = adapter.parse(sig, "[[ ## answer ## ]]\\n4")
        >>> pred.get_str("answer")
        '4'
    """

    name = "ChatAdapter"

    def __init__(
        self,
        include_reasoning: bool = False,
        debug_parse: bool = False,
        detector: Optional[ReasoningLoopDetector] = None
    ):
        super().__init__(include_reasoning=include_reasoning, debug_parse=debug_parse)
        self.detector = detector or ReasoningLoopDetector()

    # ------------------------------------------------------------------
    # Format
    # ------------------------------------------------------------------

    def _build_task_prompt(self, signature: Signature, inputs: Dict[str, Any], demos: List[Example]) -> str:
        parts = []
        if signature.description:
            parts.append(signature.description + "\n\n")
        if self.include_reasoning:
            parts.append(STEP_BY_STEP)

        parts.append(render_inputs(signature, inputs))

        if signature.output_fields:
            parts.append("--- Required Output Format ---\n")
            parts.append("Respond using the following field markers, each followed by its value:\n\n")
            if self.include_reasoning:
                parts.append(f"{field_marker(REASONING_FIELD)}\nYour step-by-step thought process\n\n")
            for field in signature.output_fields:
                parts.append(field_marker(field.name) + "\n")
                parts.append(self._field_hint(field) + "\n\n")
            parts.append(
                "IMPORTANT: Use the exact marker format shown above. "
                f"Start each field with its marker and finish with {field_marker(COMPLETED_MARKER)}.\n"
            )
        return "".join(parts)

    @staticmethod
    def _field_hint(field: Field) -> str:
        hints = [f"({field.type.value})"]
        if field.type == FieldType.CLASS:
            hints.append(f"One of: {', '.join(field.classes)}")
        if field.description:
            hints.append(field.description)
        if field.optional:
            hints.append("(optional)")
        return " ".join(hints)

    def _format_demos(self, signature: Signature, demos: List[Example]) -> List[Message]:
        messages: List[Message] = []
        for demo in demos:
            messages.append(Message(role=Role.USER, content=render_inputs(signature, demo.inputs).strip()))
            if demo.outputs:
                messages.append(Message(role=Role.ASSISTANT, content=self.render_outputs(signature, demo.outputs)))
        return messages

    def render_outputs(self, signature: Signature, values: Dict[str, Any]) -> str:
        blocks = []
        for field in signature.output_fields:
            if field.name in values and values[field.name] is not None:
                blocks.append(f"{field_marker(field.name)}\n{render_value(values[field.name])}")
        blocks.append(field_marker(COMPLETED_MARKER))
        return "\n\n".join(blocks)

    # ------------------------------------------------------------------
    # Parse
    # ------------------------------------------------------------------

    def _extract(self, signature: Signature, raw_text: str) -> Tuple[Dict[str, Any], bool]:
        sections = split_marked_sections(raw_text)
        raw = normalize_output_keys(signature, sections)

        found_any = bool(sections)
        for field in signature.output_fields:
            value = raw.get(field.name)
            # An empty marked section is an empty string, not a missing field
            if value is None or (value == "" and field.type != FieldType.STRING):
                value = extract_field(raw_text, field, self.detector)
                if value is None:
                    raw.pop(field.name, None)
                    continue
                logger.debug(f"[{self.name}] Heuristic value for '{field.name}'")
                found_any = True
            raw[field.name] = clean_value(value, field)

        if not found_any:
            raise NoMarkersFound("no field markers or recognizable labels in response")

        return raw, False
