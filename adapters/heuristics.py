"""
Heuristic Extraction
====================

Best-effort recovery of field values from free-form text that ignored the
requested marker format.

- label matching: "Answer: 42", "**Result:** 42", with field-name synonyms
- qualitative phrases for numeric fields: "(high confidence)" -> "high"
- reasoning-loop responses (Thought/Action/Observation): the line
  announcing the final answer is taken as the terminal value

Reasoning-loop detection is inherently fuzzy, so its labels and final-answer
markers are configurable through ReasoningLoopDetector.
"""

import re
from typing import Dict, List, Optional, Sequence

from core.signature import Field, FieldType

FIELD_SYNONYMS: Dict[str, List[str]] = {
    "answer": ["final answer", "final_answer", "result", "output", "solution", "conclusion", "response"],
    "title": ["heading", "name"],
    "summary": ["synopsis", "overview"],
    "explanation": ["reasoning", "rationale"],
    "sources": ["source", "references", "citations"],
}

# Fields that take the terminal value of a reasoning loop
TERMINAL_FIELDS = {"answer", "result", "final_answer", "solution", "output"}

_EMPHASIS = r"(?:\*\*|__)?"
_QUALIFIERS = r"(very high|very low|high|medium|moderate|low)"
_MARKER_FRAGMENT = "[[ ##"


def _label_pattern(term: str) -> re.Pattern:
    words = [re.escape(w) for w in re.split(r"[\s_]+", term.strip()) if w]
    label = r"[\s_]+".join(words)
    return re.compile(
        rf"^[ \t>*#-]*{_EMPHASIS}{label}{_EMPHASIS}[ \t]*:[ \t]*{_EMPHASIS}[ \t]*(.*)$",
        re.IGNORECASE | re.MULTILINE,
    )


def search_terms(field_name: str) -> List[str]:
    terms = [field_name]
    spaced = field_name.replace("_", " ")
    if spaced != field_name:
        terms.append(spaced)
    terms.extend(FIELD_SYNONYMS.get(field_name.lower(), []))
    return terms


def extract_labeled_value(text: str, terms: Sequence[str]) -> Optional[str]:
    """
    Value of the first line labeled with one of `terms`.

    When the label stands alone on its line the next non-empty line is used.
    """
    for term in terms:
        match = _label_pattern(term).search(text)
        if not match:
            continue
        value = match.group(1).strip().strip("*_").strip()
        if value:
            return value
        for line in text[match.end():].splitlines():
            if line.strip():
                return line.strip()
    return None


def extract_qualitative_phrase(text: str, field_name: str) -> Optional[str]:
    """Find "<qualifier> <field>" phrases such as "high confidence"."""
    label = r"[\s_]+".join(re.escape(w) for w in field_name.split("_") if w)
    match = re.search(rf"\b{_QUALIFIERS}\s+{label}\b", text, re.IGNORECASE)
    return match.group(1).lower() if match else None


class ReasoningLoopDetector:
    """
    Detects Thought/Action/Observation scaffolding and finds the final answer.

    A response counts as a reasoning loop when at least `min_labels` distinct
    scaffold labels start a line. Only text announced by a final-answer
    marker is taken as the answer.

    Example:
        >>> detector = ReasoningLoopDetector()
        >>> detector.detects("Thought: add\\nAction: None\\nFinal Answer: 4")
        True
        >>> detector.final_answer("Thought: add\\nAction: None (Final Answer)\\n4")
        '4'
    """

    def __init__(
        self,
        labels: Sequence[str] = ("thought", "action", "observation"),
        final_markers: Sequence[str] = ("action: none (final answer)", "final answer:", "action: none"),
        min_labels: int = 2
    ):
        """
        Args:
            labels: Scaffold labels, matched as "<label>:" at the start of a line
            final_markers: Phrases announcing the final answer, tried in order
            min_labels: Distinct labels required before the text counts as a loop
        """
        self.labels = [label.lower() for label in labels]
        self.final_markers = [marker.lower() for marker in final_markers]
        self.min_labels = min_labels
        self._label_patterns = [
            re.compile(rf"^[ \t]*{re.escape(label)}[ \t]*:", re.IGNORECASE | re.MULTILINE)
            for label in self.labels
        ]

    def detects(self, text: str) -> bool:
        present = sum(1 for pattern in self._label_patterns if pattern.search(text))
        return present >= self.min_labels

    def is_scaffolding(self, line: str) -> bool:
        return any(pattern.match(line) for pattern in self._label_patterns) or _MARKER_FRAGMENT in line

    def strip_scaffolding(self, value: str) -> str:
        """Remove leading scaffold labels ("Thought:", "Final Answer:")."""
        prefixes = [f"{label}:" for label in self.labels] + ["final answer:"]
        stripped = value.strip()
        changed = True
        while changed:
            changed = False
            for prefix in prefixes:
                if stripped.lower().startswith(prefix):
                    stripped = stripped[len(prefix):].strip()
                    changed = True
        return stripped

    def final_answer(self, text: str) -> Optional[str]:
        """Text following the first final-answer marker, or None without one."""
        lowered = text.lower()
        for marker in self.final_markers:
            idx = lowered.find(marker)
            if idx == -1:
                continue
            lines = [
                line.strip()
                for line in text[idx + len(marker):].splitlines()
                if line.strip() and not self.is_scaffolding(line)
            ]
            answer = " ".join(lines).strip()
            if answer:
                return answer
        return None


def extract_field(text: str, field: Field, detector: ReasoningLoopDetector) -> Optional[str]:
    """
    Heuristically recover one field's raw value from unmarked text.

    Returns None when nothing plausible is found.
    """
    value = extract_labeled_value(text, search_terms(field.name))
    if value is not None:
        return detector.strip_scaffolding(value)

    if field.type == FieldType.FLOAT:
        phrase = extract_qualitative_phrase(text, field.name)
        if phrase is not None:
            return phrase

    if field.name.lower() in TERMINAL_FIELDS and detector.detects(text):
        answer = detector.final_answer(text)
        if answer is not None:
            return detector.strip_scaffolding(answer)

    return None
