"""
Value Coercion & Class Normalization
====================================

Converts raw values recovered from model output into the kinds declared
by a Signature.

Numeric rule (documented, applied consistently):
    1. direct numeric parse               "0.95"          -> 0.95
    2. first numeric run in the text      "High (95%)"    -> 95
    3. qualitative word (float fields)    "high"          -> 0.9

No percent scaling is applied: "95%" stays 95. Grouped thousands are read
whole ("1,234" -> 1234), and integer literals are converted with int() so
large values keep every digit.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from core.errors import InvalidEnumValue, TypeMismatch, UnrepairableStructuredText
from core.repair import load_json, repair_structured_text
from core.signature import Field, FieldType, Signature

FieldValue = Union[str, int, float, bool, dict, list, datetime]

_NUMBER_RE = re.compile(r"-?\d{1,3}(?:,\d{3})+(?:\.\d+)?|-?\d+(?:\.\d+)?")
_INT_LITERAL_RE = re.compile(r"^[+-]?\d+$")
_FULL_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

QUALITATIVE_SCORES: Dict[str, float] = {
    "very high": 0.95,
    "high": 0.9,
    "medium": 0.7,
    "moderate": 0.7,
    "low": 0.3,
    "very low": 0.1,
}

_QUALITATIVE_RE = re.compile(
    r"^(very high|very low|high|medium|moderate|low)(\s+confidence)?$"
)

_TRUE_WORDS = {"true", "t", "yes", "y", "1"}
_FALSE_WORDS = {"false", "f", "no", "n", "0"}

# Conservative key synonyms: only mapped when the canonical field exists
_KEY_SYNONYMS: Dict[str, List[str]] = {
    "answer": ["final", "finalanswer", "finalresult", "result", "response"],
}


# =============================================================================
# Numeric helpers
# =============================================================================

def extract_numeric_value(text: str) -> Optional[str]:
    """Return the first numeric run in `text` ("High (95%)" -> "95", "1,234" -> "1234")."""
    match = _NUMBER_RE.search(text)
    return match.group(0).replace(",", "") if match else None


def qualitative_score(text: str) -> Optional[float]:
    """Map confidence-style free text ("high", "Low confidence") to a score."""
    normalized = re.sub(r"[^a-z\s]", " ", text.lower())
    normalized = " ".join(normalized.split())
    match = _QUALITATIVE_RE.match(normalized)
    if not match:
        return None
    return QUALITATIVE_SCORES[match.group(1)]


def coerce_int(value: Any, field_name: str = "value") -> int:
    if isinstance(value, bool):
        raise TypeMismatch(field_name, value, "int")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise TypeMismatch(field_name, value, "int", "non-integral number")
    if isinstance(value, str):
        text = value.strip()
        candidates = [text] if _FULL_NUMBER_RE.match(text) else []
        run = extract_numeric_value(text)
        if run is not None:
            candidates.append(run)
        for candidate in candidates:
            if _INT_LITERAL_RE.match(candidate):
                return int(candidate)
            number = float(candidate)
            if number.is_integer():
                return int(number)
        raise TypeMismatch(field_name, value, "int", "no integer found in text")
    raise TypeMismatch(field_name, value, "int")


def coerce_float(value: Any, field_name: str = "value") -> float:
    if isinstance(value, bool):
        raise TypeMismatch(field_name, value, "float")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if _FULL_NUMBER_RE.match(text):
            return float(text)
        run = extract_numeric_value(text)
        if run is not None:
            return float(run)
        score = qualitative_score(text)
        if score is not None:
            return score
        raise TypeMismatch(field_name, value, "float", "no number found in text")
    raise TypeMismatch(field_name, value, "float")


# =============================================================================
# Other kinds
# =============================================================================

def coerce_bool(value: Any, field_name: str = "value") -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower().rstrip(".")
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise TypeMismatch(field_name, value, "bool")


def coerce_json(value: Any, field_name: str = "value") -> Union[dict, list]:
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = load_json(text)
        except ValueError:
            try:
                parsed = load_json(repair_structured_text(text))
            except UnrepairableStructuredText as e:
                raise TypeMismatch(field_name, value, "json", "unparseable structured text") from e
        if isinstance(parsed, (dict, list)):
            return parsed
    raise TypeMismatch(field_name, value, "json")


def coerce_datetime(value: Any, field_name: str = "value") -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as e:
            raise TypeMismatch(field_name, value, "datetime", "not an ISO-8601 timestamp") from e
    raise TypeMismatch(field_name, value, "datetime")


def coerce_string(value: Any, field_name: str = "value", allow_list_join: bool = False) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if allow_list_join and isinstance(value, list):
        return "\n".join(str(item) for item in value)
    raise TypeMismatch(field_name, value, "string")


# =============================================================================
# Class normalization
# =============================================================================

def build_class_table(field: Field) -> Dict[str, str]:
    """Normalized spelling -> canonical class value. Later aliases win."""
    table = {c.strip().lower(): c for c in field.classes}
    for alias, canonical in field.class_aliases.items():
        table[alias.strip().lower()] = canonical
    return table


def normalize_class_value(value: Any, field: Field) -> Optional[str]:
    """
    Resolve a raw value to one of the field's allowed classes.

    Returns None when neither an allowed value nor an alias matches.
    """
    if value is None or isinstance(value, (dict, list)):
        return None
    return build_class_table(field).get(str(value).strip().lower())


# =============================================================================
# Dispatch
# =============================================================================

def coerce_value(field: Field, value: Any, allow_list_join: bool = False) -> Optional[FieldValue]:
    """
    Coerce `value` to the kind declared by `field`.

    Raises:
        TypeMismatch: value cannot be converted
        InvalidEnumValue: class value matches no allowed value or alias
    """
    if value is None:
        return None

    name = field.name
    if field.type == FieldType.INT:
        return coerce_int(value, name)
    if field.type == FieldType.FLOAT:
        return coerce_float(value, name)
    if field.type == FieldType.BOOL:
        return coerce_bool(value, name)
    if field.type == FieldType.JSON:
        return coerce_json(value, name)
    if field.type == FieldType.DATETIME:
        return coerce_datetime(value, name)
    if field.type == FieldType.CLASS:
        raw = coerce_string(value, name, allow_list_join=False)
        normalized = normalize_class_value(raw, field)
        if normalized is None:
            raise InvalidEnumValue(name, raw, list(field.classes))
        return normalized
    if field.type == FieldType.IMAGE:
        return coerce_string(value, name).strip()
    return coerce_string(value, name, allow_list_join=allow_list_join)


# =============================================================================
# Output keys
# =============================================================================

def normalize_key(key: str) -> str:
    k = key.strip().lower()
    for ch in (" ", "_", "-"):
        k = k.replace(ch, "")
    return k


def normalize_output_keys(signature: Signature, outputs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map loosely spelled keys ("Answer", "final_answer") onto output field names.

    Unknown keys are kept as-is. Values are never rewritten.
    """
    norm_to_canon = {normalize_key(f.name): f.name for f in signature.output_fields}
    for canon, synonyms in _KEY_SYNONYMS.items():
        if canon in norm_to_canon.values():
            for syn in synonyms:
                norm_to_canon.setdefault(syn, canon)

    result: Dict[str, Any] = {}
    for key, value in outputs.items():
        canon = norm_to_canon.get(normalize_key(key))
        if canon is None:
            result[key] = value
        elif result.get(canon) is None:
            result[canon] = value

    return result
