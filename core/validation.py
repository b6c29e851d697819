"""
Contract Validation
===================

Checks bound inputs and recovered outputs against a Signature.

Two modes for outputs:
- STRICT: the first violation is raised
- PARTIAL: violations are recorded in Diagnostics and the offending field
  is set to None, so callers can still use the rest of the record
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Tuple

from core.coercion import coerce_value
from core.diagnostics import Diagnostics
from core.errors import InvalidEnumValue, MissingInput, MissingOutput, TypeMismatch
from core.signature import Signature

logger = logging.getLogger(__name__)


class ValidationMode(str, Enum):
    STRICT = "strict"
    PARTIAL = "partial"


def _is_missing(values: Dict[str, Any], name: str) -> bool:
    return values.get(name) is None


def validate_inputs(signature: Signature, inputs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and coerce bound inputs.

    Returns:
        Mapping of declared input names to coerced values. Optional inputs
        without a value are left out.

    Raises:
        MissingInput: a required input has no bound value
        TypeMismatch: a bound value cannot be coerced to its field's kind
        InvalidEnumValue: a class input matches no allowed value
    """
    bound: Dict[str, Any] = {}
    for field in signature.input_fields:
        if _is_missing(inputs, field.name):
            if field.required:
                raise MissingInput(field.name)
            continue
        bound[field.name] = coerce_value(field, inputs[field.name], allow_list_join=True)
    return bound


def validate_outputs(
    signature: Signature,
    raw: Dict[str, Any],
    mode: ValidationMode = ValidationMode.STRICT,
    allow_list_join: bool = False,
    repaired: bool = False
) -> Tuple[Dict[str, Any], Diagnostics]:
    """
    Coerce and validate raw outputs against the signature's output fields.

    Args:
        signature: Contract to validate against
        raw: Values recovered from the model response, keyed by field name
        mode: STRICT raises on the first violation, PARTIAL records it
        allow_list_join: Join list values into newline-separated strings
            for string fields
        repaired: Recorded in the Diagnostics when the repair engine was used

    Returns:
        (outputs, diagnostics). Undeclared keys are dropped.

    Raises (STRICT only):
        MissingOutput, TypeMismatch, InvalidEnumValue
    """
    strict = mode == ValidationMode.STRICT
    outputs: Dict[str, Any] = {}
    missing: List[str] = []
    type_errors: Dict[str, str] = {}
    class_errors: Dict[str, str] = {}

    for field in signature.output_fields:
        if _is_missing(raw, field.name):
            if field.required:
                if strict:
                    raise MissingOutput(field.name)
                missing.append(field.name)
                outputs[field.name] = None
            continue

        try:
            outputs[field.name] = coerce_value(field, raw[field.name], allow_list_join=allow_list_join)
        except TypeMismatch as e:
            if strict:
                raise
            type_errors[field.name] = str(e)
            outputs[field.name] = None
        except InvalidEnumValue as e:
            if strict:
                raise
            class_errors[field.name] = str(e)
            outputs[field.name] = None

    diagnostics = Diagnostics(
        missing_fields=missing,
        type_errors=type_errors,
        class_errors=class_errors,
        repaired=repaired,
    )
    if diagnostics.has_errors:
        logger.debug(f"[Validation] Partial outputs with issues: {diagnostics.summary()}")
    return outputs, diagnostics
