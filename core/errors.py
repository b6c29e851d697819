"""
Adapter Errors
==============

Exception taxonomy for contract validation and response parsing.

- Contract errors: always attributable to a single field.
- Text errors: a strategy could not recover structure from raw text.
- Chain errors: every strategy in a fallback chain was exhausted.
"""

from typing import Any, List, Optional, Tuple


class AdapterError(Exception):
    """Base class for every error raised by the adapter layer."""
    pass


class ContractDefinitionError(AdapterError):
    """Raised when a Field or Signature is declared with invalid metadata."""
    pass


# =============================================================================
# Contract errors
# =============================================================================

class ContractError(AdapterError):
    """Validation error bound to a specific field."""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        super().__init__(message)


class MissingInput(ContractError):
    def __init__(self, field_name: str):
        super().__init__(field_name, f"missing required input field: {field_name}")


class MissingOutput(ContractError):
    def __init__(self, field_name: str):
        super().__init__(field_name, f"missing required output field: {field_name}")


class TypeMismatch(ContractError):
    """Raised when a value cannot be coerced to the field's declared kind."""

    def __init__(self, field_name: str, value: Any, expected: str, reason: Optional[str] = None):
        self.value = value
        self.expected = expected
        detail = f"field {field_name} expected {expected}, got {type(value).__name__} {value!r}"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(field_name, detail)


class InvalidEnumValue(ContractError):
    """Raised when a class value matches neither an allowed value nor an alias."""

    def __init__(self, field_name: str, raw_value: str, allowed: List[str]):
        self.raw_value = raw_value
        self.allowed = list(allowed)
        super().__init__(
            field_name,
            f"field {field_name} has invalid class value: {raw_value!r} (must be one of {self.allowed})"
        )


# =============================================================================
# Text errors
# =============================================================================

class TextError(AdapterError):
    """A strategy failed to recover structure from the raw response."""
    pass


class UnrepairableStructuredText(TextError):
    """Structured text could not be parsed even after every repair."""

    def __init__(self, original: str, message: str = "structured text could not be repaired"):
        self.original = original
        super().__init__(f"{message} (content: {original[:200]!r})")


class NoMarkersFound(TextError):
    """No field markers were found and heuristic extraction recovered nothing."""
    pass


class ExtractionFailed(TextError):
    """The second phase of a two-phase generation could not produce outputs."""
    pass


# =============================================================================
# Chain errors
# =============================================================================

class AllStrategiesFailed(AdapterError):
    """
    Every strategy of a fallback chain failed on the same response.

    Keeps each attempted strategy's failure and the raw text for debugging.
    """

    def __init__(self, failures: List[Tuple[str, str]], raw_text: str):
        self.failures = list(failures)
        self.raw_text = raw_text
        lines = ["all adapters failed to parse response:"]
        for adapter_name, message in self.failures:
            lines.append(f"  - {adapter_name}: {message}")
        lines.append(f"\nRAW RESPONSE (length={len(raw_text)}):\n{raw_text}")
        super().__init__("\n".join(lines))

    @property
    def last_failure(self) -> Optional[Tuple[str, str]]:
        return self.failures[-1] if self.failures else None
