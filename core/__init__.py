from .errors import (
    AdapterError,
    ContractDefinitionError,
    ContractError,
    MissingInput,
    MissingOutput,
    TypeMismatch,
    InvalidEnumValue,
    TextError,
    UnrepairableStructuredText,
    NoMarkersFound,
    ExtractionFailed,
    AllStrategiesFailed,
)
from .signature import Field, FieldType, Signature
from .diagnostics import Diagnostics
from .validation import ValidationMode, validate_inputs, validate_outputs
from .prediction import Prediction
from .messages import Role, Message, Example, History, Prompt
from .options import GenerateOptions
from .config import AdapterConfig

__all__ = [
    "AdapterError", "ContractDefinitionError", "ContractError", "MissingInput", "MissingOutput",
    "TypeMismatch", "InvalidEnumValue", "TextError", "UnrepairableStructuredText", "NoMarkersFound",
    "ExtractionFailed", "AllStrategiesFailed",
    "Field", "FieldType", "Signature", "Diagnostics", "ValidationMode", "validate_inputs",
    "validate_outputs", "Prediction", "Role", "Message", "Example", "History", "Prompt",
    "GenerateOptions", "AdapterConfig",
]
