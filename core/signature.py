"""
Signature (Contract)
====================

Typed declaration of a task's input and output fields.

A Signature is created once per task definition and never mutated:
the builder methods return a new Signature each time.

Example:
    sig = (
        Signature(description="Classify the sentiment of a review")
        .with_input("review", FieldType.STRING, "Customer review text")
        .with_class_output("sentiment", ["positive", "negative", "neutral"],
                           aliases={"pos": "positive", "neg": "negative"})
        .with_optional_output("confidence", FieldType.FLOAT, "Score 0-1")
    )
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import pydantic
from pydantic import BaseModel, ConfigDict, model_validator

from core.errors import ContractDefinitionError

_FIELD_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class FieldType(str, Enum):
    """Kinds a field value can take."""
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    JSON = "json"          # structured JSON (object or array)
    CLASS = "class"        # enumeration over a fixed set of values
    IMAGE = "image"        # image reference (URL or path)
    DATETIME = "datetime"  # timestamp


# JSON Schema type for each field kind
_SCHEMA_TYPES = {
    FieldType.STRING: "string",
    FieldType.IMAGE: "string",
    FieldType.DATETIME: "string",
    FieldType.INT: "integer",
    FieldType.FLOAT: "number",
    FieldType.BOOL: "boolean",
    FieldType.JSON: "object",
    FieldType.CLASS: "string",
}


class Field(BaseModel):
    """
    One named, typed attribute of a Signature.

    Class fields carry their allowed values in `classes` and may map
    alternate spellings onto them with `class_aliases`.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType = FieldType.STRING
    description: str = ""
    optional: bool = False
    classes: Tuple[str, ...] = ()
    class_aliases: Dict[str, str] = pydantic.Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_definition(self) -> "Field":
        if not _FIELD_NAME_RE.match(self.name or ""):
            raise ContractDefinitionError(f"invalid field name: {self.name!r}")

        if self.type == FieldType.CLASS:
            if not self.classes:
                raise ContractDefinitionError(
                    f"class field {self.name} requires a non-empty set of allowed values"
                )
            if len(set(self.classes)) != len(self.classes):
                raise ContractDefinitionError(f"class field {self.name} has duplicate allowed values")
            for alias, canonical in self.class_aliases.items():
                if canonical not in self.classes:
                    raise ContractDefinitionError(
                        f"alias {alias!r} of field {self.name} points to unknown class {canonical!r}"
                    )
        elif self.classes or self.class_aliases:
            raise ContractDefinitionError(f"only class fields may declare classes ({self.name})")

        return self

    @property
    def required(self) -> bool:
        return not self.optional

    def to_schema(self) -> Dict[str, Any]:
        """JSON Schema property for this field."""
        prop: Dict[str, Any] = {"type": _SCHEMA_TYPES.get(self.type, "string")}
        if self.type == FieldType.CLASS:
            prop["enum"] = list(self.classes)
        if self.type == FieldType.DATETIME:
            prop["format"] = "date-time"
        if self.description:
            prop["description"] = self.description
        return prop


class Signature(BaseModel):
    """
    Aggregate input/output contract plus a natural-language task description.

    Invariants:
    - field names are unique within inputs and within outputs
    - no name is shared between an input and an output
    """
    model_config = ConfigDict(frozen=True)

    description: str = ""
    input_fields: Tuple[Field, ...] = ()
    output_fields: Tuple[Field, ...] = ()

    @model_validator(mode="after")
    def _check_names(self) -> "Signature":
        for label, fields in (("input", self.input_fields), ("output", self.output_fields)):
            seen = set()
            for f in fields:
                if f.name in seen:
                    raise ContractDefinitionError(f"duplicate {label} field: {f.name}")
                seen.add(f.name)

        collisions = set(self.input_names) & set(self.output_names)
        if collisions:
            raise ContractDefinitionError(
                f"fields declared as both input and output: {sorted(collisions)}"
            )
        return self

    # ------------------------------------------------------------------
    # Builders (each returns a new Signature)
    # ------------------------------------------------------------------

    def _with(self, *, inputs: Tuple[Field, ...] = (), outputs: Tuple[Field, ...] = ()) -> "Signature":
        return Signature(
            description=self.description,
            input_fields=self.input_fields + inputs,
            output_fields=self.output_fields + outputs,
        )

    def with_input(self, name: str, field_type: FieldType = FieldType.STRING, description: str = "") -> "Signature":
        return self._with(inputs=(Field(name=name, type=field_type, description=description),))

    def with_optional_input(self, name: str, field_type: FieldType = FieldType.STRING, description: str = "") -> "Signature":
        return self._with(inputs=(Field(name=name, type=field_type, description=description, optional=True),))

    def with_output(self, name: str, field_type: FieldType = FieldType.STRING, description: str = "") -> "Signature":
        return self._with(outputs=(Field(name=name, type=field_type, description=description),))

    def with_optional_output(self, name: str, field_type: FieldType = FieldType.STRING, description: str = "") -> "Signature":
        return self._with(outputs=(Field(name=name, type=field_type, description=description, optional=True),))

    def with_class_output(
        self,
        name: str,
        classes: List[str],
        description: str = "",
        aliases: Optional[Dict[str, str]] = None,
        optional: bool = False
    ) -> "Signature":
        """Add an enumeration output restricted to `classes`."""
        field = Field(
            name=name,
            type=FieldType.CLASS,
            description=description,
            optional=optional,
            classes=tuple(classes),
            class_aliases=dict(aliases or {}),
        )
        return self._with(outputs=(field,))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def input_names(self) -> List[str]:
        return [f.name for f in self.input_fields]

    @property
    def output_names(self) -> List[str]:
        return [f.name for f in self.output_fields]

    def get_input_field(self, name: str) -> Optional[Field]:
        for f in self.input_fields:
            if f.name == name:
                return f
        return None

    def get_output_field(self, name: str) -> Optional[Field]:
        for f in self.output_fields:
            if f.name == name:
                return f
        return None

    def to_json_schema(self) -> Dict[str, Any]:
        """
        Generate a JSON Schema describing the output fields.

        Used for structured-output requests to backends that support it.
        """
        schema: Dict[str, Any] = {
            "type": "object",
            "properties": {f.name: f.to_schema() for f in self.output_fields},
        }
        required = [f.name for f in self.output_fields if f.required]
        if required:
            schema["required"] = required
        if self.description:
            schema["description"] = self.description
        return schema
