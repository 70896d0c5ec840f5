"""
Structured-output schemas for generation stages.

Every stage describes its expected output with a pydantic model. The same
model yields the JSON schema sent to the backend and validates whatever
comes back, reporting the first violated field path.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .models.errors import MalformedOutputError


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ROOT_PATH = "<root>"


@dataclass
class ValidationResult:
    """Outcome of validating a parsed object against a schema."""

    valid: bool
    path: Optional[str] = None
    message: Optional[str] = None
    value: Any = None


def _inline_refs(node: Any, defs: Dict[str, Any]) -> Any:
    """Replace `$ref` pointers with the referenced definitions."""
    if isinstance(node, dict):
        ref = node.get("$ref")
        if ref and ref.startswith("#/$defs/"):
            target = copy.deepcopy(defs[ref.split("/")[-1]])
            siblings = {k: v for k, v in node.items() if k != "$ref"}
            target.update(siblings)
            return _inline_refs(target, defs)
        return {k: _inline_refs(v, defs) for k, v in node.items() if k != "$defs"}
    if isinstance(node, list):
        return [_inline_refs(item, defs) for item in node]
    return node


def schema_for(model: Type[BaseModel]) -> Dict[str, Any]:
    """
    Build the JSON schema for a stage output model.

    Definitions are inlined because several structured-output backends
    do not resolve `$ref`.
    """
    raw = model.model_json_schema()
    return _inline_refs(raw, raw.get("$defs", {}))


def format_path(loc) -> str:
    if not loc:
        return ROOT_PATH
    return ".".join(str(part) for part in loc)


def validate(model: Type[ModelT], obj: Any) -> ValidationResult:
    """
    Validate a parsed object against a schema model.

    Args:
        model: Schema model
        obj: Candidate object, usually the result of `json.loads`

    Returns:
        ValidationResult with the model instance as `value` on success, or
        the first violated field path and its message on failure
    """
    try:
        instance = model.model_validate(obj)
    except PydanticValidationError as e:
        first = e.errors()[0]
        return ValidationResult(
            valid=False,
            path=format_path(first.get("loc")),
            message=first.get("msg")
        )
    return ValidationResult(valid=True, value=instance)


class SchemaValidator(Generic[ModelT]):
    """Schema description and validation for one stage output."""

    def __init__(self, model: Type[ModelT]):
        self.model = model
        self.name = model.__name__
        self.json_schema = schema_for(model)

    def validate(self, obj: Any) -> ValidationResult:
        return validate(self.model, obj)

    def parse(self, obj: Any, raw_text: Optional[str] = None) -> ModelT:
        """Return the model instance or raise MalformedOutputError."""
        result = self.validate(obj)
        if not result.valid:
            logger.warning(f"{self.name} output failed validation at {result.path}: {result.message}")
            raise MalformedOutputError(
                f"{self.name} output is invalid at '{result.path}': {result.message}",
                raw_text=raw_text,
                field_path=result.path
            )
        return result.value
