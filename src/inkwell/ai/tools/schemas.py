"""JSON Schemas and descriptions for the document tools.

Schemas are strict: unknown keys are rejected so a misspelled argument is
reported back to the model instead of being silently ignored.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from ...documents.models import Stage
from .errors import ToolValidationError

__all__ = [
    "TOOL_NAMES",
    "TOOL_SCHEMAS",
    "TOOL_DESCRIPTIONS",
    "validate_tool_input",
]

_NON_EMPTY = {"type": "string", "minLength": 1}

TOOL_DESCRIPTIONS: dict[str, str] = {
    "read_document": (
        "Read the full content of the current document. Returns the document content, current writing "
        "stage, and word count. Use this to understand what the user is working on before making "
        "suggestions or updates."
    ),
    "update_document": (
        "Update the document content. Can replace all content, insert at a position, or append to the "
        "end. Use this when drafting new sections, revising existing text, or making edits the user has "
        "approved."
    ),
    "update_concept": (
        "Record or update the document concept - the core idea being developed. Use this when the user "
        "has articulated their title, main argument, target audience, or intended tone. This helps track "
        "the creative direction."
    ),
    "update_outline": (
        "Create or update the document outline - the structural skeleton of the piece. Use this when "
        "helping organize ideas into sections with clear purposes and estimated lengths."
    ),
    "update_stage": (
        "Progress the document to the next writing stage. Stages are: concept (clarifying "
        "argument/audience), outline (structuring), draft (writing), edits (revising), polish (final "
        "touches). Only advance when the current stage work is substantially complete."
    ),
    "add_edit_suggestion": (
        "Propose a specific edit to the document with before/after text. Use this in the edits or polish "
        "stages to suggest targeted improvements. The user can accept or reject each suggestion."
    ),
}

TOOL_SCHEMAS: dict[str, dict[str, Any]] = {
    "read_document": {
        "type": "object",
        "properties": {},
        "additionalProperties": False,
    },
    "update_document": {
        "type": "object",
        "properties": {
            "operation": {
                "type": "string",
                "enum": ["replace", "insert", "append"],
                "description": (
                    'How to update the document: "replace" replaces all content, "insert" adds at a '
                    'specific position, "append" adds to the end'
                ),
            },
            "content": {"type": "string", "description": "The text content to write to the document"},
            "position": {
                "type": "integer",
                "minimum": 0,
                "description": 'Character position for insert (0-based). Only required when operation is "insert"',
            },
        },
        "required": ["operation", "content"],
        "additionalProperties": False,
        "if": {"properties": {"operation": {"const": "insert"}}, "required": ["operation"]},
        "then": {"required": ["position"]},
    },
    "update_concept": {
        "type": "object",
        "properties": {
            "title": {**_NON_EMPTY, "description": "Working title for the piece"},
            "coreArgument": {**_NON_EMPTY, "description": "The main thesis or central idea of the piece"},
            "audience": {**_NON_EMPTY, "description": "Description of the intended readers"},
            "tone": {
                **_NON_EMPTY,
                "description": 'The voice and style (e.g., "casual and conversational", "formal and academic")',
            },
        },
        "required": ["title", "coreArgument", "audience", "tone"],
        "additionalProperties": False,
    },
    "update_outline": {
        "type": "object",
        "properties": {
            "sections": {
                "type": "array",
                "minItems": 1,
                "description": "Array of outline sections in order",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {**_NON_EMPTY, "description": "Unique identifier for this section"},
                        "title": {**_NON_EMPTY, "description": "Section heading or name"},
                        "description": {"type": "string", "description": "What this section covers and its purpose"},
                        "estimatedWords": {
                            "type": "integer",
                            "minimum": 0,
                            "description": "Approximate word count target for this section",
                        },
                    },
                    "required": ["id", "title", "description"],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["sections"],
        "additionalProperties": False,
    },
    "update_stage": {
        "type": "object",
        "properties": {
            "stage": {
                "type": "string",
                "enum": [stage.value for stage in Stage.ordered()],
                "description": "The stage to set the document to",
            }
        },
        "required": ["stage"],
        "additionalProperties": False,
    },
    "add_edit_suggestion": {
        "type": "object",
        "properties": {
            "scope": {
                **_NON_EMPTY,
                "description": 'What part of the document this affects (e.g., "introduction", "conclusion")',
            },
            "before": {"type": "string", "description": "The original text being edited"},
            "after": {"type": "string", "description": "The suggested replacement text"},
            "rationale": {"type": "string", "description": "Why this change improves the writing"},
            "type": {
                "type": "string",
                "enum": ["replace", "insert", "delete"],
                "description": "Kind of edit; defaults to replace",
            },
            "start": {
                "type": "integer",
                "minimum": 0,
                "description": "Start offset of the edited range; locate `before` when omitted",
            },
            "end": {"type": "integer", "minimum": 0, "description": "End offset (exclusive) of the edited range"},
        },
        "required": ["scope", "before", "after"],
        "additionalProperties": False,
        "dependencies": {"start": ["end"], "end": ["start"]},
    },
}

TOOL_NAMES: tuple[str, ...] = tuple(TOOL_SCHEMAS)

_VALIDATORS: dict[str, Draft7Validator] = {}


def _validator(name: str) -> Draft7Validator:
    validator = _VALIDATORS.get(name)
    if validator is None:
        schema = TOOL_SCHEMAS[name]
        Draft7Validator.check_schema(schema)
        validator = Draft7Validator(schema)
        _VALIDATORS[name] = validator
    return validator


def _field_of(issue: ValidationError) -> str:
    path = [str(part) for part in issue.absolute_path]
    if issue.validator in ("required", "dependencies") and isinstance(issue.instance, Mapping):
        expected = issue.validator_value
        if isinstance(expected, Mapping):
            expected = [item for values in expected.values() for item in values]
        missing = [key for key in expected if key not in issue.instance]
        if missing:
            path.append(missing[0])
    elif issue.validator == "additionalProperties" and isinstance(issue.instance, Mapping):
        allowed = issue.schema.get("properties", {})
        extras = sorted(key for key in issue.instance if key not in allowed)
        if extras:
            path.append(extras[0])
    return ".".join(path) or "input"


def validate_tool_input(name: str, payload: Any) -> dict[str, Any]:
    """Validate ``payload`` for tool ``name`` and return it as a plain dict.

    Raises:
        ToolValidationError: naming the first failing field.
    """

    validator = _validator(name)
    issues = sorted(validator.iter_errors(payload), key=lambda issue: len(issue.absolute_path))
    if issues:
        issue = issues[0]
        field_name = _field_of(issue)
        raise ToolValidationError(
            message=f"Invalid input for {name}: {field_name}: {issue.message}",
            field_name=field_name,
            details={"errors": [f"{_field_of(item)}: {item.message}" for item in issues[:5]]},
        )
    return dict(payload)
