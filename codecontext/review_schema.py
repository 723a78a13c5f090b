"""JSON Schema of the Review-IR record (version 1.0)

Fields may be added within a version but never removed or repurposed, so
every object allows additional properties.
"""

from typing import Any, Dict

import jsonschema

_STRING_LIST = {"type": "array", "items": {"type": "string"}}
_SCORE = {"type": "number", "minimum": 0, "maximum": 1}


def _object(properties: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": list(properties)}


REVIEW_IR_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Review-IR",
    **_object({
        "version": {"const": "1.0"},
        "language": {"type": "string"},
        "codeType": {"enum": ["script", "library", "application", "test", "configuration", "unknown"]},
        "intent": _object({
            "primary": {"type": "string"},
            "description": {"type": "string"},
        }),
        "structure": _object({
            "functions": {"type": "integer", "minimum": 0},
            "classes": {"type": "integer", "minimum": 0},
            "linesOfCode": {"type": "integer", "minimum": 0},
            "paradigm": {"enum": ["object-oriented", "functional", "procedural", "unknown"]},
        }),
        "behavior": _object({
            "executionModel": {"type": "string"},
            "isDeterministic": {"type": "boolean"},
            "determinismReasons": _STRING_LIST,
            "sideEffects": {"enum": ["none", "local-only", "external-likely", "external-confirmed"]},
            "externalInteractions": _STRING_LIST,
        }),
        "state": _object({
            "lifetime": {"type": "string"},
            "mutability": {"type": "number", "minimum": 0},
            "globalVariables": {"type": "integer", "minimum": 0},
        }),
        "quality": _object({
            "testability": {"type": "number", "minimum": 0, "maximum": 100},
            "controlFlowComplexity": {"type": "integer", "minimum": 0},
            "errorHandling": {"type": "string"},
        }),
        "guidance": _object({
            "role": {"enum": ["refactor", "review-only", "explain", "generate"]},
            "readinessScores": _object({"review": _SCORE, "refactor": _SCORE, "execution": _SCORE}),
            "focusAreas": {**_STRING_LIST, "maxItems": 4},
            "promptHints": {**_STRING_LIST, "maxItems": 5},
            "warnings": _STRING_LIST,
        }),
        "elements": _object({
            "decisionRules": {"type": "array", "items": _object({
                "condition": {"type": "string"},
                "outcome": {"type": "string"},
                "location": {"type": "integer", "minimum": 0},
            })},
            "magicValues": {"type": "array", "maxItems": 20, "items": {
                "type": "object",
                "properties": {
                    "value": {"type": ["string", "number"]},
                    "role": {"type": ["string", "null"]},
                    "location": {"type": "integer", "minimum": 0},
                },
                "required": ["value", "location"],
            }},
            "silentBehaviors": {"type": "array", "maxItems": 10, "items": _object({
                "type": {"enum": ["pass", "ignored-input", "fallthrough", "empty-catch"]},
                "risk": {"enum": ["low", "medium", "high"]},
                "location": {"type": "integer", "minimum": 0},
            })},
        }),
        "outputContract": _object({
            "structure": {"type": "string"},
            "meaning": {"type": "string"},
            "guarantees": _STRING_LIST,
        }),
    }),
}

# Additive within 1.0: present in records from this package, optional for consumers
REVIEW_IR_SCHEMA["properties"]["complexity"] = _object({
    "time": {"type": "string"},
    "space": {"type": "string"},
})


def validate_review_ir(record: Dict[str, Any]) -> None:
    """Raise jsonschema.ValidationError when ``record`` is not a valid Review-IR"""
    jsonschema.validate(instance=record, schema=REVIEW_IR_SCHEMA)
