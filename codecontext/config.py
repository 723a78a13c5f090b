"""Configuration for CodeContext"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

logger = logging.getLogger(__name__)

# ===========================================
# Analysis
# ===========================================

ANALYSIS_CONFIG = {
    "cache_size": 10,              # FIFO bound of the orchestration cache
    "debounce_seconds": 0.3,       # quiet period before a requested run starts
    "condition_byte_budget": 100,  # Review-IR decision rule condition
    "outcome_byte_budget": 50,     # Review-IR decision rule outcome
    "magic_value_cap": 20,
    "silent_behavior_cap": 10,
    "breakdown_cap": 5,
    "input_size_cap": 3,
    "dominant_operation_cap": 5,
}

# ===========================================
# Translation Validation
# ===========================================

VALIDATION_TOLERANCES = {
    "decision_points": 1,            # +/- decision points allowed
    "cyclomatic": 2,                 # +/- cyclomatic complexity allowed
    "line_count_ratio": 0.5,         # relative line count change before an info note
    "magic_value_preservation": 0.8, # share of magic values that must survive
    "testability_delta": 20,
    "validity_floor": 0.7,           # minimum score for a valid translation
}

# Execution models a translation may degrade to without a warning
ACCEPTABLE_EXECUTION_MODELS = {
    "synchronous": ["synchronous", "mixed"],
    "asynchronous": ["asynchronous", "synchronous", "mixed"],
    "event-driven": ["event-driven", "asynchronous", "mixed"],
    "concurrent": ["concurrent", "asynchronous", "mixed"],
    "mixed": ["mixed"],
}

# ===========================================
# Readiness Scoring
# ===========================================
# review   = 0.4 x clarity + 0.3 x completeness + 0.3 x sufficiency
# refactor = 0.3 x clarity + 0.3 x completeness + 0.2 x sufficiency + 0.2 x risk
# execution = 0.4 x completeness + 0.3 x sufficiency + 0.3 x risk

READINESS_WEIGHTS = {
    "review": {
        "structural_clarity": 0.4,
        "semantic_completeness": 0.3,
        "context_sufficiency": 0.3,
        "risk_factors": 0.0,
    },
    "refactor": {
        "structural_clarity": 0.3,
        "semantic_completeness": 0.3,
        "context_sufficiency": 0.2,
        "risk_factors": 0.2,
    },
    "execution": {
        "structural_clarity": 0.0,
        "semantic_completeness": 0.4,
        "context_sufficiency": 0.3,
        "risk_factors": 0.3,
    },
}

READINESS_THRESHOLDS = {
    "refactor": 0.75,   # refactor role needs this and no blocking issues
    "review": 0.6,      # below this the role drops to explain
    "llm_ready": 0.65,  # overall context confidence
    "max_warnings": 3,
}

_SECTIONS = {
    "analysis": ANALYSIS_CONFIG,
    "validation_tolerances": VALIDATION_TOLERANCES,
    "acceptable_execution_models": ACCEPTABLE_EXECUTION_MODELS,
    "readiness_weights": READINESS_WEIGHTS,
    "readiness_thresholds": READINESS_THRESHOLDS,
}


def get_config() -> Dict[str, Any]:
    """Get full configuration dictionary"""
    return {name: section for name, section in _SECTIONS.items()}


def load_config_overrides(path: Union[str, Path]) -> Dict[str, Any]:
    """Merge a YAML file of overrides into the live configuration.

    Only known sections and keys are accepted:

        analysis:
          cache_size: 25
        validation_tolerances:
          decision_points: 2

    Raises:
        ValueError: unknown section or key, or a top-level value that is not a mapping
    """
    with open(path, "r", encoding="utf-8") as f:
        overrides = yaml.safe_load(f) or {}

    if not isinstance(overrides, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(overrides).__name__}")

    for section_name, values in overrides.items():
        if section_name not in _SECTIONS:
            raise ValueError(f"Unknown config section '{section_name}' in {path}")
        if not isinstance(values, dict):
            raise ValueError(f"Config section '{section_name}' must be a mapping")
        section = _SECTIONS[section_name]
        for key, value in values.items():
            if key not in section:
                raise ValueError(f"Unknown key '{key}' in config section '{section_name}'")
            section[key] = copy.deepcopy(value)
        logger.info(f"Applied {len(values)} override(s) to '{section_name}' from {path}")

    return get_config()


_DEFAULTS = copy.deepcopy(_SECTIONS)


def reset_config() -> None:
    """Restore every section to its shipped defaults"""
    for name, section in _SECTIONS.items():
        section.clear()
        section.update(copy.deepcopy(_DEFAULTS[name]))
