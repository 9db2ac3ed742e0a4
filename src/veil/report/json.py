"""
JSON output for Veil.

Generates structured JSON for decisions, explanations and rule listings,
for tooling that consumes `veil ... --json`.

Design Principles:
    - Decisions use the stable result shape (PolicyResult.to_dict)
    - Wire names match the configuration format (camelCase aliases)
    - Patterns are rendered as they would be written in veil.yaml
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from veil.engine import Explanation
from veil.rules.base import ModalRuleDefinition, RuleDefinition
from veil.schema import BaseRule, PolicyResult, VeilConfig, dump_config


def result_to_dict(result: PolicyResult) -> dict[str, Any]:
    """Render a decision in the stable external shape."""
    return result.to_dict()


def rule_to_dict(rule: BaseRule) -> dict[str, Any]:
    """Render a concrete rule in its configuration form."""
    return rule.model_dump(mode="json", by_alias=True, exclude_none=True)


def explanation_to_dict(explanation: Explanation) -> dict[str, Any]:
    """Render an explanation: decision, checked forms and matching rules."""
    result = explanation.result
    return {
        "target": explanation.target,
        "type": explanation.kind.value,
        "status": "blocked" if result.blocked else "allowed",
        "result": result.to_dict(),
        "checked": explanation.checked,
        "matches": [
            {
                "checked": form,
                "policy": match.policy_ref,
                "action": match.action.value,
                "rule": rule_to_dict(match.rule),
            }
            for form, match in explanation.matches
        ],
    }


def definition_to_dict(rule: RuleDefinition) -> dict[str, Any]:
    """Render a registry entry for list-rules."""
    data: dict[str, Any] = {
        "id": rule.id,
        "description": rule.description,
        "category": rule.category.value,
        "platforms": [p.value for p in rule.platforms],
        "defaultSeverity": rule.default_severity.value,
        "supportsMode": rule.supports_mode,
    }
    if isinstance(rule, ModalRuleDefinition):
        data["defaultMode"] = rule.default_mode.value
    return data


def config_to_dict(config: VeilConfig) -> dict[str, Any]:
    return dump_config(config)


def generate_json(data: Any, indent: int = 2) -> str:
    """Serialize report data to a JSON string."""
    return json.dumps(data, indent=indent, default=_json_serializer)


def _json_serializer(obj: Any) -> Any:
    """Custom JSON serializer for non-standard types."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    return str(obj)
