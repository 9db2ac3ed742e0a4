"""
Reporting module for Veil.

Renders policy decisions for people and for tools.

Output formats:
    - Console: Rich panels and tables with status icons
    - JSON: The stable result shape, plus explanations and rule listings

Example:
    from veil.report import generate_json, print_result

    print_result(console, ".env", RuleKind.FILE, veil.check_file(".env"))
    print(generate_json(result_to_dict(result)))
"""

from veil.report.console import (
    print_config,
    print_explanation,
    print_result,
    print_rules_table,
)
from veil.report.json import (
    config_to_dict,
    definition_to_dict,
    explanation_to_dict,
    generate_json,
    result_to_dict,
    rule_to_dict,
)

__all__ = [
    "print_config",
    "print_explanation",
    "print_result",
    "print_rules_table",
    "config_to_dict",
    "definition_to_dict",
    "explanation_to_dict",
    "generate_json",
    "result_to_dict",
    "rule_to_dict",
]
