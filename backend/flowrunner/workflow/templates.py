# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Prompt Template Resolver

Supports:
    {{variable}}            - value from the run input
    {{node_id.path.to.x}}   - value from a prior node's result
    {{#if cond}}...{{/if}}  - kept when cond is truthy, removed otherwise

Resolution is best-effort: a reference that cannot be resolved is left in
the output as its literal {{...}} text. Pass strict=True to raise
TemplateResolutionMiss instead.
"""

import json
import re
from typing import Any, List, Mapping, Tuple

from .exceptions import TemplateResolutionMiss

VARIABLE_PATTERN = re.compile(r"\{\{([^#/}]+?)\}\}")

# Innermost blocks only: the body may not open another {{#if}}
CONDITIONAL_PATTERN = re.compile(
    r"\{\{#if\s+([^}]+?)\}\}((?:(?!\{\{#if\s).)*?)\{\{/if\}\}",
    re.DOTALL,
)

_MISSING = object()


def resolve(
    template: str,
    input_data: Mapping[str, Any],
    results: Mapping[str, Any],
    strict: bool = False,
) -> str:
    """
    Resolve a prompt template against run input and node results.

    Args:
        template: Template text
        input_data: Run input (plain {{name}} lookups)
        results: Read-only ResultMap ({{node_id.path}} lookups)
        strict: Raise on unresolved references that survive into the
            resolved text. References inside removed {{#if}} blocks
            never raise.

    Returns:
        Resolved text

    Examples:
        >>> resolve("{{a}} and {{b.c}}", {"a": "x"}, {"b": {"c": "y"}})
        'x and y'
        >>> resolve("{{#if flag}}shown{{/if}}", {"flag": False}, {})
        ''
    """
    misses: List[Tuple[str, str]] = []
    result = _resolve(template, input_data, results, misses)

    if strict:
        for literal, ref in misses:
            if literal in result:
                raise TemplateResolutionMiss(ref)
    return result


def _resolve(
    template: str,
    input_data: Mapping[str, Any],
    results: Mapping[str, Any],
    misses: List[Tuple[str, str]],
) -> str:
    if not template:
        return template or ""

    def replace_variable(match: "re.Match") -> str:
        ref = match.group(1).strip()
        value = lookup_reference(ref, input_data, results)
        if value is _MISSING:
            misses.append((match.group(0), ref))
            return match.group(0)
        return render_value(value)

    result = VARIABLE_PATTERN.sub(replace_variable, template)

    def replace_conditional(match: "re.Match") -> str:
        condition = match.group(1).strip()
        if _is_truthy(_condition_value(condition, input_data, results)):
            return _resolve(match.group(2), input_data, results, misses)
        return ""

    # Each pass removes at least one {{/if}}, so this terminates
    while True:
        resolved = CONDITIONAL_PATTERN.sub(replace_conditional, result)
        if resolved == result:
            break
        result = resolved

    return result


def lookup_reference(ref: str, input_data: Mapping[str, Any], results: Mapping[str, Any]) -> Any:
    """
    Look up a {{reference}}.

    Dotted references walk a node result; plain names read the run input.
    Returns the module-level _MISSING sentinel when nothing is found.
    """
    if "." in ref:
        node_id, *path = ref.split(".")
        node_result = results.get(node_id)
        if node_result is None:
            return _MISSING
        return _walk(node_result, path)

    if isinstance(input_data, Mapping) and ref in input_data:
        return input_data[ref]
    return _MISSING


def _condition_value(condition: str, input_data: Mapping[str, Any], results: Mapping[str, Any]) -> Any:
    """Condition lookup: a dotted path into an existing node wins over the input key"""
    value = input_data.get(condition, _MISSING) if isinstance(input_data, Mapping) else _MISSING

    if "." in condition:
        node_id, *path = condition.split(".")
        node_result = results.get(node_id)
        if node_result is not None:
            value = _walk(node_result, path)

    return value


def _walk(value: Any, path: list) -> Any:
    """Follow a dotted path through dicts, lists and objects"""
    current = value
    for part in path:
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else _MISSING
        elif current is not None and not isinstance(current, (str, bytes)) and hasattr(current, part):
            current = getattr(current, part)
        else:
            current = _MISSING

        if current is _MISSING:
            return _MISSING
    return current


def _is_truthy(value: Any) -> bool:
    if value is _MISSING:
        return False
    return bool(value)


def render_value(value: Any) -> str:
    """Render a substituted value the way the editor previews it"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)
