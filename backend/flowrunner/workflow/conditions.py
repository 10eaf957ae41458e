# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Condition Evaluator

Evaluates a condition node's field/operator/value triple against the node's
merged input. Evaluation never raises: unknown operators, missing fields and
non-numeric operands for numeric comparisons all evaluate to False.
"""

import math
import operator
from typing import Any, Callable, Dict, Mapping, Optional

from .templates import render_value


def _to_number(value: Any) -> float:
    """Numeric coercion; anything unparseable becomes NaN"""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _strict_equals(left: Any, right: Any) -> bool:
    # True == 1 in Python; a boolean only equals a boolean here
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def evaluate(left: Any, right: Any) -> bool:
        # No comparison value behaves as NaN; NaN compares False against everything
        if right is None:
            return False
        return compare(_to_number(left), _to_number(right))
    return evaluate


# Allowed operators
CONDITION_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": _strict_equals,
    "not_equals": lambda left, right: not _strict_equals(left, right),
    "contains": lambda left, right: render_value(right) in render_value(left),
    "greater_than": _numeric(operator.gt),
    "less_than": _numeric(operator.lt),
}


def evaluate_condition(
    input_data: Any,
    field: Optional[str],
    operator_name: Optional[str] = "equals",
    value: Any = None,
) -> bool:
    """
    Evaluate `input_data[field] <operator> value`.

    Args:
        input_data: Merged input of the condition node
        field: Key to read from the input
        operator_name: One of CONDITION_OPERATORS (defaults to equals)
        value: Right-hand operand

    Returns:
        Boolean result, False for anything that cannot be evaluated

    Examples:
        >>> evaluate_condition({"amount": 1500}, "amount", "greater_than", 1000)
        True
        >>> evaluate_condition({"amount": "lots"}, "amount", "greater_than", 1000)
        False
    """
    if not field or not isinstance(input_data, Mapping) or field not in input_data:
        return False

    compare = CONDITION_OPERATORS.get(operator_name or "equals")
    if compare is None:
        return False

    try:
        return bool(compare(input_data[field], value))
    except (TypeError, ValueError):
        return False
