"""Conversion of caller-supplied JSON values into GraphQL variables."""

import json
import math
import logging
import re
from typing import Any, Dict, Mapping, Optional

from graphql import GraphQLArgument, GraphQLInputType

from .errors import ArgumentCoercionError
from .graphql import TypeKind, classify, unwrap_type, is_required

logger = logging.getLogger(__name__)

_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_FALSE_STRINGS = {"", "false", "0", "no", "off"}


def parse_int(value: Any) -> int:
    """Integer parse that accepts numbers and numeric-prefixed strings (``"12px"`` -> 12)."""
    if isinstance(value, float) and not math.isfinite(value):
        raise ArgumentCoercionError(f"Cannot convert {value!r} to Int")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        match = _INT_PREFIX.match(value)
        if match:
            return int(match.group())
    raise ArgumentCoercionError(f"Cannot convert {value!r} to Int")


def parse_float(value: Any) -> float:
    result = None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        match = _FLOAT_PREFIX.match(value)
        if match:
            result = float(match.group())
    if result is not None and math.isfinite(result):
        return result
    raise ArgumentCoercionError(f"Cannot convert {value!r} to Float")


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


SCALAR_PARSERS = {
    "Int": parse_int,
    "Float": parse_float,
    "Boolean": parse_bool,
}


def _each(value: Any, convert) -> Any:
    """Apply convert to a value, or to every item of a list value."""
    if value is None:
        return None
    if isinstance(value, list):
        return [_each(item, convert) for item in value]
    return convert(value)


def coerce_value(value: Any, declared_type: GraphQLInputType) -> Any:
    """
    Coerce one argument value according to its declared type.

    Args:
        value: Raw JSON value from the caller
        declared_type: Argument type including List/NonNull wrappers

    Returns:
        The value to send as a variable, possibly None

    Raises:
        ArgumentCoercionError: If an Int or Float value cannot be parsed
    """
    base_type = unwrap_type(declared_type)
    kind = classify(base_type)

    if kind == TypeKind.INPUT_OBJECT:
        empty = {} if is_required(declared_type) else None
        if value == "":
            return empty
        if isinstance(value, str) and value.startswith("{"):
            try:
                return json.loads(value)
            except ValueError:
                return empty
        return value
    elif kind == TypeKind.ENUM:
        return _each(value, str)
    elif kind == TypeKind.SCALAR:
        parser = SCALAR_PARSERS.get(base_type.name)
        if parser is None:
            return value
        return _each(value, parser)
    return value


def coerce_arguments(
    raw_args: Optional[Mapping[str, Any]],
    declared_args: Mapping[str, GraphQLArgument],
) -> Dict[str, Any]:
    """
    Build the variables map for a generated operation.

    Undeclared arguments are dropped. Optional arguments that coerce to None are
    left out instead of being sent as explicit nulls.

    Args:
        raw_args: Arguments supplied by the caller
        declared_args: Field arguments from the schema

    Returns:
        Dict[str, Any]: Variables keyed by argument name
    """
    if not raw_args or not declared_args:
        return {}

    variables = {}
    for arg_name, value in raw_args.items():
        arg = declared_args.get(arg_name)
        if arg is None:
            logger.debug(f"Dropping undeclared argument '{arg_name}'")
            continue

        coerced = coerce_value(value, arg.type)
        if coerced is None and not is_required(arg.type):
            continue
        variables[arg_name] = coerced

    return variables
