"""Checks runtime values against type annotations."""

from __future__ import annotations

from typing import Optional

from .ast import ArrayType, FunctionType, HashType, OptionalType, SimpleType, TypeAnnotation
from .errors import type_error
from .types import NULL, ArrayVal, ErrorVal, Value, ValueKind


SIMPLE_TYPES = {
    'int': ValueKind.INTEGER,
    'float': ValueKind.FLOAT,
    'string': ValueKind.STRING,
    'bool': ValueKind.BOOLEAN,
    'array': ValueKind.ARRAY,
    'hash': ValueKind.HASH,
    'range': ValueKind.RANGE,
}


def annotation_kind(name: str) -> ValueKind:
    """Map a simple type name to a kind. Unknown names, including Void, mean Null."""
    return SIMPLE_TYPES.get(name.lower(), ValueKind.NULL)


def check_type(expected: Optional[TypeAnnotation], actual: Value, line: int, col: int) -> Optional[ErrorVal]:
    if expected is None:
        return None

    if isinstance(expected, OptionalType):
        if actual is NULL:
            return None
        return check_type(expected.base_type, actual, line, col)

    if isinstance(expected, SimpleType):
        if annotation_kind(expected.name) is not actual.kind:
            return type_error(line, col, "expected %s, got %s", expected, actual.kind)
        return None

    if isinstance(expected, ArrayType):
        if not isinstance(actual, ArrayVal):
            return type_error(line, col, "expected %s, got %s", expected, actual.kind)
        if expected.element_type is not None:
            for element in actual.elements:
                err = check_type(expected.element_type, element, line, col)
                if err is not None:
                    return err
        return None

    if isinstance(expected, HashType):
        if actual.kind is not ValueKind.HASH:
            return type_error(line, col, "expected %s, got %s", expected, actual.kind)
        return None

    if isinstance(expected, FunctionType):
        if actual.kind not in (ValueKind.FUNCTION, ValueKind.BUILTIN):
            return type_error(line, col, "expected %s, got %s", expected, actual.kind)
        return None

    return None
