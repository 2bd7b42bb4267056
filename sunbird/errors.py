"""Error taxonomy.

Language-level failures are ordinary `ErrorVal` values flowing through the
same return channel as results. The helpers below build them with a
"<Code>: <message>" text and a source position. Host exceptions are only
used at the edges: `ParseError` from the parser and the module loader
exceptions in `sunbird.modules`.
"""

from __future__ import annotations

import enum
from typing import List, Optional, Sequence

from .types import ErrorVal, Value, ValueKind


class ErrorCode(enum.Enum):
    SYNTAX_ERROR = 'SyntaxError'
    TYPE_ERROR = 'TypeError'
    TYPE_MISMATCH_ERROR = 'TypeMismatchError'
    UNDEFINED_VARIABLE_ERROR = 'UndefinedVariableError'
    DIVISION_BY_ZERO_ERROR = 'DivisionByZeroError'
    CONSTANT_REASSIGNMENT_ERROR = 'ConstantReassignmentError'
    RUNTIME_ERROR = 'RuntimeError'
    INDEX_NOT_SUPPORTED_ERROR = 'IndexNotSupportedError'
    INDEX_OUT_OF_BOUNDS_ERROR = 'IndexOutOfBoundsError'
    KEY_ERROR = 'KeyError'
    IMPORT_ERROR = 'ImportError'
    VARIABLE_REASSIGNMENT_ERROR = 'VariableReassignmentError'
    NOT_CALLABLE_ERROR = 'NotCallableError'
    INVALID_ASSIGNMENT_ERROR = 'InvalidAssignmentError'
    ARGUMENT_ERROR = 'ArgumentError'
    PARSE_ERROR = 'ParseError'
    PROPERTY_ACCESS_ON_NON_OBJECT_ERROR = 'PropertyAccessOnNonObjectError'
    UNKNOWN_OPERATOR_ERROR = 'UnknownOperatorError'
    FEATURE_NOT_IMPLEMENTED_ERROR = 'FeatureNotImplementedError'

    def __str__(self) -> str:
        return self.value


class ParseError(Exception):
    """Raised by the parser. `messages` holds every collected syntax error."""
    def __init__(self, messages: List[str]):
        super().__init__('\n'.join(messages))
        self.messages = messages


def new_error(code: ErrorCode, line: int, col: int, fmt: str, *args) -> ErrorVal:
    message = fmt % args if args else fmt
    return ErrorVal(f"{code}: {message}", str(code), line, col)


def expect_type(line: int, col: int, value: Value, expected: ValueKind) -> Optional[ErrorVal]:
    if value.kind is not expected:
        return new_error(ErrorCode.TYPE_ERROR, line, col, "expected %s, got %s", expected, value.kind)
    return None


def expect_one_of_types(line: int, col: int, value: Value, *expected: ValueKind) -> Optional[ErrorVal]:
    if value.kind in expected:
        return None
    names = ', '.join(str(k) for k in expected)
    return new_error(ErrorCode.TYPE_ERROR, line, col, "expected one of %s, got %s", names, value.kind)


def expect_number_of_arguments(line: int, col: int, expected: int, args: Sequence[Value]) -> Optional[ErrorVal]:
    if len(args) != expected:
        return new_error(ErrorCode.ARGUMENT_ERROR, line, col,
                         "expected %d arguments, got %d", expected, len(args))
    return None


def type_error(line: int, col: int, fmt: str, *args) -> ErrorVal:
    return new_error(ErrorCode.TYPE_ERROR, line, col, fmt, *args)


def type_mismatch_error(line: int, col: int, left: ValueKind, op: str, right: ValueKind) -> ErrorVal:
    return new_error(ErrorCode.TYPE_MISMATCH_ERROR, line, col, "%s %s %s", left, op, right)


def unknown_operator_error(line: int, col: int, left: Value, op: str, right: Value) -> ErrorVal:
    return new_error(ErrorCode.UNKNOWN_OPERATOR_ERROR, line, col, "%s %s %s", left.kind, op, right.kind)


def unknown_prefix_operator_error(line: int, col: int, op: str, right: Value) -> ErrorVal:
    return new_error(ErrorCode.UNKNOWN_OPERATOR_ERROR, line, col, "%s%s", op, right.kind)


def undefined_variable_error(line: int, col: int, name: str) -> ErrorVal:
    return new_error(ErrorCode.UNDEFINED_VARIABLE_ERROR, line, col, "%s", name)


def division_by_zero_error(line: int, col: int) -> ErrorVal:
    return new_error(ErrorCode.DIVISION_BY_ZERO_ERROR, line, col, "division by zero")


def constant_reassignment_error(line: int, col: int, name: str) -> ErrorVal:
    return new_error(ErrorCode.CONSTANT_REASSIGNMENT_ERROR, line, col, "%s", name)


def variable_reassignment_error(line: int, col: int, name: str) -> ErrorVal:
    return new_error(ErrorCode.VARIABLE_REASSIGNMENT_ERROR, line, col, "%s", name)


def runtime_error(line: int, col: int, fmt: str, *args) -> ErrorVal:
    return new_error(ErrorCode.RUNTIME_ERROR, line, col, fmt, *args)


def index_not_supported_error(line: int, col: int, value: Value) -> ErrorVal:
    return new_error(ErrorCode.INDEX_NOT_SUPPORTED_ERROR, line, col, "%s", value.kind)


def index_out_of_bounds_error(line: int, col: int, value: Value, index: int) -> ErrorVal:
    return new_error(ErrorCode.INDEX_OUT_OF_BOUNDS_ERROR, line, col,
                     "index %d out of range for %s", index, value.kind)


def unusable_as_hash_key_error(line: int, col: int, value: Value) -> ErrorVal:
    return new_error(ErrorCode.KEY_ERROR, line, col, "%s", value.kind)


def import_error(line: int, col: int, message: str) -> ErrorVal:
    return new_error(ErrorCode.IMPORT_ERROR, line, col, "%s", message)


def not_callable_error(line: int, col: int, value: Value) -> ErrorVal:
    return new_error(ErrorCode.NOT_CALLABLE_ERROR, line, col, "%s", value.kind)


def invalid_assignment_error(line: int, col: int, target: str) -> ErrorVal:
    return new_error(ErrorCode.INVALID_ASSIGNMENT_ERROR, line, col, "%s", target)


def argument_error(line: int, col: int, fmt: str, *args) -> ErrorVal:
    return new_error(ErrorCode.ARGUMENT_ERROR, line, col, fmt, *args)


def property_access_error(line: int, col: int, value: Value) -> ErrorVal:
    return new_error(ErrorCode.PROPERTY_ACCESS_ON_NON_OBJECT_ERROR, line, col, "%s", value.kind)


def feature_not_implemented_error(line: int, col: int, feature: str) -> ErrorVal:
    return new_error(ErrorCode.FEATURE_NOT_IMPLEMENTED_ERROR, line, col, "%s", feature)
