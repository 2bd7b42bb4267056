"""The `json` module.

Whole-valued numbers decode as Integer, others as Float. When encoding,
hash keys are written as strings and functions have no JSON form.
"""

from __future__ import annotations

import json

from ..builtin_function import CallContext, with_arity
from ..errors import expect_type, runtime_error
from ..types import StringVal, Value, ValueKind, from_python, to_python
from .builder import ModuleBuilder


@with_arity(1)
def json_parse(ctx: CallContext, text: Value) -> Value:
    err = expect_type(ctx.line, ctx.col, text, ValueKind.STRING)
    if err is not None:
        return err
    try:
        data = json.loads(text.value)
    except json.JSONDecodeError as e:
        return runtime_error(ctx.line, ctx.col, "invalid JSON: %s", e)
    return from_python(data)


@with_arity(1)
def json_stringify(ctx: CallContext, value: Value) -> Value:
    try:
        data = to_python(value)
    except TypeError as e:
        return runtime_error(ctx.line, ctx.col, "%s", e)
    try:
        return StringVal(json.dumps(data, ensure_ascii=False, separators=(',', ':'), allow_nan=False))
    except ValueError as e:
        return runtime_error(ctx.line, ctx.col, "%s", e)


def new_module() -> Value:
    return (ModuleBuilder('json')
            .add_function('parse', json_parse)
            .add_function('stringify', json_stringify)
            .build())
