"""The `errors` module: one constructor per error code, e.g.
`errors.type_error("bad input")` builds `TypeError: bad input`."""

from __future__ import annotations

from ..builtin_function import CallContext
from ..errors import ErrorCode, argument_error, division_by_zero_error, expect_type, new_error
from ..types import Value, ValueKind
from .builder import ModuleBuilder

ALIASES = {
    'property_access_error': ErrorCode.PROPERTY_ACCESS_ON_NON_OBJECT_ERROR,
}


def _constructor(code: ErrorCode):
    def construct(ctx: CallContext, *args: Value) -> Value:
        if len(args) != 1:
            return argument_error(ctx.line, ctx.col, "expected %d arguments, got %d", 1, len(args))
        err = expect_type(ctx.line, ctx.col, args[0], ValueKind.STRING)
        if err is not None:
            return err
        return new_error(code, ctx.line, ctx.col, "%s", args[0].value)
    return construct


def division_by_zero(ctx: CallContext, *args: Value) -> Value:
    if len(args) > 1:
        return argument_error(ctx.line, ctx.col, "expected at most 1 arguments, got %d", len(args))
    if args:
        return _constructor(ErrorCode.DIVISION_BY_ZERO_ERROR)(ctx, *args)
    return division_by_zero_error(ctx.line, ctx.col)


def new_module() -> Value:
    builder = ModuleBuilder('errors')
    for code in ErrorCode:
        builder.add_function(code.name.lower(), _constructor(code))
    for alias, code in ALIASES.items():
        builder.add_function(alias, _constructor(code))
    builder.add_function('division_by_zero_error', division_by_zero)
    return builder.build()
