"""Global builtin functions, visible from every scope unless shadowed."""

from __future__ import annotations

import sys
from typing import Dict

from .builtin_function import CallContext, with_arity
from .errors import argument_error, expect_type, runtime_error, type_error
from .types import (
    NULL, ArrayVal, BoolVal, BuiltinVal, ErrorVal, FloatVal, HashVal, IntVal, StringVal, Value,
    ValueKind, is_truthy, native_bool, new_int, to_text,
)


@with_arity(1)
def builtin_len(ctx: CallContext, arg: Value) -> Value:
    if isinstance(arg, StringVal):
        return IntVal(len(arg.value))
    if isinstance(arg, ArrayVal):
        return IntVal(len(arg.elements))
    if isinstance(arg, HashVal):
        return IntVal(len(arg.pairs))
    return type_error(ctx.line, ctx.col, "argument to `len` not supported, got %s", arg.kind)


def builtin_append(ctx: CallContext, *args: Value) -> Value:
    if not args:
        return argument_error(ctx.line, ctx.col, "expected at least 1 arguments, got 0")
    err = expect_type(ctx.line, ctx.col, args[0], ValueKind.ARRAY)
    if err is not None:
        return err
    return ArrayVal(args[0].elements + list(args[1:]))


def builtin_print(ctx: CallContext, *args: Value) -> Value:
    sys.stdout.write(' '.join(to_text(a) for a in args))
    sys.stdout.flush()
    return NULL


def builtin_println(ctx: CallContext, *args: Value) -> Value:
    print(' '.join(to_text(a) for a in args))
    return NULL


@with_arity(1)
def builtin_type(ctx: CallContext, arg: Value) -> Value:
    return StringVal(str(arg.kind))


@with_arity(1)
def builtin_string(ctx: CallContext, arg: Value) -> Value:
    return StringVal(to_text(arg))


@with_arity(1)
def builtin_int(ctx: CallContext, arg: Value) -> Value:
    if isinstance(arg, IntVal):
        return arg
    if isinstance(arg, FloatVal):
        if arg.value != arg.value or arg.value in (float('inf'), float('-inf')):
            return runtime_error(ctx.line, ctx.col, "failed to convert float to int: %s", arg.inspect())
        return new_int(int(arg.value))
    if isinstance(arg, StringVal):
        try:
            return new_int(int(arg.value.strip()))
        except ValueError:
            return runtime_error(ctx.line, ctx.col, "failed to convert string to int: %s", arg.value)
    if isinstance(arg, BoolVal):
        return IntVal(1 if arg.value else 0)
    return type_error(ctx.line, ctx.col, "argument to `int` not supported, got %s", arg.kind)


@with_arity(1)
def builtin_float(ctx: CallContext, arg: Value) -> Value:
    if isinstance(arg, FloatVal):
        return arg
    if isinstance(arg, IntVal):
        return FloatVal(float(arg.value))
    if isinstance(arg, StringVal):
        try:
            return FloatVal(float(arg.value.strip()))
        except ValueError:
            return runtime_error(ctx.line, ctx.col, "failed to convert string to float: %s", arg.value)
    if isinstance(arg, BoolVal):
        return FloatVal(1.0 if arg.value else 0.0)
    return type_error(ctx.line, ctx.col, "argument to `float` not supported, got %s", arg.kind)


@with_arity(1)
def builtin_bool(ctx: CallContext, arg: Value) -> Value:
    return native_bool(is_truthy(arg))


@with_arity(1)
def builtin_error(ctx: CallContext, arg: Value) -> Value:
    err = expect_type(ctx.line, ctx.col, arg, ValueKind.STRING)
    if err is not None:
        return err
    return ErrorVal(arg.value, 'Error', ctx.line, ctx.col)


def builtin_exit(ctx: CallContext, *args: Value) -> Value:
    code = 0
    if args:
        err = expect_type(ctx.line, ctx.col, args[0], ValueKind.INTEGER)
        if err is not None:
            return err
        code = args[0].value
    raise SystemExit(code)


@with_arity(1)
def builtin_keys(ctx: CallContext, arg: Value) -> Value:
    err = expect_type(ctx.line, ctx.col, arg, ValueKind.HASH)
    if err is not None:
        return err
    return ArrayVal([pair.key for pair in arg.pairs.values()])


@with_arity(2)
def builtin_set_proto(ctx: CallContext, obj: Value, proto: Value) -> Value:
    err = expect_type(ctx.line, ctx.col, obj, ValueKind.HASH)
    if err is not None:
        return err
    if proto is NULL:
        obj.proto = None
        return obj
    err = expect_type(ctx.line, ctx.col, proto, ValueKind.HASH)
    if err is not None:
        return err
    h = proto
    while h is not None:
        if h is obj:
            return runtime_error(ctx.line, ctx.col, "cyclic prototype chain")
        h = h.proto
    obj.proto = proto
    return obj


@with_arity(1)
def builtin_get_proto(ctx: CallContext, obj: Value) -> Value:
    err = expect_type(ctx.line, ctx.col, obj, ValueKind.HASH)
    if err is not None:
        return err
    return obj.proto if obj.proto is not None else NULL


BUILTINS: Dict[str, BuiltinVal] = {
    name: BuiltinVal(name, fn) for name, fn in {
        'len': builtin_len,
        'append': builtin_append,
        'print': builtin_print,
        'println': builtin_println,
        'type': builtin_type,
        'string': builtin_string,
        'int': builtin_int,
        'float': builtin_float,
        'bool': builtin_bool,
        'error': builtin_error,
        'exit': builtin_exit,
        'keys': builtin_keys,
        'set_proto': builtin_set_proto,
        'get_proto': builtin_get_proto,
    }.items()
}
