from __future__ import annotations

from ..builtin_function import CallContext, with_arity
from ..errors import argument_error, expect_type
from ..types import ArrayVal, StringVal, Value, ValueKind, native_bool
from .builder import ModuleBuilder


def _expect_strings(ctx: CallContext, *args: Value):
    for arg in args:
        err = expect_type(ctx.line, ctx.col, arg, ValueKind.STRING)
        if err is not None:
            return err
    return None


def _string_predicate(test):
    @with_arity(2)
    def wrapper(ctx: CallContext, s: Value, other: Value) -> Value:
        err = _expect_strings(ctx, s, other)
        if err is not None:
            return err
        return native_bool(test(s.value, other.value))
    return wrapper


def _string_map(transform):
    @with_arity(1)
    def wrapper(ctx: CallContext, s: Value) -> Value:
        err = _expect_strings(ctx, s)
        if err is not None:
            return err
        return StringVal(transform(s.value))
    return wrapper


@with_arity(2)
def string_concat(ctx: CallContext, a: Value, b: Value) -> Value:
    err = _expect_strings(ctx, a, b)
    if err is not None:
        return err
    return StringVal(a.value + b.value)


@with_arity(1)
def string_is_empty(ctx: CallContext, s: Value) -> Value:
    err = _expect_strings(ctx, s)
    if err is not None:
        return err
    return native_bool(s.value == '')


@with_arity(2)
def string_split(ctx: CallContext, s: Value, sep: Value) -> Value:
    """split(s, sep); an empty separator splits into characters."""
    err = _expect_strings(ctx, s, sep)
    if err is not None:
        return err
    parts = list(s.value) if sep.value == '' else s.value.split(sep.value)
    return ArrayVal([StringVal(p) for p in parts])


@with_arity(2)
def string_repeat(ctx: CallContext, s: Value, count: Value) -> Value:
    err = _expect_strings(ctx, s) or expect_type(ctx.line, ctx.col, count, ValueKind.INTEGER)
    if err is not None:
        return err
    if count.value < 0:
        return argument_error(ctx.line, ctx.col, "negative repeat count %d", count.value)
    return StringVal(s.value * count.value)


@with_arity(3)
def string_replace(ctx: CallContext, s: Value, old: Value, new: Value) -> Value:
    err = _expect_strings(ctx, s, old, new)
    if err is not None:
        return err
    return StringVal(s.value.replace(old.value, new.value))


def new_module() -> Value:
    return (ModuleBuilder('string')
            .add_function('concat', string_concat)
            .add_function('is_empty', string_is_empty)
            .add_function('starts_with', _string_predicate(str.startswith))
            .add_function('ends_with', _string_predicate(str.endswith))
            .add_function('contains', _string_predicate(lambda s, sub: sub in s))
            .add_function('to_upper', _string_map(str.upper))
            .add_function('to_lower', _string_map(str.lower))
            .add_function('trim', _string_map(str.strip))
            .add_function('split', string_split)
            .add_function('repeat', string_repeat)
            .add_function('replace', string_replace)
            .build())
