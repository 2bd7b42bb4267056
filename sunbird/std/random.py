from __future__ import annotations

import random

from ..builtin_function import CallContext, with_arity
from ..errors import argument_error, expect_type
from ..types import NULL, ArrayVal, FloatVal, IntVal, Value, ValueKind, native_bool
from .builder import ModuleBuilder

_rng = random.Random()


@with_arity(1)
def random_seed(ctx: CallContext, seed: Value) -> Value:
    err = expect_type(ctx.line, ctx.col, seed, ValueKind.INTEGER)
    if err is not None:
        return err
    _rng.seed(seed.value)
    return NULL


@with_arity(2)
def random_int(ctx: CallContext, low: Value, high: Value) -> Value:
    """int(low, high) returns an Integer in [low, high)."""
    err = expect_type(ctx.line, ctx.col, low, ValueKind.INTEGER) or \
        expect_type(ctx.line, ctx.col, high, ValueKind.INTEGER)
    if err is not None:
        return err
    if high.value <= low.value:
        return argument_error(ctx.line, ctx.col, "empty range [%d, %d)", low.value, high.value)
    return IntVal(_rng.randrange(low.value, high.value))


@with_arity(2)
def random_float(ctx: CallContext, low: Value, high: Value) -> Value:
    err = expect_type(ctx.line, ctx.col, low, ValueKind.FLOAT) or \
        expect_type(ctx.line, ctx.col, high, ValueKind.FLOAT)
    if err is not None:
        return err
    return FloatVal(_rng.random() * (high.value - low.value) + low.value)


@with_arity(0)
def random_bool(ctx: CallContext) -> Value:
    return native_bool(_rng.random() < 0.5)


@with_arity(1)
def random_choice(ctx: CallContext, arr: Value) -> Value:
    err = expect_type(ctx.line, ctx.col, arr, ValueKind.ARRAY)
    if err is not None:
        return err
    if not arr.elements:
        return NULL
    return _rng.choice(arr.elements)


@with_arity(1)
def random_shuffle(ctx: CallContext, arr: Value) -> Value:
    """Returns a shuffled copy; the argument is left untouched."""
    err = expect_type(ctx.line, ctx.col, arr, ValueKind.ARRAY)
    if err is not None:
        return err
    shuffled = list(arr.elements)
    _rng.shuffle(shuffled)
    return ArrayVal(shuffled)


def new_module() -> Value:
    return (ModuleBuilder('random')
            .add_function('int', random_int)
            .add_function('float', random_float)
            .add_function('bool', random_bool)
            .add_function('shuffle', random_shuffle)
            .add_function('choice', random_choice)
            .add_function('seed', random_seed)
            .build())
