"""The `math` module. Integer arguments give Integer results, any Float
argument gives a Float result."""

from __future__ import annotations

import math

from ..builtin_function import CallContext, with_arity
from ..errors import expect_one_of_types
from ..types import FloatVal, IntVal, Value, ValueKind, new_int
from .builder import ModuleBuilder

NUMERIC = (ValueKind.INTEGER, ValueKind.FLOAT)


def _check_numbers(ctx: CallContext, *args: Value):
    for arg in args:
        err = expect_one_of_types(ctx.line, ctx.col, arg, *NUMERIC)
        if err is not None:
            return err
    return None


def _result(value: float, *args: Value) -> Value:
    if any(isinstance(a, FloatVal) for a in args):
        return FloatVal(float(value))
    if math.isnan(value) or math.isinf(value):
        return FloatVal(value)
    return new_int(int(value))


def _unary(fn):
    @with_arity(1)
    def wrapper(ctx: CallContext, x: Value) -> Value:
        err = _check_numbers(ctx, x)
        if err is not None:
            return err
        try:
            return _result(fn(float(x.value)), x)
        except OverflowError:
            return x
        except ValueError:
            return FloatVal(math.nan)
    wrapper.__name__ = fn.__name__
    return wrapper


@with_arity(1)
def math_abs(ctx: CallContext, x: Value) -> Value:
    err = _check_numbers(ctx, x)
    if err is not None:
        return err
    if isinstance(x, IntVal):
        return new_int(abs(x.value))
    return FloatVal(abs(x.value))


@with_arity(2)
def math_max(ctx: CallContext, a: Value, b: Value) -> Value:
    err = _check_numbers(ctx, a, b)
    if err is not None:
        return err
    return _result(max(a.value, b.value), a, b)


@with_arity(2)
def math_min(ctx: CallContext, a: Value, b: Value) -> Value:
    err = _check_numbers(ctx, a, b)
    if err is not None:
        return err
    return _result(min(a.value, b.value), a, b)


@with_arity(2)
def math_pow(ctx: CallContext, a: Value, b: Value) -> Value:
    err = _check_numbers(ctx, a, b)
    if err is not None:
        return err
    if isinstance(a, IntVal) and isinstance(b, IntVal) and b.value >= 0:
        return new_int(pow(a.value, b.value, 1 << 64))
    try:
        return _result(math.pow(a.value, b.value), a, b)
    except (OverflowError, ValueError):
        return FloatVal(math.nan)


@with_arity(1)
def math_sqrt(ctx: CallContext, x: Value) -> Value:
    err = _check_numbers(ctx, x)
    if err is not None:
        return err
    if x.value < 0:
        return FloatVal(math.nan)
    return _result(math.sqrt(x.value), x)


@with_arity(1)
def math_round(ctx: CallContext, x: Value) -> Value:
    # half away from zero
    err = _check_numbers(ctx, x)
    if err is not None:
        return err
    if isinstance(x, IntVal):
        return x
    if math.isnan(x.value) or math.isinf(x.value):
        return x
    return FloatVal(float(math.copysign(math.floor(abs(x.value) + 0.5), x.value)))


@with_arity(1)
def math_sign(ctx: CallContext, x: Value) -> Value:
    err = _check_numbers(ctx, x)
    if err is not None:
        return err
    s = (x.value > 0) - (x.value < 0)
    return FloatVal(float(s)) if isinstance(x, FloatVal) else IntVal(s)


@with_arity(3)
def math_clamp(ctx: CallContext, x: Value, low: Value, high: Value) -> Value:
    """clamp(x, low, high) keeps x within [low, high]."""
    err = _check_numbers(ctx, x, low, high)
    if err is not None:
        return err
    return _result(max(low.value, min(x.value, high.value)), x, low, high)


def new_module() -> Value:
    return (ModuleBuilder('math')
            .add_function('abs', math_abs)
            .add_function('max', math_max)
            .add_function('min', math_min)
            .add_function('pow', math_pow)
            .add_function('sqrt', math_sqrt)
            .add_function('floor', _unary(math.floor))
            .add_function('ceil', _unary(math.ceil))
            .add_function('round', math_round)
            .add_function('sign', math_sign)
            .add_function('clamp', math_clamp)
            .add_function('sin', _unary(math.sin))
            .add_function('cos', _unary(math.cos))
            .add_function('tan', _unary(math.tan))
            .add_float('pi', math.pi)
            .add_float('e', math.e)
            .build())
