"""The `array` module.

`push`, `pop`, `shift`, `unshift`, `reverse` and `clear` mutate the array
in place, so the change is visible through every alias. `map`, `filter`
and `reduce` call back into the interpreter through the call context.
"""

from __future__ import annotations

from ..builtin_function import CallContext, with_arity
from ..errors import argument_error, expect_one_of_types, expect_type
from ..types import NULL, ArrayVal, IntVal, StringVal, Value, ValueKind, is_error, is_truthy, native_bool, values_equal
from .builder import ModuleBuilder

CALLABLE = (ValueKind.FUNCTION, ValueKind.BUILTIN)


def _expect_array(ctx: CallContext, value: Value):
    return expect_type(ctx.line, ctx.col, value, ValueKind.ARRAY)


@with_arity(2)
def array_push(ctx: CallContext, arr: Value, value: Value) -> Value:
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    arr.elements.append(value)
    return NULL


@with_arity(1)
def array_pop(ctx: CallContext, arr: Value) -> Value:
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    if not arr.elements:
        return NULL
    return arr.elements.pop()


@with_arity(1)
def array_shift(ctx: CallContext, arr: Value) -> Value:
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    if not arr.elements:
        return NULL
    return arr.elements.pop(0)


@with_arity(2)
def array_unshift(ctx: CallContext, arr: Value, value: Value) -> Value:
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    arr.elements.insert(0, value)
    return NULL


@with_arity(1)
def array_reverse(ctx: CallContext, arr: Value) -> Value:
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    arr.elements.reverse()
    return NULL


@with_arity(1)
def array_clear(ctx: CallContext, arr: Value) -> Value:
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    arr.elements.clear()
    return NULL


@with_arity(2)
def array_index_of(ctx: CallContext, arr: Value, value: Value) -> Value:
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    for i, element in enumerate(arr.elements):
        if values_equal(element, value):
            return IntVal(i)
    return IntVal(-1)


@with_arity(2)
def array_contains(ctx: CallContext, arr: Value, value: Value) -> Value:
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    return native_bool(any(values_equal(e, value) for e in arr.elements))


def array_slice(ctx: CallContext, *args: Value) -> Value:
    """slice(arr, start[, end]); negative bounds count from the end."""
    if len(args) not in (2, 3):
        return argument_error(ctx.line, ctx.col, "expected 2 or 3 arguments, got %d", len(args))
    arr = args[0]
    err = _expect_array(ctx, arr)
    if err is not None:
        return err
    for bound in args[1:]:
        err = expect_type(ctx.line, ctx.col, bound, ValueKind.INTEGER)
        if err is not None:
            return err
    size = len(arr.elements)
    start = args[1].value
    end = args[2].value if len(args) == 3 else size
    if start < 0:
        start += size
    if end < 0:
        end += size
    start = min(max(start, 0), size)
    end = min(max(end, start), size)
    return ArrayVal(arr.elements[start:end])


@with_arity(2)
def array_join(ctx: CallContext, arr: Value, sep: Value) -> Value:
    err = _expect_array(ctx, arr) or expect_type(ctx.line, ctx.col, sep, ValueKind.STRING)
    if err is not None:
        return err
    parts = [e.value if isinstance(e, StringVal) else e.inspect() for e in arr.elements]
    return StringVal(sep.value.join(parts))


@with_arity(2)
def array_concat(ctx: CallContext, a: Value, b: Value) -> Value:
    err = _expect_array(ctx, a) or _expect_array(ctx, b)
    if err is not None:
        return err
    return ArrayVal(a.elements + b.elements)


@with_arity(2)
def array_map(ctx: CallContext, arr: Value, fn: Value) -> Value:
    err = _expect_array(ctx, arr) or expect_one_of_types(ctx.line, ctx.col, fn, *CALLABLE)
    if err is not None:
        return err
    result = []
    for element in list(arr.elements):
        value = ctx.apply(fn, [element])
        if is_error(value):
            return value
        result.append(value)
    return ArrayVal(result)


@with_arity(2)
def array_filter(ctx: CallContext, arr: Value, fn: Value) -> Value:
    err = _expect_array(ctx, arr) or expect_one_of_types(ctx.line, ctx.col, fn, *CALLABLE)
    if err is not None:
        return err
    result = []
    for element in list(arr.elements):
        keep = ctx.apply(fn, [element])
        if is_error(keep):
            return keep
        if is_truthy(keep):
            result.append(element)
    return ArrayVal(result)


@with_arity(3)
def array_reduce(ctx: CallContext, arr: Value, fn: Value, initial: Value) -> Value:
    """reduce(arr, fn(acc, element), initial)"""
    err = _expect_array(ctx, arr) or expect_one_of_types(ctx.line, ctx.col, fn, *CALLABLE)
    if err is not None:
        return err
    acc = initial
    for element in list(arr.elements):
        acc = ctx.apply(fn, [acc, element])
        if is_error(acc):
            return acc
    return acc


def new_module() -> Value:
    return (ModuleBuilder('array')
            .add_function('push', array_push)
            .add_function('pop', array_pop)
            .add_function('shift', array_shift)
            .add_function('unshift', array_unshift)
            .add_function('reverse', array_reverse)
            .add_function('index_of', array_index_of)
            .add_function('slice', array_slice)
            .add_function('clear', array_clear)
            .add_function('join', array_join)
            .add_function('concat', array_concat)
            .add_function('contains', array_contains)
            .add_function('map', array_map)
            .add_function('filter', array_filter)
            .add_function('reduce', array_reduce)
            .build())
