"""The `io` module: console output, line and word input, and script arguments.

`printf`, `printfn` and `sprintf` substitute each `{}` in the format string
with the next argument, in order.
"""

from __future__ import annotations

import sys

from ..builtin_function import CallContext, with_arity
from ..builtins import builtin_print, builtin_println
from ..errors import argument_error, expect_number_of_arguments, expect_type
from ..types import NULL, ArrayVal, StringVal, Value, ValueKind, to_text
from .builder import ModuleBuilder


def io_readln(ctx: CallContext, *args: Value) -> Value:
    if args:
        err = expect_number_of_arguments(ctx.line, ctx.col, 1, args)
        if err is not None:
            return err
        builtin_print(ctx, args[0])
    line = sys.stdin.readline()
    if not line:
        return NULL
    return StringVal(line.rstrip('\r\n'))


def io_read(ctx: CallContext, *args: Value) -> Value:
    """Read one space-delimited word from stdin."""
    if args:
        err = expect_number_of_arguments(ctx.line, ctx.col, 1, args) or \
            expect_type(ctx.line, ctx.col, args[0], ValueKind.STRING)
        if err is not None:
            return err
        builtin_print(ctx, args[0])
    chars = []
    while True:
        c = sys.stdin.read(1)
        if not c:
            break
        chars.append(c)
        if c == ' ':
            break
    if not chars:
        return NULL
    return StringVal(''.join(chars).strip())


def format_placeholders(ctx: CallContext, args) -> Value:
    if not args:
        return argument_error(ctx.line, ctx.col, "expected at least 1 arguments, got 0")
    err = expect_type(ctx.line, ctx.col, args[0], ValueKind.STRING)
    if err is not None:
        return err
    text = args[0].value
    for arg in args[1:]:
        text = text.replace('{}', to_text(arg), 1)
    return StringVal(text)


def io_printf(ctx: CallContext, *args: Value) -> Value:
    result = format_placeholders(ctx, args)
    if not isinstance(result, StringVal):
        return result
    return builtin_print(ctx, result)


def io_printfn(ctx: CallContext, *args: Value) -> Value:
    result = format_placeholders(ctx, args)
    if not isinstance(result, StringVal):
        return result
    return builtin_println(ctx, result)


def io_sprintf(ctx: CallContext, *args: Value) -> Value:
    return format_placeholders(ctx, args)


@with_arity(0)
def io_clear(ctx: CallContext) -> Value:
    sys.stdout.write('\033[H\033[2J')
    sys.stdout.flush()
    return NULL


@with_arity(0)
def io_beep(ctx: CallContext) -> Value:
    sys.stdout.write('\a')
    sys.stdout.flush()
    return NULL


@with_arity(0)
def io_args(ctx: CallContext) -> Value:
    argv = getattr(ctx.interpreter, 'argv', None) or []
    return ArrayVal([StringVal(a) for a in argv])


def new_module() -> Value:
    return (ModuleBuilder('io')
            .add_function('print', builtin_print)
            .add_function('println', builtin_println)
            .add_function('readln', io_readln)
            .add_function('read', io_read)
            .add_function('printf', io_printf)
            .add_function('printfn', io_printfn)
            .add_function('sprintf', io_sprintf)
            .add_function('clear', io_clear)
            .add_function('beep', io_beep)
            .add_function('args', io_args)
            .build())
