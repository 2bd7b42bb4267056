"""The `time` module.

Timestamps are Unix seconds (or milliseconds and nanoseconds for the `_ms`
and `_ns` variants). `unix`/`unix_ms`/`unix_ns` expand a timestamp into a
Hash of calendar fields in local time, which `format` also accepts and
`parse` produces. Format patterns use the tokens YYYY YY MM DD HH mm ss SSS.
"""

from __future__ import annotations

import re
import time
from datetime import datetime
from typing import Optional

from ..builtin_function import CallContext, with_arity
from ..errors import expect_one_of_types, expect_type, runtime_error, type_error
from ..types import NULL, HashVal, IntVal, StringVal, Value, ValueKind, new_hash
from .builder import ModuleBuilder

FORMAT_TOKENS = {
    'YYYY': '%Y',
    'YY': '%y',
    'MM': '%m',
    'DD': '%d',
    'HH': '%H',
    'mm': '%M',
    'ss': '%S',
    'SSS': '%f',
}
TOKEN_RE = re.compile(r'YYYY|SSS|YY|MM|DD|HH|mm|ss')
NS_PER_SECOND = 10 ** 9


def _fields(t: datetime, nanosecond: Optional[int] = None) -> HashVal:
    if nanosecond is None:
        nanosecond = t.microsecond * 1000
    unix = int(t.replace(microsecond=0).timestamp())
    unix_ns = unix * NS_PER_SECOND + nanosecond
    return new_hash({
        'unix': IntVal(unix),
        'unix_ms': IntVal(unix_ns // 1_000_000),
        'unix_ns': IntVal(unix_ns),
        'year': IntVal(t.year),
        'month': IntVal(t.month),
        'day': IntVal(t.day),
        'hour': IntVal(t.hour),
        'minute': IntVal(t.minute),
        'second': IntVal(t.second),
        'millisecond': IntVal(nanosecond // 1_000_000),
        'nanosecond': IntVal(nanosecond),
        'weekday': IntVal(t.isoweekday() % 7),
    })


def _from_ns(unix_ns: int) -> datetime:
    seconds, nanos = divmod(unix_ns, NS_PER_SECOND)
    return datetime.fromtimestamp(seconds).replace(microsecond=nanos // 1000)


def _format(t: datetime, pattern: str) -> str:
    def substitute(m):
        token = m.group(0)
        if token == 'SSS':
            return f"{t.microsecond // 1000:03d}"
        return t.strftime(FORMAT_TOKENS[token])
    return TOKEN_RE.sub(substitute, pattern)


def _strptime_pattern(pattern: str) -> str:
    pieces = []
    last = 0
    for m in TOKEN_RE.finditer(pattern):
        pieces.append(pattern[last:m.start()].replace('%', '%%'))
        pieces.append(FORMAT_TOKENS[m.group(0)])
        last = m.end()
    pieces.append(pattern[last:].replace('%', '%%'))
    return ''.join(pieces)


@with_arity(0)
def time_now(ctx: CallContext) -> Value:
    return IntVal(int(time.time()))


@with_arity(0)
def time_now_ms(ctx: CallContext) -> Value:
    return IntVal(time.time_ns() // 1_000_000)


@with_arity(0)
def time_now_ns(ctx: CallContext) -> Value:
    return IntVal(time.time_ns())


@with_arity(1)
def time_sleep(ctx: CallContext, seconds: Value) -> Value:
    err = expect_one_of_types(ctx.line, ctx.col, seconds, ValueKind.INTEGER, ValueKind.FLOAT)
    if err is not None:
        return err
    if seconds.value > 0:
        time.sleep(seconds.value)
    return NULL


def _unix_fields(ctx: CallContext, stamp: Value, per_second: int) -> Value:
    err = expect_type(ctx.line, ctx.col, stamp, ValueKind.INTEGER)
    if err is not None:
        return err
    unix_ns = stamp.value * (NS_PER_SECOND // per_second)
    try:
        return _fields(_from_ns(unix_ns), unix_ns % NS_PER_SECOND)
    except (OverflowError, OSError, ValueError) as e:
        return runtime_error(ctx.line, ctx.col, "invalid timestamp %d: %s", stamp.value, e)


@with_arity(1)
def time_unix(ctx: CallContext, stamp: Value) -> Value:
    return _unix_fields(ctx, stamp, 1)


@with_arity(1)
def time_unix_ms(ctx: CallContext, stamp: Value) -> Value:
    return _unix_fields(ctx, stamp, 1000)


@with_arity(1)
def time_unix_ns(ctx: CallContext, stamp: Value) -> Value:
    return _unix_fields(ctx, stamp, NS_PER_SECOND)


@with_arity(2)
def time_format(ctx: CallContext, when: Value, pattern: Value) -> Value:
    """format(timestamp_or_fields, pattern)"""
    err = expect_type(ctx.line, ctx.col, pattern, ValueKind.STRING)
    if err is not None:
        return err
    if isinstance(when, IntVal):
        unix_ns = when.value * NS_PER_SECOND
    elif isinstance(when, HashVal):
        for key, scale in (('unix_ns', 1), ('unix_ms', 1_000_000), ('unix', NS_PER_SECOND)):
            stamp = when.get(key)
            if isinstance(stamp, IntVal):
                unix_ns = stamp.value * scale
                break
        else:
            return runtime_error(ctx.line, ctx.col, "time hash missing 'unix' or 'unix_ms' field")
    else:
        return type_error(ctx.line, ctx.col, "expected Integer or Hash, got %s", when.kind)
    try:
        t = _from_ns(unix_ns)
    except (OverflowError, OSError, ValueError) as e:
        return runtime_error(ctx.line, ctx.col, "invalid timestamp: %s", e)
    return StringVal(_format(t, pattern.value))


@with_arity(2)
def time_parse(ctx: CallContext, text: Value, pattern: Value) -> Value:
    """parse(text, pattern) reads a local time written in `pattern`."""
    err = expect_type(ctx.line, ctx.col, text, ValueKind.STRING) or \
        expect_type(ctx.line, ctx.col, pattern, ValueKind.STRING)
    if err is not None:
        return err
    try:
        t = datetime.strptime(text.value, _strptime_pattern(pattern.value))
        return _fields(t)
    except (OverflowError, OSError, ValueError) as e:
        return runtime_error(ctx.line, ctx.col, "failed to parse time: %s", e)


def new_module() -> Value:
    return (ModuleBuilder('time')
            .add_function('now', time_now)
            .add_function('now_ms', time_now_ms)
            .add_function('now_ns', time_now_ns)
            .add_function('sleep', time_sleep)
            .add_function('unix', time_unix)
            .add_function('unix_ms', time_unix_ms)
            .add_function('unix_ns', time_unix_ns)
            .add_function('format', time_format)
            .add_function('parse', time_parse)
            .add_float('millisecond', 1.0 / 1000)
            .add_int('second', 1)
            .add_int('minute', 60)
            .add_int('hour', 60 * 60)
            .add_int('day', 60 * 60 * 24)
            .add_int('week', 60 * 60 * 24 * 7)
            .build())
