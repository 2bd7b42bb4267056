"""Runtime value model for Sunbird.

Every datum produced by the interpreter is an instance of one of the
`Value` subclasses defined here. Each value reports its `kind` (a
`ValueKind`) and renders itself with `inspect()`. Arrays and hashes are
reference types: the Python list/dict they hold is shared by every
variable that refers to the same value, so mutation through one alias is
visible through all of them.

`NULL`, `TRUE`, `FALSE`, `BREAK` and `CONTINUE` are process-wide
singletons and may be compared by identity.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .ast import BlockStatement, Parameter, TypeAnnotation
    from .environment import Environment


INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1


class ValueKind(enum.Enum):
    """Kind tags. The value of each member is the name used in messages."""
    INTEGER = 'Integer'
    FLOAT = 'Float'
    BOOLEAN = 'Boolean'
    NULL = 'Null'
    STRING = 'String'
    ARRAY = 'Array'
    HASH = 'Hash'
    FUNCTION = 'Function'
    BUILTIN = 'Builtin'
    RETURN_VALUE = 'ReturnValue'
    ERROR = 'Error'
    BREAK = 'Break'
    CONTINUE = 'Continue'
    RANGE = 'Range'
    MODULE = 'Module'

    def __str__(self) -> str:
        return self.value


class Value:
    """Base class for all runtime values."""
    kind: ValueKind

    def inspect(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.inspect()


class NullVal(Value):
    kind = ValueKind.NULL

    def inspect(self) -> str:
        return 'null'

    def __repr__(self) -> str:
        return 'NULL'


class BoolVal(Value):
    kind = ValueKind.BOOLEAN

    def __init__(self, value: bool):
        self.value = value

    def inspect(self) -> str:
        return 'true' if self.value else 'false'

    def __repr__(self) -> str:
        return 'TRUE' if self.value else 'FALSE'


@dataclass(eq=False)
class IntVal(Value):
    value: int
    kind = ValueKind.INTEGER

    def inspect(self) -> str:
        return str(self.value)


@dataclass(eq=False)
class FloatVal(Value):
    value: float
    kind = ValueKind.FLOAT

    def inspect(self) -> str:
        return format_float(self.value)


@dataclass(eq=False)
class StringVal(Value):
    value: str
    kind = ValueKind.STRING

    def inspect(self) -> str:
        return '"' + self.value + '"'


@dataclass(eq=False)
class ArrayVal(Value):
    elements: List[Value] = field(default_factory=list)
    kind = ValueKind.ARRAY

    def inspect(self) -> str:
        return '[' + ', '.join(e.inspect() for e in self.elements) + ']'


@dataclass(frozen=True)
class HashKey:
    kind: ValueKind
    value: Any


@dataclass(eq=False)
class HashPair:
    key: Value
    value: Value


@dataclass(eq=False)
class HashVal(Value):
    """A mutable mapping with an optional prototype used for inherited lookup."""
    pairs: Dict[HashKey, HashPair] = field(default_factory=dict)
    proto: Optional['HashVal'] = None
    kind = ValueKind.HASH

    def inspect(self) -> str:
        items = [f"{p.key.inspect()}: {p.value.inspect()}" for p in self.pairs.values()]
        return '{' + ', '.join(items) + '}'

    def lookup(self, key: HashKey) -> Optional[Value]:
        """Find `key` locally, then along the prototype chain."""
        h: Optional[HashVal] = self
        seen = set()
        while h is not None and id(h) not in seen:
            seen.add(id(h))
            pair = h.pairs.get(key)
            if pair is not None:
                return pair.value
            h = h.proto
        return None

    def get(self, name: str) -> Optional[Value]:
        return self.lookup(HashKey(ValueKind.STRING, name))

    def put(self, key: Value, value: Value) -> None:
        self.pairs[hash_key(key)] = HashPair(key, value)

    def set(self, name: str, value: Value) -> None:
        self.put(StringVal(name), value)


@dataclass(eq=False)
class FunctionVal(Value):
    parameters: List['Parameter']
    body: 'BlockStatement'
    env: 'Environment'
    return_type: Optional['TypeAnnotation'] = None
    name: Optional[str] = None
    kind = ValueKind.FUNCTION

    def inspect(self) -> str:
        params = ', '.join(str(p) for p in self.parameters)
        return f"func({params}) {{\n{self.body}\n}}"


@dataclass(eq=False)
class BuiltinVal(Value):
    """A native function. `fn` is called as `fn(ctx, *args)`."""
    name: str
    fn: Callable[..., Value]
    kind = ValueKind.BUILTIN

    def inspect(self) -> str:
        return 'builtin function'


@dataclass(eq=False)
class ReturnValue(Value):
    value: Value
    kind = ValueKind.RETURN_VALUE

    def inspect(self) -> str:
        return self.value.inspect()


@dataclass(eq=False)
class ErrorVal(Value):
    message: str
    code: str = 'RuntimeError'
    line: int = 0
    col: int = 0
    propagating: bool = True
    kind = ValueKind.ERROR

    def inspect(self) -> str:
        if self.line > 0:
            return f"{self.message} (at line {self.line}, col {self.col})"
        return self.message

    def caught(self) -> 'ErrorVal':
        return ErrorVal(self.message, self.code, self.line, self.col, propagating=False)


class BreakVal(Value):
    kind = ValueKind.BREAK

    def inspect(self) -> str:
        return 'break'


class ContinueVal(Value):
    kind = ValueKind.CONTINUE

    def inspect(self) -> str:
        return 'continue'


@dataclass(eq=False)
class RangeVal(Value):
    start: int
    end: int
    step: int = 1
    kind = ValueKind.RANGE

    def inspect(self) -> str:
        if self.step != 1:
            return f"{self.start}..{self.end}:{self.step}"
        return f"{self.start}..{self.end}"

    def __iter__(self):
        return iter(range(self.start, self.end, self.step))


@dataclass(eq=False)
class ModuleVal(Value):
    name: str
    exports: Dict[str, Value] = field(default_factory=dict)
    kind = ValueKind.MODULE

    def inspect(self) -> str:
        return f"<module {self.name}>"


NULL = NullVal()
TRUE = BoolVal(True)
FALSE = BoolVal(False)
BREAK = BreakVal()
CONTINUE = ContinueVal()


def native_bool(value: bool) -> BoolVal:
    return TRUE if value else FALSE


def wrap_int(value: int) -> int:
    """Wrap an arbitrary Python int to a signed 64-bit value."""
    value &= (1 << 64) - 1
    if value > INT_MAX:
        value -= 1 << 64
    return value


def new_int(value: int) -> IntVal:
    return IntVal(wrap_int(value))


def format_float(value: float) -> str:
    """Render a float without exponent, using the shortest round-trip digits."""
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return '+Inf' if value > 0 else '-Inf'
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), 'f')


def is_truthy(value: Value) -> bool:
    if value is NULL:
        return False
    if isinstance(value, BoolVal):
        return value.value
    if isinstance(value, (IntVal, FloatVal)):
        return value.value != 0
    if isinstance(value, StringVal):
        return value.value != ''
    return True


def is_error(value: Optional[Value]) -> bool:
    """True for an error that is still propagating."""
    return isinstance(value, ErrorVal) and value.propagating


def is_hashable(value: Value) -> bool:
    return isinstance(value, (IntVal, StringVal))


def hash_key(value: Value) -> HashKey:
    if isinstance(value, IntVal):
        return HashKey(ValueKind.INTEGER, value.value)
    if isinstance(value, StringVal):
        return HashKey(ValueKind.STRING, value.value)
    raise TypeError(f"type {value.kind} is not hashable")


def to_text(value: Value) -> str:
    """Plain text of a value: strings unquoted, everything else inspected."""
    if isinstance(value, StringVal):
        return value.value
    return value.inspect()


def values_equal(left: Value, right: Value) -> bool:
    if isinstance(left, StringVal) and isinstance(right, StringVal):
        return left.value == right.value
    return left.inspect() == right.inspect()


def new_hash(items: Dict[str, Value], proto: Optional[HashVal] = None) -> HashVal:
    h = HashVal(proto=proto)
    for k, v in items.items():
        h.set(k, v)
    return h


def from_python(obj: Any) -> Value:
    """Convert plain Python data (as produced by `json.loads`) into values."""
    if obj is None:
        return NULL
    if isinstance(obj, bool):
        return native_bool(obj)
    if isinstance(obj, int):
        return new_int(obj)
    if isinstance(obj, float):
        if obj.is_integer() and INT_MIN <= obj <= INT_MAX:
            return IntVal(int(obj))
        return FloatVal(obj)
    if isinstance(obj, str):
        return StringVal(obj)
    if isinstance(obj, (list, tuple)):
        return ArrayVal([from_python(x) for x in obj])
    if isinstance(obj, dict):
        return new_hash({str(k): from_python(v) for k, v in obj.items()})
    raise TypeError(f"cannot convert {type(obj).__name__}")


def to_python(value: Value) -> Any:
    """Convert a value into plain Python data suitable for `json.dumps`."""
    if isinstance(value, (IntVal, FloatVal, StringVal)):
        return value.value
    if isinstance(value, BoolVal):
        return value.value
    if value is NULL:
        return None
    if isinstance(value, ArrayVal):
        return [to_python(e) for e in value.elements]
    if isinstance(value, HashVal):
        return {to_text(p.key): to_python(p.value) for p in value.pairs.values()}
    raise TypeError(f"cannot convert {value.kind}")


def kind_names(kinds: Tuple[ValueKind, ...]) -> str:
    return ', '.join(str(k) for k in kinds)
