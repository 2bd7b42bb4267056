from __future__ import annotations

import functools
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol

from .errors import expect_number_of_arguments
from .types import BuiltinVal, Value


class Applier(Protocol):
    """What builtins may ask of the interpreter: call a callable value,
    or read the script arguments and directory."""
    argv: List[str]
    base_dir: Path

    def apply_function(self, fn: Value, args: List[Value], line: int, col: int) -> Value: ...

    def debug(self, msg: str, level: int = 1) -> None: ...


@dataclass
class CallContext:
    """Passed as the first argument to every builtin."""
    line: int = 0
    col: int = 0
    interpreter: Optional[Applier] = None

    def apply(self, fn: Value, args: List[Value]) -> Value:
        if self.interpreter is None:
            raise RuntimeError('no interpreter bound to this call context')
        return self.interpreter.apply_function(fn, args, self.line, self.col)


def builtin(name: str, fn: Callable[..., Value]) -> BuiltinVal:
    return BuiltinVal(name, fn)


def with_arity(expected: int) -> Callable[[Callable[..., Value]], Callable[..., Value]]:
    """Reject calls whose argument count differs from `expected`."""
    def decorator(fn: Callable[..., Value]) -> Callable[..., Value]:
        @functools.wraps(fn)
        def wrapper(ctx: CallContext, *args: Value) -> Any:
            err = expect_number_of_arguments(ctx.line, ctx.col, expected, args)
            if err is not None:
                return err
            return fn(ctx, *args)
        return wrapper
    return decorator
