from __future__ import annotations

from typing import Callable, Dict

from ..types import BuiltinVal, FloatVal, HashVal, IntVal, ModuleVal, StringVal, Value, native_bool, new_hash


class ModuleBuilder:
    """Assembles a table of builtins and constants into a Module or Hash value.

    Example:
        ModuleBuilder('math').add_function('abs', math_abs).add_float('pi', math.pi).build()
    """
    def __init__(self, name: str):
        self.name = name
        self.entries: Dict[str, Value] = {}

    def add_function(self, name: str, fn: Callable[..., Value]) -> 'ModuleBuilder':
        self.entries[name] = BuiltinVal(f"{self.name}.{name}", fn)
        return self

    def add_value(self, name: str, value: Value) -> 'ModuleBuilder':
        self.entries[name] = value
        return self

    def add_int(self, name: str, value: int) -> 'ModuleBuilder':
        return self.add_value(name, IntVal(value))

    def add_float(self, name: str, value: float) -> 'ModuleBuilder':
        return self.add_value(name, FloatVal(value))

    def add_string(self, name: str, value: str) -> 'ModuleBuilder':
        return self.add_value(name, StringVal(value))

    def add_bool(self, name: str, value: bool) -> 'ModuleBuilder':
        return self.add_value(name, native_bool(value))

    def build(self) -> ModuleVal:
        return ModuleVal(self.name, dict(self.entries))

    def build_hash(self) -> HashVal:
        return new_hash(self.entries)
