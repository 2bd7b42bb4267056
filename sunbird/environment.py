from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional, Set, Tuple

from .types import NULL, Value

if TYPE_CHECKING:
    from .ast import TypeAnnotation


class Environment:
    """A scope mapping identifiers to values, chained to its enclosing scope."""
    def __init__(self, outer: Optional['Environment'] = None):
        self.outer = outer
        self.store: Dict[str, Value] = {}
        self.constants: Set[str] = set()
        self.types: Dict[str, 'TypeAnnotation'] = {}
        self.exports: Set[str] = set()

    def enclosed(self) -> 'Environment':
        return Environment(outer=self)

    def get(self, name: str) -> Tuple[Value, bool]:
        env: Optional[Environment] = self
        while env is not None:
            if name in env.store:
                return env.store[name], True
            env = env.outer
        return NULL, False

    def has(self, name: str) -> bool:
        # current scope only
        return name in self.store

    def set(self, name: str, value: Value, type_annotation: Optional['TypeAnnotation'] = None) -> Value:
        self.store[name] = value
        if type_annotation is not None:
            self.types[name] = type_annotation
        return value

    def set_const(self, name: str, value: Value, type_annotation: Optional['TypeAnnotation'] = None) -> Value:
        self.set(name, value, type_annotation)
        self.constants.add(name)
        return value

    def _owner(self, name: str) -> Optional['Environment']:
        env: Optional[Environment] = self
        while env is not None:
            if name in env.store:
                return env
            env = env.outer
        return None

    def update(self, name: str, value: Value) -> bool:
        env = self._owner(name)
        if env is None:
            return False
        env.store[name] = value
        return True

    def is_const(self, name: str) -> bool:
        env = self._owner(name)
        return env is not None and name in env.constants

    def type_of(self, name: str) -> Optional['TypeAnnotation']:
        env = self._owner(name)
        if env is None:
            return None
        return env.types.get(name)

    def mark_as_exported(self, name: str) -> None:
        self.exports.add(name)

    def get_exports(self) -> Dict[str, Value]:
        return {name: value for name, value in self.store.items() if name in self.exports}

    def __repr__(self) -> str:
        return f"<Environment {sorted(self.store)}>"
