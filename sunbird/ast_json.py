"""JSON serialization/deserialization for the Sunbird AST.

Nodes become dicts tagged with `"type"` (the node class name) plus one
entry per dataclass field, including `line` and `col`. Hash literal pairs
are written as two-element lists. `ast_from_obj(ast_to_obj(p))` rebuilds
an equivalent tree.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, Dict, Type

from . import ast as ast_nodes
from .ast import HashLiteral, Node


def _node_classes() -> Dict[str, Type[Node]]:
    classes = {}
    for name in dir(ast_nodes):
        obj = getattr(ast_nodes, name)
        if isinstance(obj, type) and issubclass(obj, Node) and is_dataclass(obj):
            classes[obj.__name__] = obj
    return classes


NODE_CLASSES = _node_classes()


def ast_to_obj(node: Any) -> Any:
    if node is None or isinstance(node, (int, float, str, bool)):
        return node
    if isinstance(node, (list, tuple)):
        return [ast_to_obj(n) for n in node]
    if isinstance(node, Node):
        obj = {"type": type(node).__name__}
        for f in fields(node):
            obj[f.name] = ast_to_obj(getattr(node, f.name))
        return obj
    raise TypeError(f"cannot serialize {type(node).__name__}")


def ast_from_obj(obj: Any) -> Any:
    if obj is None or isinstance(obj, (int, float, str, bool)):
        return obj
    if isinstance(obj, list):
        return [ast_from_obj(o) for o in obj]
    if not isinstance(obj, dict) or 'type' not in obj:
        raise ValueError(f"unexpected AST JSON value: {obj!r}")
    cls = NODE_CLASSES.get(obj['type'])
    if cls is None:
        raise ValueError(f"unknown AST node type: {obj['type']}")
    kwargs = {f.name: ast_from_obj(obj.get(f.name)) for f in fields(cls) if f.name in obj}
    if cls is HashLiteral:
        kwargs['pairs'] = [tuple(pair) for pair in kwargs.get('pairs', [])]
    return cls(**kwargs)
