"""Abstract Syntax Tree (AST) definitions for the Sunbird language.

Every node carries the `line` and `col` of the token that starts it so
the interpreter can attach source positions to runtime errors. `str()` of
a node renders it back as Sunbird-like source text; function values use
this to render their bodies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class Node:
    """Base class for all AST nodes."""
    line: int = field(default=0, kw_only=True)
    col: int = field(default=0, kw_only=True)


# Type annotations

@dataclass
class TypeAnnotation(Node):
    pass


@dataclass
class SimpleType(TypeAnnotation):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class ArrayType(TypeAnnotation):
    element_type: Optional[TypeAnnotation] = None

    def __str__(self) -> str:
        return 'Array'


@dataclass
class HashType(TypeAnnotation):
    def __str__(self) -> str:
        return 'Hash'


@dataclass
class FunctionType(TypeAnnotation):
    def __str__(self) -> str:
        return 'Func'


@dataclass
class OptionalType(TypeAnnotation):
    base_type: TypeAnnotation

    def __str__(self) -> str:
        return f"{self.base_type}?"


# Statements

@dataclass
class Program(Node):
    statements: List[Node]

    def __str__(self) -> str:
        return '\n'.join(str(s) for s in self.statements)


@dataclass
class BlockStatement(Node):
    statements: List[Node]

    def __str__(self) -> str:
        return '\n'.join(str(s) for s in self.statements)


@dataclass
class ExpressionStatement(Node):
    expression: Node

    def __str__(self) -> str:
        return str(self.expression)


@dataclass
class VarDeclaration(Node):
    name: str
    value: Node
    type_annotation: Optional[TypeAnnotation] = None
    is_const: bool = False

    def __str__(self) -> str:
        keyword = 'const' if self.is_const else 'let'
        annotation = f": {self.type_annotation}" if self.type_annotation else ''
        return f"{keyword} {self.name}{annotation} = {self.value}"


@dataclass
class ReturnStatement(Node):
    value: Optional[Node] = None

    def __str__(self) -> str:
        return f"return {self.value}" if self.value is not None else 'return'


@dataclass
class BreakStatement(Node):
    def __str__(self) -> str:
        return 'break'


@dataclass
class ContinueStatement(Node):
    def __str__(self) -> str:
        return 'continue'


@dataclass
class ForStatement(Node):
    init: Optional[Node]
    condition: Optional[Node]
    update: Optional[Node]
    body: BlockStatement

    def __str__(self) -> str:
        parts = ['' if p is None else str(p) for p in (self.init, self.condition, self.update)]
        return f"for {'; '.join(parts)} {{ {self.body} }}"


@dataclass
class ForInStatement(Node):
    variable: str
    iterable: Node
    body: BlockStatement

    def __str__(self) -> str:
        return f"for {self.variable} in {self.iterable} {{ {self.body} }}"


@dataclass
class WhileStatement(Node):
    condition: Node
    body: BlockStatement

    def __str__(self) -> str:
        return f"while {self.condition} {{ {self.body} }}"


@dataclass
class TryCatchStatement(Node):
    try_block: BlockStatement
    param: str
    catch_block: BlockStatement
    finally_block: Optional[BlockStatement] = None

    def __str__(self) -> str:
        out = f"try {{ {self.try_block} }} catch {self.param} {{ {self.catch_block} }}"
        if self.finally_block is not None:
            out += f" finally {{ {self.finally_block} }}"
        return out


@dataclass
class ImportStatement(Node):
    path: str
    alias: Optional[str] = None

    def __str__(self) -> str:
        if self.alias:
            return f'import "{self.path}" as {self.alias}'
        return f'import "{self.path}"'


@dataclass
class ExportStatement(Node):
    """`export let ...`, `export const ...` or `export name`."""
    declaration: Optional[VarDeclaration] = None
    name: Optional[str] = None

    def __str__(self) -> str:
        return f"export {self.declaration if self.declaration is not None else self.name}"


# Expressions

@dataclass
class Identifier(Node):
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass
class IntegerLiteral(Node):
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class FloatLiteral(Node):
    value: float

    def __str__(self) -> str:
        return repr(self.value)


@dataclass
class StringLiteral(Node):
    value: str

    def __str__(self) -> str:
        return '"' + self.value + '"'


@dataclass
class BooleanLiteral(Node):
    value: bool

    def __str__(self) -> str:
        return 'true' if self.value else 'false'


@dataclass
class NullLiteral(Node):
    def __str__(self) -> str:
        return 'null'


@dataclass
class ArrayLiteral(Node):
    elements: List[Node]

    def __str__(self) -> str:
        return '[' + ', '.join(str(e) for e in self.elements) + ']'


@dataclass
class HashLiteral(Node):
    pairs: List[Tuple[Node, Node]]

    def __str__(self) -> str:
        return '{' + ', '.join(f"{k}: {v}" for k, v in self.pairs) + '}'


@dataclass
class Parameter(Node):
    name: str
    type_annotation: Optional[TypeAnnotation] = None

    def __str__(self) -> str:
        if self.type_annotation is not None:
            return f"{self.name}: {self.type_annotation}"
        return self.name


@dataclass
class FunctionLiteral(Node):
    parameters: List[Parameter]
    body: BlockStatement
    return_type: Optional[TypeAnnotation] = None
    name: Optional[str] = None

    def __str__(self) -> str:
        params = ', '.join(str(p) for p in self.parameters)
        ret = f": {self.return_type}" if self.return_type else ''
        return f"func({params}){ret} {{ {self.body} }}"


@dataclass
class PrefixExpression(Node):
    operator: str
    right: Node

    def __str__(self) -> str:
        return f"({self.operator}{self.right})"


@dataclass
class InfixExpression(Node):
    left: Node
    operator: str
    right: Node

    def __str__(self) -> str:
        return f"({self.left} {self.operator} {self.right})"


@dataclass
class IfExpression(Node):
    condition: Node
    consequence: BlockStatement
    alternative: Optional[BlockStatement] = None

    def __str__(self) -> str:
        out = f"if {self.condition} {{ {self.consequence} }}"
        if self.alternative is not None:
            out += f" else {{ {self.alternative} }}"
        return out


@dataclass
class CallExpression(Node):
    function: Node
    arguments: List[Node]

    def __str__(self) -> str:
        return f"{self.function}(" + ', '.join(str(a) for a in self.arguments) + ')'


@dataclass
class IndexExpression(Node):
    left: Node
    index: Node

    def __str__(self) -> str:
        return f"({self.left}[{self.index}])"


@dataclass
class PropertyExpression(Node):
    object: Node
    property: str

    def __str__(self) -> str:
        return f"{self.object}.{self.property}"


@dataclass
class AssignExpression(Node):
    target: Node
    value: Node

    def __str__(self) -> str:
        return f"{self.target} = {self.value}"


@dataclass
class CompoundAssignExpression(Node):
    """`a += b` and friends. `operator` is the arithmetic part (`+`)."""
    target: Node
    operator: str
    value: Node

    def __str__(self) -> str:
        return f"{self.target} {self.operator}= {self.value}"


@dataclass
class RangeExpression(Node):
    start: Node
    end: Node
    step: Optional[Node] = None

    def __str__(self) -> str:
        if self.step is not None:
            return f"{self.start}..{self.end}:{self.step}"
        return f"{self.start}..{self.end}"
