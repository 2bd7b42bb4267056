"""Parser for the Sunbird language.

This module implements a two-stage parsing pipeline:

1. **Preprocessing**: comments are blanked out and newlines that
   logically terminate a statement get a `;` inserted in front of them,
   so the grammar can require explicit separators. Strings are respected
   so that quotes and comment markers inside them are left alone. Every
   newline is kept, which keeps token line and column numbers in sync with
   the original source.

2. **Parsing**: the preprocessed source is fed into a Lark LALR parser.
   The resulting parse tree is transformed into the dataclass AST defined
   in `sunbird.ast` by `ASTTransformer`.

`parse_program` is the public entry point. Syntax errors are collected as
plain-text messages and raised together as a `ParseError`.
"""

from __future__ import annotations

from typing import List, Optional

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken, VisitError

from .ast import (
    ArrayLiteral, ArrayType, AssignExpression, BlockStatement, BooleanLiteral, BreakStatement,
    CallExpression, CompoundAssignExpression, ContinueStatement, ExportStatement, ExpressionStatement,
    FloatLiteral, ForInStatement, ForStatement, FunctionLiteral, FunctionType, HashLiteral, HashType,
    Identifier, IfExpression, ImportStatement, IndexExpression, InfixExpression, IntegerLiteral,
    NullLiteral, OptionalType, Parameter, PrefixExpression, Program, PropertyExpression,
    RangeExpression, ReturnStatement, SimpleType, StringLiteral, TryCatchStatement, TypeAnnotation,
    VarDeclaration, WhileStatement,
)
from .errors import ParseError
from .types import INT_MAX


# A newline after one of these words never ends the statement.
CONTINUATION_WORDS = {
    'else', 'try', 'catch', 'finally', 'if', 'while', 'for', 'in',
    'let', 'const', 'func', 'import', 'as', 'export',
}
# A line starting with one of these words continues the previous one.
LEADING_CONTINUATION_WORDS = {'else', 'catch', 'finally'}
CONTINUATION_CHARS = set('}.)],{|&')


def _is_word_char(c: str) -> bool:
    return c.isalnum() or c == '_'


def _strip_comments(source: str) -> str:
    """Replace comments by spaces, keeping newlines and string contents intact."""
    out: List[str] = []
    i = 0
    n = len(source)
    quote: Optional[str] = None
    while i < n:
        c = source[i]
        if quote:
            out.append(c)
            if c == '\\' and i + 1 < n:
                out.append(source[i + 1])
                i += 2
                continue
            if c == quote:
                quote = None
            i += 1
            continue
        if c in '"\'':
            quote = c
            out.append(c)
            i += 1
            continue
        if c == '/' and i + 1 < n and source[i + 1] == '/':
            while i < n and source[i] != '\n':
                out.append(' ')
                i += 1
            continue
        if c == '/' and i + 1 < n and source[i + 1] == '*':
            end = source.find('*/', i + 2)
            end = n if end == -1 else end + 2
            out.extend('\n' if ch == '\n' else ' ' for ch in source[i:end])
            i = end
            continue
        out.append(c)
        i += 1
    return ''.join(out)


def preprocess(source: str) -> str:
    """Insert `;` at newlines that end a statement.

    A newline ends a statement when it is not nested inside `(` or `[`,
    the line ends with something that can close an expression (a word,
    number, string or closing bracket) that is not a keyword expecting
    more input, and the next line does not start with something that
    continues the expression (`.method()`, `|>`, `else`, ...).
    """
    text = _strip_comments(source)
    result: List[str] = []
    stack: List[str] = []
    n = len(text)
    i = 0
    quote: Optional[str] = None
    while i < n:
        c = text[i]
        if quote:
            result.append(c)
            if c == '\\' and i + 1 < n:
                result.append(text[i + 1])
                i += 2
                continue
            if c == quote:
                quote = None
            i += 1
            continue
        if c in '"\'':
            quote = c
        elif c in '([{':
            stack.append(c)
        elif c in ')]}':
            if stack:
                stack.pop()
        elif c == '\n' and (not stack or stack[-1] == '{') and _ends_statement(result, text, i + 1):
            result.append(';')
        result.append(c)
        i += 1
    return ''.join(result)


def _ends_statement(result: List[str], text: str, next_pos: int) -> bool:
    j = len(result) - 1
    while j >= 0 and result[j] in ' \t\r':
        j -= 1
    if j < 0:
        return False
    prev = result[j]
    if not (_is_word_char(prev) or prev in '"\')]}'):
        return False
    if _is_word_char(prev):
        k = j
        while k >= 0 and _is_word_char(result[k]):
            k -= 1
        if ''.join(result[k + 1:j + 1]) in CONTINUATION_WORDS:
            return False

    k = next_pos
    while k < len(text) and text[k].isspace():
        k += 1
    if k >= len(text):
        return True
    if text[k] in CONTINUATION_CHARS and not text.startswith('..', k):
        return False
    m = k
    while m < len(text) and _is_word_char(text[m]):
        m += 1
    return text[k:m] not in LEADING_CONTINUATION_WORDS


SUNBIRD_GRAMMAR = r"""
    ?start: program

    program: _SEP* (statement _SEP+)* statement?
    block: "{" _SEP* (statement _SEP+)* statement? "}"

    // Statements
    ?statement: let_decl
              | const_decl
              | func_decl
              | return_stmt
              | break_stmt
              | continue_stmt
              | for_stmt
              | for_in_stmt
              | while_stmt
              | try_stmt
              | import_stmt
              | export_stmt
              | expression -> expr_stmt

    let_decl: "let" NAME [":" type_ann] "=" expression
    const_decl: "const" NAME [":" type_ann] "=" expression
    func_decl: "func" NAME "(" [params] ")" [":" type_ann] block
    return_stmt: "return" [expression]
    break_stmt: "break"
    continue_stmt: "continue"
    for_stmt: "for" for_init _SEP for_cond _SEP expression block
    for_init: [let_decl | expression]
    for_cond: [expression]
    for_in_stmt: "for" NAME "in" expression block
    while_stmt: "while" expression block
    try_stmt: "try" block "catch" NAME block ["finally" block]
    import_stmt: "import" STRING ["as" NAME]
    export_stmt: "export" (let_decl | const_decl | func_decl | NAME)

    // Expressions, lowest precedence first
    ?expression: assignment

    ?assignment: pipe
               | postfix "=" assignment -> assign
               | postfix COMPOUND_ASSIGN assignment -> compound_assign

    ?pipe: logical (PIPE logical)*
    ?logical: equality ((AND | OR) equality)*
    ?equality: comparison ((EQ | NEQ) comparison)*
    ?comparison: range_expr ((LT | GT | LE | GE) range_expr)*
    ?range_expr: additive
               | additive DOTDOT additive [":" additive] -> range
    ?additive: multiplicative ((PLUS | MINUS) multiplicative)*
    ?multiplicative: unary ((STAR | SLASH | PERCENT) unary)*
    ?unary: (BANG | MINUS) unary -> prefix
          | postfix
    ?postfix: primary
            | postfix "(" [args] ")" -> call
            | postfix "[" expression "]" -> index
            | postfix "." NAME -> property

    ?primary: INT -> int_lit
            | FLOAT -> float_lit
            | STRING -> string_lit
            | "true" -> true_lit
            | "false" -> false_lit
            | "null" -> null_lit
            | NAME -> identifier
            | "(" expression ")"
            | array
            | hash
            | if_expr
            | func_lit

    array: "[" [expression ("," expression)* [","]] "]"
    hash: "{" [pair ("," pair)* [","]] "}"
    pair: hash_key ":" expression
    ?hash_key: NAME -> name_key
             | STRING -> string_key
             | INT -> int_key
             | "[" expression "]"

    if_expr: "if" expression block ["else" (block | if_expr)]
    func_lit: "func" "(" [params] ")" [":" type_ann] block
    params: param ("," param)* [","]
    param: NAME [":" type_ann]
    args: expression ("," expression)* [","]

    // Type annotations: Int, Float, String, Bool, Void, Range, Array, Array<T>, Hash, Func, T?
    type_ann: NAME [LT type_ann GT] [QMARK]

    // Tokens
    NAME: /[A-Za-z_][A-Za-z0-9_]*/
    FLOAT.2: /\d[\d_]*\.\d[\d_]*/
    INT: /\d[\d_]*/
    STRING: /"(?:[^"\\]|\\[\s\S])*"/ | /'(?:[^'\\]|\\[\s\S])*'/
    COMPOUND_ASSIGN: /[-+*\/%]=/
    PIPE: "|>"
    AND: "&&"
    OR: "||"
    EQ: "=="
    NEQ: "!="
    LE: "<="
    GE: ">="
    LT: "<"
    GT: ">"
    DOTDOT: ".."
    PLUS: "+"
    MINUS: "-"
    STAR: "*"
    SLASH: "/"
    PERCENT: "%"
    BANG: "!"
    QMARK: "?"
    _SEP: ";"

    %import common.WS
    %ignore WS
"""


SUNBIRD_PARSER = Lark(
    SUNBIRD_GRAMMAR,
    parser='lalr',
    propagate_positions=True,
    maybe_placeholders=False,
    lexer='basic',
)


ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"', "'": "'", '0': '\0'}


def unescape(token: Token) -> str:
    """Decode a quoted STRING token."""
    raw = token.value[1:-1]
    out: List[str] = []
    i = 0
    while i < len(raw):
        c = raw[i]
        if c == '\\':
            nxt = raw[i + 1]
            if nxt not in ESCAPES:
                raise ParseError([
                    f"SyntaxError: invalid escape sequence: \\{nxt} at line {token.line}, col {token.column}"
                ])
            out.append(ESCAPES[nxt])
            i += 2
            continue
        out.append(c)
        i += 1
    return ''.join(out)


def _pos(meta) -> dict:
    return {'line': getattr(meta, 'line', 0), 'col': getattr(meta, 'column', 0)}


def _tok_pos(token: Token) -> dict:
    return {'line': token.line or 0, 'col': token.column or 0}


def _find(children, cls):
    for c in children:
        if isinstance(c, cls):
            return c
    return None


@v_args(meta=True)
class ASTTransformer(Transformer):
    """Transforms the raw parse tree into an AST."""

    def program(self, meta, children):
        return Program(list(children), **_pos(meta))

    def block(self, meta, children):
        return BlockStatement(list(children), **_pos(meta))

    # Statements
    def expr_stmt(self, meta, children):
        return ExpressionStatement(children[0], **_pos(meta))

    def let_decl(self, meta, children):
        return VarDeclaration(str(children[0]), children[-1], _find(children[1:-1], TypeAnnotation),
                              is_const=False, **_pos(meta))

    def const_decl(self, meta, children):
        return VarDeclaration(str(children[0]), children[-1], _find(children[1:-1], TypeAnnotation),
                              is_const=True, **_pos(meta))

    def func_decl(self, meta, children):
        name = str(children[0])
        params = _find(children[1:-1], list) or []
        fn = FunctionLiteral(params, children[-1], _find(children[1:-1], TypeAnnotation), name=name, **_pos(meta))
        return VarDeclaration(name, fn, is_const=False, **_pos(meta))

    def return_stmt(self, meta, children):
        return ReturnStatement(children[0] if children else None, **_pos(meta))

    def break_stmt(self, meta, children):
        return BreakStatement(**_pos(meta))

    def continue_stmt(self, meta, children):
        return ContinueStatement(**_pos(meta))

    def for_stmt(self, meta, children):
        init, condition, update, body = children
        return ForStatement(init, condition, update, body, **_pos(meta))

    def for_init(self, meta, children):
        return children[0] if children else None

    for_cond = for_init

    def for_in_stmt(self, meta, children):
        return ForInStatement(str(children[0]), children[1], children[2], **_pos(meta))

    def while_stmt(self, meta, children):
        return WhileStatement(children[0], children[1], **_pos(meta))

    def try_stmt(self, meta, children):
        finally_block = children[3] if len(children) > 3 else None
        return TryCatchStatement(children[0], str(children[1]), children[2], finally_block, **_pos(meta))

    def import_stmt(self, meta, children):
        alias = str(children[1]) if len(children) > 1 else None
        return ImportStatement(unescape(children[0]), alias, **_pos(meta))

    def export_stmt(self, meta, children):
        target = children[0]
        if isinstance(target, VarDeclaration):
            return ExportStatement(declaration=target, **_pos(meta))
        return ExportStatement(name=str(target), **_pos(meta))

    # Expressions
    def assign(self, meta, children):
        return AssignExpression(children[0], children[1], **_pos(meta))

    def compound_assign(self, meta, children):
        target, op, value = children
        return CompoundAssignExpression(target, op.value[0], value, **_tok_pos(op))

    def binary(self, meta, children):
        left = children[0]
        for i in range(1, len(children), 2):
            op = children[i]
            left = InfixExpression(left, str(op), children[i + 1], **_tok_pos(op))
        return left

    pipe = binary
    logical = binary
    equality = binary
    comparison = binary
    additive = binary
    multiplicative = binary

    def range(self, meta, children):
        step = children[3] if len(children) > 3 else None
        return RangeExpression(children[0], children[2], step, **_tok_pos(children[1]))

    def prefix(self, meta, children):
        op, right = children
        return PrefixExpression(str(op), right, **_tok_pos(op))

    def call(self, meta, children):
        args = children[1] if len(children) > 1 else []
        return CallExpression(children[0], args, **_pos(meta))

    def index(self, meta, children):
        return IndexExpression(children[0], children[1], **_pos(meta))

    def property(self, meta, children):
        return PropertyExpression(children[0], str(children[1]), **_tok_pos(children[1]))

    def args(self, meta, children):
        return list(children)

    def int_lit(self, meta, children):
        token = children[0]
        value = int(token.value.replace('_', ''))
        if value > INT_MAX:
            raise ParseError([
                f"SyntaxError: could not parse {token.value} as integer at line {token.line}, col {token.column}"
            ])
        return IntegerLiteral(value, **_tok_pos(token))

    def float_lit(self, meta, children):
        token = children[0]
        return FloatLiteral(float(token.value.replace('_', '')), **_tok_pos(token))

    def string_lit(self, meta, children):
        return StringLiteral(unescape(children[0]), **_tok_pos(children[0]))

    def true_lit(self, meta, children):
        return BooleanLiteral(True, **_pos(meta))

    def false_lit(self, meta, children):
        return BooleanLiteral(False, **_pos(meta))

    def null_lit(self, meta, children):
        return NullLiteral(**_pos(meta))

    def identifier(self, meta, children):
        return Identifier(str(children[0]), **_tok_pos(children[0]))

    def array(self, meta, children):
        return ArrayLiteral(list(children), **_pos(meta))

    def hash(self, meta, children):
        return HashLiteral(list(children), **_pos(meta))

    def pair(self, meta, children):
        return (children[0], children[1])

    def name_key(self, meta, children):
        return StringLiteral(str(children[0]), **_tok_pos(children[0]))

    string_key = string_lit
    int_key = int_lit

    def if_expr(self, meta, children):
        alternative = children[2] if len(children) > 2 else None
        if isinstance(alternative, IfExpression):
            alternative = BlockStatement([ExpressionStatement(alternative, line=alternative.line, col=alternative.col)],
                                         line=alternative.line, col=alternative.col)
        return IfExpression(children[0], children[1], alternative, **_pos(meta))

    def func_lit(self, meta, children):
        params = _find(children[:-1], list) or []
        return FunctionLiteral(params, children[-1], _find(children[:-1], TypeAnnotation), **_pos(meta))

    def params(self, meta, children):
        return list(children)

    def param(self, meta, children):
        annotation = children[1] if len(children) > 1 else None
        return Parameter(str(children[0]), annotation, **_tok_pos(children[0]))

    def type_ann(self, meta, children):
        name = children[0]
        inner = _find(children[1:], TypeAnnotation)
        optional = any(isinstance(c, Token) and c.type == 'QMARK' for c in children)
        lowered = name.value.lower()
        if lowered == 'array':
            base: TypeAnnotation = ArrayType(inner, **_tok_pos(name))
        elif inner is not None:
            raise ParseError([
                f"SyntaxError: type {name.value} does not take a parameter at line {name.line}, col {name.column}"
            ])
        elif lowered == 'hash':
            base = HashType(**_tok_pos(name))
        elif lowered in ('func', 'function'):
            base = FunctionType(**_tok_pos(name))
        else:
            base = SimpleType(name.value, **_tok_pos(name))
        if optional:
            return OptionalType(base, **_tok_pos(name))
        return base


def describe_error(e: UnexpectedInput) -> str:
    if isinstance(e, UnexpectedCharacters):
        return f"SyntaxError: unexpected character {e.char!r} at line {e.line}, col {e.column}"
    if isinstance(e, UnexpectedEOF) or (isinstance(e, UnexpectedToken) and e.token.type == '$END'):
        return "SyntaxError: unexpected end of input"
    if isinstance(e, UnexpectedToken):
        value = e.token.value
        if e.token.type == '_SEP':
            value = 'end of statement' if value == ';' else value
        expected = ', '.join(sorted(e.expected)) if e.expected else ''
        msg = f"SyntaxError: unexpected {value!r} at line {e.line}, col {e.column}"
        if expected:
            msg += f" (expected one of {expected})"
        return msg
    return f"SyntaxError: {e}"


MAX_PARSE_ERRORS = 10


def parse_program(source: str) -> Program:
    """Parse Sunbird source code into an AST Program.

    Raises `ParseError` carrying every collected syntax error message.
    """
    errors: List[str] = []

    def on_error(e: UnexpectedInput) -> bool:
        errors.append(describe_error(e))
        # skipping the offending token lets the parser report later errors too
        token = getattr(e, 'token', None)
        return len(errors) < MAX_PARSE_ERRORS and not (token is not None and token.type == '$END')

    try:
        tree = SUNBIRD_PARSER.parse(preprocess(source), on_error=on_error)
    except UnexpectedInput as e:
        message = describe_error(e)
        if message not in errors:
            errors.append(message)
        raise ParseError(errors) from None
    if errors:
        raise ParseError(errors)
    try:
        return ASTTransformer().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, ParseError):
            raise e.orig_exc from None
        raise
