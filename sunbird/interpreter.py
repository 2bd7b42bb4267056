"""Tree-walking evaluator for Sunbird.

`Interpreter.eval` is the single entry point: it dispatches on the AST
node class and returns a runtime `Value`. Control flow travels through
the same return channel as ordinary results: `ReturnValue`, `BREAK`,
`CONTINUE` and propagating `ErrorVal`s are handed back unchanged by every
composite evaluation until the construct that consumes them (a function
call, a loop, or `try`/`catch`) is reached.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .ast import (
    ArrayLiteral, AssignExpression, BlockStatement, BooleanLiteral, BreakStatement, CallExpression,
    CompoundAssignExpression, ContinueStatement, ExportStatement, ExpressionStatement, FloatLiteral,
    ForInStatement, ForStatement, FunctionLiteral, HashLiteral, Identifier, IfExpression,
    ImportStatement, IndexExpression, InfixExpression, IntegerLiteral, Node, NullLiteral,
    PrefixExpression, Program, PropertyExpression, RangeExpression, ReturnStatement, StringLiteral,
    TryCatchStatement, VarDeclaration, WhileStatement,
)
from .builtin_function import CallContext
from .builtins import BUILTINS
from .environment import Environment
from .errors import (
    ErrorCode, argument_error, constant_reassignment_error, division_by_zero_error, expect_type,
    import_error, index_not_supported_error, index_out_of_bounds_error, invalid_assignment_error,
    new_error, not_callable_error, property_access_error, runtime_error, type_error,
    type_mismatch_error, undefined_variable_error, unknown_operator_error,
    unknown_prefix_operator_error, unusable_as_hash_key_error, variable_reassignment_error,
)
from .modules import DEFAULT_MODULE_CACHE, ModuleCache, ModuleLoadError, ModuleNotFound
from .parser import parse_program
from .typecheck import check_type
from .types import (
    BREAK, CONTINUE, FALSE, NULL, TRUE, ArrayVal, BreakVal, BuiltinVal, ContinueVal, ErrorVal,
    FloatVal, FunctionVal, HashVal, IntVal, ModuleVal, RangeVal, ReturnValue, StringVal, Value,
    ValueKind, hash_key, is_error, is_hashable, is_truthy, native_bool, new_int, to_text,
    values_equal,
)


CONTROL_FLOW = (ReturnValue, BreakVal, ContinueVal)


def _stops_block(value: Value) -> bool:
    return isinstance(value, CONTROL_FLOW) or is_error(value)


def _int_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


class Interpreter:
    """Core interpreter that evaluates the Sunbird AST."""
    def __init__(self, debug_level: int = 0, debug_file: Optional[str] = 'debug.txt',
                 module_cache: Optional[ModuleCache] = None, base_dir: Optional[Path] = None,
                 argv: Optional[List[str]] = None):
        self.global_env = Environment()
        self.module_cache = module_cache if module_cache is not None else DEFAULT_MODULE_CACHE
        self.base_dir = base_dir if base_dir is not None else Path.cwd()
        self.argv = list(argv or [])
        self.debug_level = debug_level
        self.debug_fp = open(debug_file, 'w', encoding='utf-8') if debug_level > 0 and debug_file else None

    def debug(self, msg: str, level: int = 1):
        if self.debug_level >= level:
            if self.debug_fp:
                self.debug_fp.write(msg + '\n')
                self.debug_fp.flush()
            else:
                print(msg)

    def close(self):
        if self.debug_fp:
            self.debug_fp.close()
            self.debug_fp = None

    # Public API
    def run(self, program: Program, env: Optional[Environment] = None) -> Value:
        if env is None:
            env = self.global_env
        return self.eval(program, env)

    def eval_module(self, program: Program, env: Environment, base_dir: Path) -> Value:
        previous = self.base_dir
        self.base_dir = base_dir
        try:
            return self.eval(program, env)
        finally:
            self.base_dir = previous

    def eval(self, node: Node, env: Environment) -> Value:
        if isinstance(node, Program):
            return self.eval_program(node, env)
        if isinstance(node, ExpressionStatement):
            return self.eval(node.expression, env)
        if isinstance(node, BlockStatement):
            return self.eval_statements(node.statements, env.enclosed())
        if isinstance(node, VarDeclaration):
            return self.eval_var_declaration(node, env)
        if isinstance(node, ReturnStatement):
            if node.value is None:
                return ReturnValue(NULL)
            value = self.eval(node.value, env)
            if is_error(value):
                return value
            return ReturnValue(value)
        if isinstance(node, BreakStatement):
            return BREAK
        if isinstance(node, ContinueStatement):
            return CONTINUE
        if isinstance(node, IfExpression):
            return self.eval_if(node, env)
        if isinstance(node, WhileStatement):
            return self.eval_while(node, env)
        if isinstance(node, ForStatement):
            return self.eval_for(node, env)
        if isinstance(node, ForInStatement):
            return self.eval_for_in(node, env)
        if isinstance(node, TryCatchStatement):
            return self.eval_try(node, env)
        if isinstance(node, ImportStatement):
            return self.eval_import(node, env)
        if isinstance(node, ExportStatement):
            return self.eval_export(node, env)

        # Expressions
        if isinstance(node, IntegerLiteral):
            return IntVal(node.value)
        if isinstance(node, FloatLiteral):
            return FloatVal(node.value)
        if isinstance(node, StringLiteral):
            return StringVal(node.value)
        if isinstance(node, BooleanLiteral):
            return native_bool(node.value)
        if isinstance(node, NullLiteral):
            return NULL
        if isinstance(node, Identifier):
            return self.eval_identifier(node, env)
        if isinstance(node, ArrayLiteral):
            elements = self.eval_expressions(node.elements, env)
            if isinstance(elements, ErrorVal):
                return elements
            return ArrayVal(elements)
        if isinstance(node, HashLiteral):
            return self.eval_hash_literal(node, env)
        if isinstance(node, FunctionLiteral):
            return FunctionVal(node.parameters, node.body, env, node.return_type, node.name)
        if isinstance(node, PrefixExpression):
            right = self.eval(node.right, env)
            if is_error(right):
                return right
            return self.eval_prefix(node.operator, right, node.line, node.col)
        if isinstance(node, InfixExpression):
            return self.eval_infix_expression(node, env)
        if isinstance(node, CallExpression):
            return self.eval_call(node, env)
        if isinstance(node, IndexExpression):
            left = self.eval(node.left, env)
            if is_error(left):
                return left
            index = self.eval(node.index, env)
            if is_error(index):
                return index
            return self.eval_index(left, index, node.line, node.col)
        if isinstance(node, PropertyExpression):
            obj = self.eval(node.object, env)
            if is_error(obj):
                return obj
            return self.eval_property(obj, node.property, node.line, node.col)
        if isinstance(node, AssignExpression):
            return self.eval_assign(node, env)
        if isinstance(node, CompoundAssignExpression):
            return self.eval_compound_assign(node, env)
        if isinstance(node, RangeExpression):
            return self.eval_range(node, env)
        return new_error(ErrorCode.FEATURE_NOT_IMPLEMENTED_ERROR, node.line, node.col,
                         "%s", type(node).__name__)

    # Statements
    def eval_program(self, program: Program, env: Environment) -> Value:
        result: Value = NULL
        for stmt in program.statements:
            result = self.eval(stmt, env)
            if isinstance(result, ReturnValue):
                return result.value
            if is_error(result):
                return result
            if isinstance(result, (BreakVal, ContinueVal)):
                return runtime_error(stmt.line, stmt.col, "%s outside of loop", result.inspect())
        return result

    def eval_statements(self, statements: List[Node], env: Environment) -> Value:
        result: Value = NULL
        for stmt in statements:
            result = self.eval(stmt, env)
            if _stops_block(result):
                return result
        return result

    def eval_var_declaration(self, node: VarDeclaration, env: Environment) -> Value:
        if env.has(node.name):
            return variable_reassignment_error(node.line, node.col, node.name)
        value = self.eval(node.value, env)
        if is_error(value):
            return value
        err = check_type(node.type_annotation, value, node.line, node.col)
        if err is not None:
            return err
        if node.is_const:
            env.set_const(node.name, value, node.type_annotation)
        else:
            env.set(node.name, value, node.type_annotation)
        self.debug(f"declare {node.name}: {value.kind} = {value.inspect()}", level=2)
        return NULL

    def eval_if(self, node: IfExpression, env: Environment) -> Value:
        condition = self.eval(node.condition, env)
        if is_error(condition):
            return condition
        self.debug(f"if {node.condition} -> {is_truthy(condition)}", level=3)
        if is_truthy(condition):
            return self.eval(node.consequence, env)
        if node.alternative is not None:
            return self.eval(node.alternative, env)
        return NULL

    def eval_while(self, node: WhileStatement, env: Environment) -> Value:
        while True:
            condition = self.eval(node.condition, env)
            if is_error(condition):
                return condition
            self.debug(f"while {node.condition} -> {is_truthy(condition)}", level=3)
            if not is_truthy(condition):
                break
            result = self.eval(node.body, env)
            if isinstance(result, ReturnValue) or is_error(result):
                return result
            if result is BREAK:
                break
        return NULL

    def eval_for(self, node: ForStatement, env: Environment) -> Value:
        loop_env = env.enclosed()
        if node.init is not None:
            init = self.eval(node.init, loop_env)
            if is_error(init):
                return init
        while True:
            if node.condition is not None:
                condition = self.eval(node.condition, loop_env)
                if is_error(condition):
                    return condition
                self.debug(f"for {node.condition} -> {is_truthy(condition)}", level=3)
                if not is_truthy(condition):
                    break
            result = self.eval(node.body, loop_env)
            if isinstance(result, ReturnValue) or is_error(result):
                return result
            if result is BREAK:
                break
            if node.update is not None:
                update = self.eval(node.update, loop_env)
                if is_error(update):
                    return update
        return NULL

    def eval_for_in(self, node: ForInStatement, env: Environment) -> Value:
        iterable = self.eval(node.iterable, env)
        if is_error(iterable):
            return iterable
        if isinstance(iterable, RangeVal):
            items = (IntVal(i) for i in iterable)
        elif isinstance(iterable, ArrayVal):
            items = iter(list(iterable.elements))
        elif isinstance(iterable, StringVal):
            items = (StringVal(c) for c in iterable.value)
        else:
            return type_error(node.line, node.col, "cannot iterate over %s", iterable.kind)
        for item in items:
            loop_env = env.enclosed()
            loop_env.set(node.variable, item)
            result = self.eval(node.body, loop_env)
            if isinstance(result, ReturnValue) or is_error(result):
                return result
            if result is BREAK:
                break
        return NULL

    def eval_try(self, node: TryCatchStatement, env: Environment) -> Value:
        result = self.eval(node.try_block, env)
        if is_error(result):
            self.debug(f"caught {result.inspect()}", level=2)
            catch_env = env.enclosed()
            catch_env.set(node.param, result.caught())
            result = self.eval(node.catch_block, catch_env)
        if node.finally_block is not None:
            final = self.eval(node.finally_block, env)
            if _stops_block(final):
                return final
        return result

    def eval_import(self, node: ImportStatement, env: Environment) -> Value:
        self.debug(f"import {node.path}")
        try:
            module = self.module_cache.load(node.path, self.base_dir, self)
        except (ModuleNotFound, ModuleLoadError) as e:
            return import_error(node.line, node.col, str(e))
        name = node.alias or Path(node.path).stem
        env.set_const(name, module)
        return NULL

    def eval_export(self, node: ExportStatement, env: Environment) -> Value:
        if node.declaration is not None:
            result = self.eval(node.declaration, env)
            if is_error(result):
                return result
            env.mark_as_exported(node.declaration.name)
            return NULL
        if not env.has(node.name):
            return undefined_variable_error(node.line, node.col, node.name)
        env.mark_as_exported(node.name)
        return NULL

    # Expressions
    def eval_identifier(self, node: Identifier, env: Environment) -> Value:
        value, found = env.get(node.value)
        if found:
            return value
        builtin = BUILTINS.get(node.value)
        if builtin is not None:
            return builtin
        return undefined_variable_error(node.line, node.col, node.value)

    def eval_expressions(self, nodes: List[Node], env: Environment):
        """Evaluate left to right; returns a list of values or the first error."""
        values: List[Value] = []
        for n in nodes:
            value = self.eval(n, env)
            if is_error(value):
                return value
            values.append(value)
        return values

    def eval_hash_literal(self, node: HashLiteral, env: Environment) -> Value:
        result = HashVal()
        for key_node, value_node in node.pairs:
            key = self.eval(key_node, env)
            if is_error(key):
                return key
            if not is_hashable(key):
                return unusable_as_hash_key_error(key_node.line, key_node.col, key)
            value = self.eval(value_node, env)
            if is_error(value):
                return value
            result.put(key, value)
        return result

    def eval_prefix(self, operator: str, right: Value, line: int, col: int) -> Value:
        if operator == '!':
            return native_bool(not is_truthy(right))
        if operator == '-':
            if isinstance(right, IntVal):
                return new_int(-right.value)
            if isinstance(right, FloatVal):
                return FloatVal(-right.value)
        return unknown_prefix_operator_error(line, col, operator, right)

    def eval_infix_expression(self, node: InfixExpression, env: Environment) -> Value:
        op = node.operator
        left = self.eval(node.left, env)
        if is_error(left):
            return left
        if op == '&&' and not is_truthy(left):
            return FALSE
        if op == '||' and is_truthy(left):
            return TRUE
        right = self.eval(node.right, env)
        if is_error(right):
            return right
        if op in ('&&', '||'):
            return native_bool(is_truthy(right))
        if op == '|>':
            if not isinstance(right, (FunctionVal, BuiltinVal)):
                return new_error(ErrorCode.NOT_CALLABLE_ERROR, node.line, node.col,
                                 "right side of pipe operator is not a function: %s", right.kind)
            return self.apply_function(right, [left], node.line, node.col)
        return self.eval_infix(op, left, right, node.line, node.col)

    def eval_infix(self, op: str, left: Value, right: Value, line: int, col: int) -> Value:
        if op == '==':
            return native_bool(values_equal(left, right))
        if op == '!=':
            return native_bool(not values_equal(left, right))
        if isinstance(left, IntVal) and isinstance(right, IntVal):
            return self.eval_integer_infix(op, left, right, line, col)
        if isinstance(left, StringVal) or isinstance(right, StringVal):
            if op != '+':
                return unknown_operator_error(line, col, left, op, right)
            return StringVal(to_text(left) + to_text(right))
        numeric = (ValueKind.INTEGER, ValueKind.FLOAT)
        if ValueKind.FLOAT in (left.kind, right.kind) and left.kind in numeric and right.kind in numeric:
            return self.eval_float_infix(op, float(left.value), float(right.value), line, col)
        if left.kind is not right.kind:
            return type_mismatch_error(line, col, left.kind, op, right.kind)
        return unknown_operator_error(line, col, left, op, right)

    def eval_integer_infix(self, op: str, left: IntVal, right: IntVal, line: int, col: int) -> Value:
        a, b = left.value, right.value
        if op == '+':
            return new_int(a + b)
        if op == '-':
            return new_int(a - b)
        if op == '*':
            return new_int(a * b)
        if op == '/':
            if b == 0:
                return division_by_zero_error(line, col)
            return new_int(_int_div(a, b))
        if op == '%':
            if b == 0:
                return division_by_zero_error(line, col)
            return new_int(a - b * _int_div(a, b))
        if op == '<':
            return native_bool(a < b)
        if op == '>':
            return native_bool(a > b)
        if op == '<=':
            return native_bool(a <= b)
        if op == '>=':
            return native_bool(a >= b)
        return unknown_operator_error(line, col, left, op, right)

    def eval_float_infix(self, op: str, a: float, b: float, line: int, col: int) -> Value:
        if op == '+':
            return FloatVal(a + b)
        if op == '-':
            return FloatVal(a - b)
        if op == '*':
            return FloatVal(a * b)
        if op == '/':
            if b == 0.0:
                return division_by_zero_error(line, col)
            return FloatVal(a / b)
        if op == '<':
            return native_bool(a < b)
        if op == '>':
            return native_bool(a > b)
        if op == '<=':
            return native_bool(a <= b)
        if op == '>=':
            return native_bool(a >= b)
        return NULL

    def eval_call(self, node: CallExpression, env: Environment) -> Value:
        target = node.function
        receiver: Optional[Value] = None
        if isinstance(target, PropertyExpression):
            receiver = self.eval(target.object, env)
            if is_error(receiver):
                return receiver
            fn = self.eval_property(receiver, target.property, target.line, target.col)
        else:
            fn = self.eval(target, env)
        if is_error(fn):
            return fn
        args = self.eval_expressions(node.arguments, env)
        if isinstance(args, ErrorVal):
            return args
        if isinstance(receiver, HashVal) and isinstance(fn, FunctionVal):
            bound_env = fn.env.enclosed()
            bound_env.set('this', receiver)
            fn = FunctionVal(fn.parameters, fn.body, bound_env, fn.return_type, fn.name)
        return self.apply_function(fn, args, node.line, node.col)

    def apply_function(self, fn: Value, args: List[Value], line: int = 0, col: int = 0) -> Value:
        if isinstance(fn, FunctionVal):
            if len(args) != len(fn.parameters):
                return argument_error(line, col, "expected %d arguments, got %d", len(fn.parameters), len(args))
            call_env = fn.env.enclosed()
            for param, arg in zip(fn.parameters, args):
                err = check_type(param.type_annotation, arg, line, col)
                if err is not None:
                    return err
                call_env.set(param.name, arg, param.type_annotation)
            self.debug(f"call {fn.name or '<anonymous>'}({', '.join(a.inspect() for a in args)})", level=2)
            result = self.eval(fn.body, call_env)
            if is_error(result):
                return result
            if isinstance(result, ReturnValue):
                result = result.value
            elif isinstance(result, (BreakVal, ContinueVal)):
                return runtime_error(line, col, "%s outside of loop", result.inspect())
            err = check_type(fn.return_type, result, line, col)
            if err is not None:
                return err
            return result
        if isinstance(fn, BuiltinVal):
            self.debug(f"call builtin {fn.name}", level=2)
            result = fn.fn(CallContext(line, col, self), *args)
            return NULL if result is None else result
        return not_callable_error(line, col, fn)

    def eval_index(self, left: Value, index: Value, line: int, col: int) -> Value:
        if isinstance(left, (ArrayVal, StringVal)):
            err = expect_type(line, col, index, ValueKind.INTEGER)
            if err is not None:
                return err
            items = left.elements if isinstance(left, ArrayVal) else left.value
            i = index.value + len(items) if index.value < 0 else index.value
            if not 0 <= i < len(items):
                return index_out_of_bounds_error(line, col, left, index.value)
            return items[i] if isinstance(left, ArrayVal) else StringVal(items[i])
        if isinstance(left, HashVal):
            if not is_hashable(index):
                return unusable_as_hash_key_error(line, col, index)
            value = left.lookup(hash_key(index))
            return NULL if value is None else value
        return index_not_supported_error(line, col, left)

    def eval_property(self, obj: Value, name: str, line: int, col: int) -> Value:
        if isinstance(obj, HashVal):
            value = obj.get(name)
            return NULL if value is None else value
        if isinstance(obj, ModuleVal):
            if name in obj.exports:
                return obj.exports[name]
            return undefined_variable_error(line, col, f"{obj.name}.{name}")
        return property_access_error(line, col, obj)

    def eval_range(self, node: RangeExpression, env: Environment) -> Value:
        bounds: List[int] = []
        for part in (node.start, node.end, node.step):
            if part is None:
                bounds.append(1)
                continue
            value = self.eval(part, env)
            if is_error(value):
                return value
            if not isinstance(value, IntVal):
                return type_error(node.line, node.col, "range bounds must be Integer, got %s", value.kind)
            bounds.append(value.value)
        start, end, step = bounds
        return RangeVal(start, end, step or 1)

    # Assignment
    def eval_assign(self, node: AssignExpression, env: Environment) -> Value:
        target = node.target
        if isinstance(target, Identifier):
            value = self.eval(node.value, env)
            if is_error(value):
                return value
            return self.assign_identifier(target.value, value, env, node.line, node.col)
        if isinstance(target, PropertyExpression):
            obj = self.eval(target.object, env)
            if is_error(obj):
                return obj
            value = self.eval(node.value, env)
            if is_error(value):
                return value
            return self.assign_property(obj, target.property, value, node.line, node.col)
        if isinstance(target, IndexExpression):
            obj = self.eval(target.left, env)
            if is_error(obj):
                return obj
            index = self.eval(target.index, env)
            if is_error(index):
                return index
            value = self.eval(node.value, env)
            if is_error(value):
                return value
            return self.assign_index(obj, index, value, node.line, node.col)
        return invalid_assignment_error(node.line, node.col, str(target))

    def eval_compound_assign(self, node: CompoundAssignExpression, env: Environment) -> Value:
        target = node.target
        if isinstance(target, Identifier):
            current = self.eval_identifier(target, env)
            if is_error(current):
                return current
            value = self._combine(node, current, env)
            if is_error(value):
                return value
            return self.assign_identifier(target.value, value, env, node.line, node.col)
        if isinstance(target, PropertyExpression):
            obj = self.eval(target.object, env)
            if is_error(obj):
                return obj
            current = self.eval_property(obj, target.property, node.line, node.col)
            if is_error(current):
                return current
            value = self._combine(node, current, env)
            if is_error(value):
                return value
            return self.assign_property(obj, target.property, value, node.line, node.col)
        if isinstance(target, IndexExpression):
            obj = self.eval(target.left, env)
            if is_error(obj):
                return obj
            index = self.eval(target.index, env)
            if is_error(index):
                return index
            current = self.eval_index(obj, index, node.line, node.col)
            if is_error(current):
                return current
            value = self._combine(node, current, env)
            if is_error(value):
                return value
            return self.assign_index(obj, index, value, node.line, node.col)
        return invalid_assignment_error(node.line, node.col, str(target))

    def _combine(self, node: CompoundAssignExpression, current: Value, env: Environment) -> Value:
        right = self.eval(node.value, env)
        if is_error(right):
            return right
        return self.eval_infix(node.operator, current, right, node.line, node.col)

    def assign_identifier(self, name: str, value: Value, env: Environment, line: int, col: int) -> Value:
        _, found = env.get(name)
        if not found:
            return undefined_variable_error(line, col, name)
        if env.is_const(name):
            return constant_reassignment_error(line, col, name)
        err = check_type(env.type_of(name), value, line, col)
        if err is not None:
            return err
        env.update(name, value)
        return value

    def assign_property(self, obj: Value, name: str, value: Value, line: int, col: int) -> Value:
        if isinstance(obj, ModuleVal):
            return constant_reassignment_error(line, col, f"{obj.name}.{name}")
        if not isinstance(obj, HashVal):
            return property_access_error(line, col, obj)
        obj.set(name, value)
        return value

    def assign_index(self, obj: Value, index: Value, value: Value, line: int, col: int) -> Value:
        if isinstance(obj, ArrayVal):
            err = expect_type(line, col, index, ValueKind.INTEGER)
            if err is not None:
                return err
            i = index.value + len(obj.elements) if index.value < 0 else index.value
            if not 0 <= i < len(obj.elements):
                return index_out_of_bounds_error(line, col, obj, index.value)
            obj.elements[i] = value
            return value
        if isinstance(obj, HashVal):
            if not is_hashable(index):
                return unusable_as_hash_key_error(line, col, index)
            obj.put(index, value)
            return value
        if isinstance(obj, ModuleVal):
            return constant_reassignment_error(line, col, f"{obj.name}[{index.inspect()}]")
        return index_not_supported_error(line, col, obj)


def run_program(source: str, debug_level: int = 0, env: Optional[Environment] = None) -> Value:
    """Convenience function to parse and evaluate a Sunbird program from a source string."""
    program = parse_program(source)
    interpreter = Interpreter(debug_level=debug_level)
    try:
        return interpreter.run(program, env)
    finally:
        interpreter.close()
