"""CLI entry point for the Sunbird interpreter.

Usage:
    python -m sunbird [-v|-vv|-vvv] <program_file> [args...]
    python -m sunbird [-v...] --emit-ast <program_file>
    python -m sunbird [-v...] --ast <ast_json_file>
    python -m sunbird

Options:
  -v            Increase debug verbosity (can be repeated)
  --emit-ast    Parse the given .sb file and emit an AST JSON file
  --ast         Execute a previously emitted AST JSON file

Without a program file an interactive prompt is started; type `exit` to
leave it. Debug information is written to `debug.txt` in the current
directory when verbosity is greater than zero.
"""

import argparse
import json
import sys
from pathlib import Path

from .ast_json import ast_from_obj, ast_to_obj
from .environment import Environment
from .errors import ParseError
from .interpreter import Interpreter
from .parser import parse_program
from .types import NULL, is_error

PROMPT = '>> '
RECURSION_LIMIT = 10000


def print_parse_errors(e: ParseError) -> None:
    print("Parser errors:", file=sys.stderr)
    for msg in e.messages:
        print(f"\t{msg}", file=sys.stderr)


def read_source(path: Path) -> str:
    if not path.exists():
        print(f"Error: file {path} not found", file=sys.stderr)
        sys.exit(1)
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def execute(program, interpreter: Interpreter) -> int:
    try:
        result = interpreter.run(program)
    except RecursionError:
        print("Runtime error: maximum recursion depth exceeded", file=sys.stderr)
        return 1
    finally:
        interpreter.close()
    if is_error(result):
        print(result.inspect(), file=sys.stderr)
        return 1
    return 0


def repl(debug_level: int) -> None:
    interpreter = Interpreter(debug_level=debug_level)
    env = Environment()
    print("Sunbird REPL. Type `exit` to quit.")
    while True:
        try:
            line = input(PROMPT)
        except EOFError:
            print()
            break
        if line.strip() == 'exit':
            break
        if not line.strip():
            continue
        try:
            program = parse_program(line)
        except ParseError as e:
            print_parse_errors(e)
            continue
        try:
            result = interpreter.run(program, env)
        except RecursionError:
            print("Runtime error: maximum recursion depth exceeded", file=sys.stderr)
            continue
        if result is not NULL:
            print(result.inspect())
    interpreter.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog='sunbird', description="Sunbird language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--emit-ast', metavar='SB_FILE', help='emit AST JSON for the given .sb file')
    group.add_argument('--ast', metavar='AST_JSON_FILE', help='execute AST from a JSON file')
    parser.add_argument('program', nargs='?', help='Sunbird program file (.sb) to execute')
    parser.add_argument('args', nargs=argparse.REMAINDER, help='arguments passed to the program')
    args = parser.parse_args(argv)

    sys.setrecursionlimit(max(sys.getrecursionlimit(), RECURSION_LIMIT))

    # Emit AST mode
    if args.emit_ast:
        program_file = Path(args.emit_ast)
        try:
            ast_program = parse_program(read_source(program_file))
        except ParseError as e:
            print_parse_errors(e)
            sys.exit(1)
        out_path = program_file.with_name(program_file.name + '.ast.json')
        with open(out_path, 'w', encoding='utf-8') as out:
            json.dump(ast_to_obj(ast_program), out, ensure_ascii=False, indent=2)
        print(str(out_path))
        return

    # Execute from AST JSON
    if args.ast:
        ast_path = Path(args.ast)
        try:
            ast_program = ast_from_obj(json.loads(read_source(ast_path)))
        except (ValueError, TypeError) as e:
            print(f"Error: invalid AST file {ast_path}: {e}", file=sys.stderr)
            sys.exit(1)
        interpreter = Interpreter(debug_level=args.v, base_dir=ast_path.resolve().parent, argv=args.args)
        sys.exit(execute(ast_program, interpreter))

    if not args.program:
        repl(args.v)
        return

    program_file = Path(args.program)
    try:
        ast_program = parse_program(read_source(program_file))
    except ParseError as e:
        print_parse_errors(e)
        sys.exit(1)
    interpreter = Interpreter(debug_level=args.v, base_dir=program_file.resolve().parent, argv=args.args)
    sys.exit(execute(ast_program, interpreter))


if __name__ == '__main__':
    main()
