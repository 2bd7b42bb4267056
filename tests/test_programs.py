from pathlib import Path

from sunbird.interpreter import Interpreter
from sunbird.parser import parse_program

EXAMPLES = Path(__file__).resolve().parent.parent / 'examples'


def run_example(name: str):
    with open(EXAMPLES / name, 'r', encoding='utf-8') as f:
        source = f.read()
    ast = parse_program(source)
    interp = Interpreter(base_dir=EXAMPLES)
    return interp.run(ast)


def test_program_hello(capsys):
    run_example('hello.sb')
    out = capsys.readouterr().out.strip()
    assert out == 'Hello World!!'


def test_program_fibonacci(capsys):
    run_example('fibonacci.sb')
    out = capsys.readouterr().out.strip()
    assert out == '[0, 1, 1, 2, 3, 5, 8, 13, 21, 34]'


def test_program_closures(capsys):
    run_example('closures.sb')
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == ['count: 3', '15']


def test_program_errors(capsys):
    run_example('errors.sb')
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines[0] == 'checked 10 / 2'
    assert out_lines[1] == 'result: 5'
    # the caught error still carries the position of the failing division
    assert out_lines[2] == 'caught: DivisionByZeroError: division by zero (at line 3, col 18)'
    assert out_lines[3] == 'checked 1 / 0'
    assert out_lines[4] == 'result: -1'


def test_program_objects(capsys):
    run_example('objects.sb')
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == ['Rex says woof', 'Rex says grr', '["name", "sound"]']


def test_program_pipeline(capsys):
    run_example('pipeline.sb')
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == ['QUICK, BROWN', 'total: 15']
