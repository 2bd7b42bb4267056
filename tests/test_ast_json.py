import json

import pytest

from sunbird.ast_json import ast_from_obj, ast_to_obj
from sunbird.interpreter import Interpreter
from sunbird.parser import parse_program

SOURCE = """
let scores: Array<Int> = [3, 1, 2]
const table = {name: "t", 1: [true, null], ["k" + 1]: 2.5}
func total(xs: Array<Int>?): Int {
    let sum = 0
    for x in xs { sum += x }
    return sum
}
let result = if total(scores) > 5 { "big" } else { "small" }
try {
    println(result, table.name, -total(scores), 0..3:1)
} catch e {
    println(e)
} finally {
    println("done")
}
"""


def test_round_trip_rebuilds_the_same_tree():
    program = parse_program(SOURCE)
    obj = json.loads(json.dumps(ast_to_obj(program)))
    assert obj['type'] == 'Program'
    assert ast_from_obj(obj) == program


def test_rebuilt_tree_runs(capsys):
    program = ast_from_obj(json.loads(json.dumps(ast_to_obj(parse_program(SOURCE)))))
    Interpreter().run(program)
    assert capsys.readouterr().out == 'big t -6 0..3\ndone\n'


def test_positions_are_kept():
    obj = ast_to_obj(parse_program('x + 1'))
    infix = obj['statements'][0]['expression']
    assert infix['type'] == 'InfixExpression'
    assert (infix['line'], infix['col']) == (1, 3)


def test_invalid_input():
    with pytest.raises(ValueError):
        ast_from_obj({'type': 'NoSuchNode'})
    with pytest.raises(ValueError):
        ast_from_obj({'statements': []})
    with pytest.raises(TypeError):
        ast_to_obj(object())
