from sunbird.interpreter import Interpreter
from sunbird.parser import parse_program
from sunbird.types import NULL, ErrorVal, RangeVal, is_error


def run(source):
    return Interpreter().run(parse_program(source))


def test_while_loop():
    source = """
let i = 0
let total = 0
while i < 5 {
    total += i
    i += 1
}
total
"""
    assert run(source).value == 10


def test_c_style_for_loop():
    source = """
let out = []
for let i = 0; i < 3; i += 1 {
    out = append(out, i * i)
}
out
"""
    assert run(source).inspect() == '[0, 1, 4]'


def test_for_loop_variable_is_scoped_to_the_loop():
    result = run('for let i = 0; i < 3; i += 1 { }\ni')
    assert result.message == 'UndefinedVariableError: i'


def test_for_loop_with_empty_init_and_condition():
    source = """
let n = 0
for ; ; n += 1 {
    if n == 4 { break }
}
n
"""
    assert run(source).value == 4


def test_break_and_continue():
    source = """
let out = []
for i in 0..10 {
    if i == 7 { break }
    if i % 2 == 0 { continue }
    out = append(out, i)
}
out
"""
    assert run(source).inspect() == '[1, 3, 5]'


def test_continue_in_while_loop():
    source = """
let i = 0
let odd = 0
while i < 6 {
    i += 1
    if i % 2 == 0 { continue }
    odd += 1
}
odd
"""
    assert run(source).value == 3


def test_ranges():
    result = run('1..10:3')
    assert isinstance(result, RangeVal)
    assert list(result) == [1, 4, 7]
    assert result.inspect() == '1..10:3'
    assert list(run('0..3')) == [0, 1, 2]
    assert list(run('5..0:-2')) == [5, 3, 1]
    assert list(run('0..3:0')) == [0, 1, 2]
    assert list(run('3..0')) == []
    result = run('0..1.5')
    assert result.message == 'TypeError: range bounds must be Integer, got Float'


def test_for_in_over_arrays_strings_and_ranges():
    source = """
let letters = ""
for c in "abc" { letters = c + letters }
let total = 0
for x in [1, 2, 3] { total += x }
for i in 0..3 { total += i }
letters + total
"""
    assert run(source).value == 'cba9'


def test_for_in_iterates_over_a_snapshot():
    source = """
let xs = [1, 2]
let seen = 0
for x in xs {
    xs = append(xs, x)
    seen += 1
}
seen
"""
    assert run(source).value == 2


def test_for_in_rejects_other_values():
    result = run('for x in 5 { }')
    assert result.message == 'TypeError: cannot iterate over Integer'


def test_try_catch_binds_the_error():
    source = """
let message = ""
try {
    let x = 1 / 0
} catch e {
    message = string(e)
}
message
"""
    assert run(source).value.startswith('DivisionByZeroError: division by zero')


def test_caught_error_no_longer_propagates():
    source = """
let saved = null
try { missing_name } catch e { saved = e }
saved
"""
    result = run(source)
    assert isinstance(result, ErrorVal)
    assert not result.propagating
    assert result.code == 'UndefinedVariableError'


def test_finally_always_runs(capsys):
    source = """
try { println("try") } catch e { println("catch") } finally { println("finally") }
try { 1 / 0 } catch e { println("catch") } finally { println("finally") }
"""
    run(source)
    assert capsys.readouterr().out.split() == ['try', 'finally', 'catch', 'finally']


def test_errors_raised_in_catch_propagate():
    result = run('try { 1 / 0 } catch e { missing }')
    assert is_error(result)
    assert result.message == 'UndefinedVariableError: missing'


def test_error_inside_function_is_catchable():
    source = """
func risky(n) {
    if n > 2 { return error("too big") }
    n
}
let out = []
for i in 0..5 {
    try {
        out = append(out, risky(i))
    } catch e {
        out = append(out, "err")
    }
}
out
"""
    assert run(source).inspect() == '[0, 1, 2, "err", "err"]'


def test_loops_evaluate_to_null():
    assert run('while false { }') is NULL
    assert run('for x in [] { }') is NULL
