from sunbird.interpreter import Interpreter
from sunbird.parser import parse_program
from sunbird.types import NULL, FunctionVal, is_error


def run(source):
    return Interpreter().run(parse_program(source))


def test_function_declaration_and_call():
    assert run('func add(a, b) { return a + b }\nadd(2, 3)').value == 5


def test_implicit_return_of_last_statement():
    assert run('func double(x) { x * 2 }\ndouble(21)').value == 42
    assert run('func nothing() {}\nnothing()') is NULL


def test_closures_capture_defining_scope():
    source = """
func make_adder(x) {
    func(y) { x + y }
}
let add5 = make_adder(5)
let add10 = make_adder(10)
add5(1) + add10(1)
"""
    assert run(source).value == 17


def test_closure_state_is_shared():
    source = """
func counter() {
    let count = 0
    func() {
        count += 1
        count
    }
}
let c = counter()
c()
c()
c()
"""
    assert run(source).value == 3


def test_recursion():
    source = """
func fact(n) {
    if n <= 1 { return 1 }
    n * fact(n - 1)
}
fact(10)
"""
    assert run(source).value == 3628800


def test_return_exits_loops_inside_functions():
    source = """
func first_even(xs) {
    for x in xs {
        if x % 2 == 0 { return x }
    }
    return -1
}
first_even([1, 3, 4, 6])
"""
    assert run(source).value == 4


def test_argument_count_is_enforced():
    result = run('func f(a, b) { a }\nf(1)')
    assert is_error(result)
    assert result.message == 'ArgumentError: expected 2 arguments, got 1'


def test_parameter_types_are_enforced():
    result = run('func f(a: Int) { a }\nf("x")')
    assert result.message == 'TypeError: expected Int, got String'
    assert run('func f(a: Int?) { a }\nf(null)') is NULL
    assert run('func f(xs: Array<Int>) { len(xs) }\nf([1, 2])').value == 2
    result = run('func f(xs: Array<Int>) { len(xs) }\nf([1, "2"])')
    assert result.message == 'TypeError: expected Int, got String'


def test_return_type_is_enforced():
    result = run('func f(): Int { "x" }\nf()')
    assert result.message == 'TypeError: expected Int, got String'
    assert run('func f(): Void { return }\nf()') is NULL
    assert run('func f(): Float { 1.5 }\nf()').value == 1.5


def test_functions_are_values():
    result = run('let f = func(x) { x }\nf')
    assert isinstance(result, FunctionVal)
    assert result.inspect() == 'func(x) {\nx\n}'
    assert run('func apply(f, x) { f(x) }\napply(func(n) { n + 1 }, 1)').value == 2


def test_calling_a_non_function():
    result = run('let x = 5\nx()')
    assert result.message == 'NotCallableError: Integer'


def test_method_call_binds_this():
    source = """
let p = {
    name: "Ann",
    greet: func(greeting) { greeting + ", " + this.name }
}
p.greet("hi")
"""
    assert run(source).value == 'hi, Ann'


def test_this_follows_the_receiver():
    source = """
let proto = {describe: func() { "I am " + this.name }}
let a = {name: "a"}
let b = {name: "b"}
set_proto(a, proto)
set_proto(b, proto)
a.describe() + " / " + b.describe()
"""
    assert run(source).value == 'I am a / I am b'


def test_this_can_mutate_the_receiver():
    source = """
let account = {
    balance: 0,
    deposit: func(n) { this.balance += n }
}
account.deposit(5)
account.deposit(7)
account.balance
"""
    assert run(source).value == 12


def test_pipe_operator():
    assert run('func double(x) { x * 2 }\n5 |> double').value == 10
    assert run('func inc(x) { x + 1 }\nfunc double(x) { x * 2 }\n3 |> inc |> double').value == 8
    assert run('[1, 2, 3] |> len').value == 3
    result = run('1 |> 2')
    assert result.message == 'NotCallableError: right side of pipe operator is not a function: Integer'


def test_builtins_can_be_shadowed():
    assert run('let len = func(x) { 99 }\nlen("abc")').value == 99


def test_break_outside_loop_is_an_error():
    result = run('func f() { break }\nf()')
    assert is_error(result)
    assert result.code == 'RuntimeError'
