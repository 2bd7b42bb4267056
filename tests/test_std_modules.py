import io

import pytest

from sunbird.builtin_function import CallContext
from sunbird.interpreter import Interpreter
from sunbird.modules import ModuleCache
from sunbird.parser import parse_program
from sunbird.std import BUILTIN_MODULES, get_builtin_module
from sunbird.std.http import Router
from sunbird.types import NULL, FloatVal, IntVal, ModuleVal, is_error


def run(source, **kwargs):
    kwargs.setdefault('module_cache', ModuleCache())
    return Interpreter(**kwargs).run(parse_program(source))


def test_every_registered_module_builds():
    for name in BUILTIN_MODULES:
        module = get_builtin_module(name)
        assert isinstance(module, ModuleVal)
        assert module.name == name
    assert get_builtin_module('nope') is None


class TestMath:
    @pytest.mark.parametrize('call, expected', [
        ('math.abs(-3)', '3'),
        ('math.abs(-2.5)', '2.5'),
        ('math.max(3, 7)', '7'),
        ('math.min(3, 7)', '3'),
        ('math.pow(2, 10)', '1024'),
        ('math.sqrt(16)', '4'),
        ('math.sqrt(-1)', 'NaN'),
        ('math.floor(2.7)', '2'),
        ('math.ceil(2.1)', '3'),
        ('math.floor(5)', '5'),
        ('math.round(2.5)', '3'),
        ('math.round(-2.5)', '-3'),
        ('math.round(2.4)', '2'),
        ('math.sign(-4)', '-1'),
        ('math.sign(0)', '0'),
        ('math.clamp(15, 0, 10)', '10'),
        ('math.clamp(-5, 0, 10)', '0'),
    ])
    def test_functions(self, call, expected):
        assert run('import "math"\n' + call).inspect() == expected

    def test_float_arguments_give_float_results(self):
        assert isinstance(run('import "math"\nmath.max(1, 2.5)'), FloatVal)
        assert isinstance(run('import "math"\nmath.floor(2.7)'), FloatVal)
        assert isinstance(run('import "math"\nmath.pow(2, 3)'), IntVal)
        assert run('import "math"\nmath.pow(4, 0.5)').value == 2.0

    def test_constants(self):
        assert run('import "math"\nmath.pi').value == pytest.approx(3.141592653589793)
        assert run('import "math"\nmath.e').value == pytest.approx(2.718281828459045)

    def test_integer_pow_wraps(self):
        assert run('import "math"\nmath.pow(2, 63)').value == -(1 << 63)
        assert run('import "math"\nmath.pow(2, 64)').value == 0

    def test_argument_checks(self):
        result = run('import "math"\nmath.abs("x")')
        assert result.message == 'TypeError: expected one of Integer, Float, got String'
        assert run('import "math"\nmath.max(1)').message == 'ArgumentError: expected 2 arguments, got 1'


class TestString:
    @pytest.mark.parametrize('call, expected', [
        ('string.concat("a", "b")', '"ab"'),
        ('string.is_empty("")', 'true'),
        ('string.starts_with("sunbird", "sun")', 'true'),
        ('string.ends_with("sunbird", "sun")', 'false'),
        ('string.contains("sunbird", "nbi")', 'true'),
        ('string.to_upper("abc")', '"ABC"'),
        ('string.to_lower("ABC")', '"abc"'),
        ('string.trim("  x  ")', '"x"'),
        ('string.split("a,b,,c", ",")', '["a", "b", "", "c"]'),
        ('string.split("abc", "")', '["a", "b", "c"]'),
        ('string.repeat("ab", 3)', '"ababab"'),
        ('string.replace("a-b-c", "-", "+")', '"a+b+c"'),
    ])
    def test_functions(self, call, expected):
        assert run('import "string"\n' + call).inspect() == expected

    def test_argument_checks(self):
        assert run('import "string"\nstring.to_upper(1)').message == 'TypeError: expected String, got Integer'
        result = run('import "string"\nstring.repeat("a", -1)')
        assert result.message == 'ArgumentError: negative repeat count -1'


class TestArray:
    def test_in_place_mutation(self):
        source = """
import "array"
let a = [1, 2]
let alias = a
array.push(a, 3)
array.unshift(a, 0)
let last = array.pop(a)
let first = array.shift(a)
array.reverse(a)
[alias, last, first]
"""
        assert run(source).inspect() == '[[2, 1], 3, 0]'

    def test_empty_pop_and_clear(self):
        assert run('import "array"\narray.pop([])') is NULL
        assert run('import "array"\narray.shift([])') is NULL
        assert run('import "array"\nlet a = [1, 2]\narray.clear(a)\nlen(a)').value == 0

    @pytest.mark.parametrize('call, expected', [
        ('array.index_of([1, 2, 3], 2)', '1'),
        ('array.index_of([1, 2, 3], 9)', '-1'),
        ('array.contains(["a", "b"], "b")', 'true'),
        ('array.slice([1, 2, 3, 4], 1, -1)', '[2, 3]'),
        ('array.slice([1, 2, 3, 4], -2)', '[3, 4]'),
        ('array.slice([1, 2, 3, 4], 3, 1)', '[]'),
        ('array.join([1, "a", true], "-")', '"1-a-true"'),
        ('array.concat([1], [2, 3])', '[1, 2, 3]'),
    ])
    def test_functions(self, call, expected):
        assert run('import "array"\n' + call).inspect() == expected

    def test_higher_order_functions(self):
        source = """
import "array"
let xs = [1, 2, 3, 4]
let doubled = array.map(xs, func(x) { x * 2 })
let evens = array.filter(xs, func(x) { x % 2 == 0 })
let total = array.reduce(xs, func(acc, x) { acc + x }, 0)
[doubled, evens, total, array.map(["a", "bb"], len)]
"""
        assert run(source).inspect() == '[[2, 4, 6, 8], [2, 4], 10, [1, 2]]'

    def test_callback_errors_propagate(self):
        result = run('import "array"\narray.map([1, 0], func(x) { 10 / x })')
        assert is_error(result)
        assert result.code == 'DivisionByZeroError'
        result = run('import "array"\narray.map([1], 5)')
        assert result.message == 'TypeError: expected one of Function, Builtin, got Integer'
        result = run('import "array"\narray.slice([1])')
        assert result.message == 'ArgumentError: expected 2 or 3 arguments, got 1'


class TestJson:
    def test_parse(self):
        source = """
import "json"
let data = json.parse('{"a": [1, 2.5, null, true], "b": {"c": "d"}}')
[data.a, data.b.c, json.parse("1.0")]
"""
        assert run(source).inspect() == '[[1, 2.5, null, true], "d", 1]'

    def test_stringify(self):
        source = 'import "json"\njson.stringify({a: 1, b: [true, null], c: "x", 4: 1.5})'
        assert run(source).value == '{"a":1,"b":[true,null],"c":"x","4":1.5}'
        assert run('import "json"\njson.stringify("quote\\"d")').value == '"quote\\"d"'

    def test_errors(self):
        assert run('import "json"\njson.parse("{")').message.startswith('RuntimeError: invalid JSON:')
        assert run('import "json"\njson.stringify(len)').message == 'RuntimeError: cannot convert Builtin'
        assert run('import "json"\njson.parse(1)').message == 'TypeError: expected String, got Integer'


class TestErrors:
    @pytest.mark.parametrize('call, message', [
        ('errors.type_error("bad")', 'TypeError: bad'),
        ('errors.key_error("k")', 'KeyError: k'),
        ('errors.runtime_error("oops")', 'RuntimeError: oops'),
        ('errors.property_access_error("x")', 'PropertyAccessOnNonObjectError: x'),
        ('errors.division_by_zero_error()', 'DivisionByZeroError: division by zero'),
        ('errors.division_by_zero_error("custom")', 'DivisionByZeroError: custom'),
        ('errors.type_error(1)', 'TypeError: expected String, got Integer'),
    ])
    def test_constructors(self, call, message):
        result = run('import "errors"\n' + call)
        assert is_error(result)
        assert result.message == message

    def test_constructed_errors_can_be_caught(self):
        source = """
import "errors"
func check(n) {
    if n < 0 { return errors.argument_error("negative") }
    n
}
let message = ""
try { check(-1) } catch e { message = string(e) }
message
"""
        assert run(source).value.startswith('ArgumentError: negative')


class TestRandom:
    def test_seed_is_deterministic(self):
        source = 'import "random"\nrandom.seed(42)\n[random.int(0, 100), random.int(0, 100), random.bool()]'
        assert run(source).inspect() == run(source).inspect()

    def test_ranges(self):
        source = """
import "random"
let ok = true
for i in 0..50 {
    let n = random.int(3, 6)
    let f = random.float(0.0, 1.0)
    if n < 3 || n >= 6 || f < 0.0 || f >= 1.0 { ok = false }
}
ok
"""
        assert run(source).value is True

    def test_choice_and_shuffle(self):
        assert run('import "random"\nrandom.choice([])') is NULL
        assert run('import "random"\nrandom.choice([7])').value == 7
        source = 'import "random"\nlet a = [1, 2, 3]\nlet b = random.shuffle(a)\n[a, len(b)]'
        assert run(source).inspect() == '[[1, 2, 3], 3]'

    def test_empty_range(self):
        assert run('import "random"\nrandom.int(5, 5)').message == 'ArgumentError: empty range [5, 5)'


class TestTime:
    def test_format(self):
        assert run('import "time"\ntime.format(1000000000, "YYYY-MM")').value == '2001-09'
        assert run('import "time"\ntime.format(time.unix(1000000000), "YYYY")').value == '2001'
        assert run('import "time"\ntime.format(time.unix_ms(1000000000123), "SSS")').value == '123'

    def test_fields(self):
        source = 'import "time"\nlet t = time.unix(1000000000)\n[t.unix, t.unix_ms, keys(t)]'
        assert run(source).inspect() == (
            '[1000000000, 1000000000000, ["unix", "unix_ms", "unix_ns", "year", "month", "day", '
            '"hour", "minute", "second", "millisecond", "nanosecond", "weekday"]]'
        )

    def test_clock_and_constants(self):
        assert run('import "time"\ntime.now()').value > 1_600_000_000
        assert run('import "time"\ntime.now_ms()').value > 1_600_000_000_000
        assert run('import "time"\ntime.now_ns()').value > 1_600_000_000_000_000_000
        assert run('import "time"\ntime.sleep(0)') is NULL
        assert run('import "time"\ntime.hour').value == 3600
        assert run('import "time"\ntime.millisecond').value == 0.001

    def test_nanosecond_fields(self):
        source = 'import "time"\nlet t = time.unix_ns(1000000000123456789)\n[t.unix, t.unix_ms, t.nanosecond, t.millisecond]'
        assert run(source).inspect() == '[1000000000, 1000000000123, 123456789, 123]'

    def test_parse(self):
        source = """
import "time"
let t = time.parse("2024-03-05 14:07:09.250", "YYYY-MM-DD HH:mm:ss.SSS")
[t.year, t.month, t.day, t.hour, t.minute, t.second, t.millisecond, time.format(t, "YYYY/MM/DD HH:mm:ss.SSS")]
"""
        assert run(source).inspect() == '[2024, 3, 5, 14, 7, 9, 250, "2024/03/05 14:07:09.250"]'
        assert run('import "time"\ntime.parse("10%", "YY%").year').value == 2010

    def test_parse_errors(self):
        result = run('import "time"\ntime.parse("nope", "YYYY")')
        assert result.message.startswith('RuntimeError: failed to parse time:')
        assert run('import "time"\ntime.parse(1, "YYYY")').message == 'TypeError: expected String, got Integer'

    def test_errors(self):
        result = run('import "time"\ntime.format("x", "YYYY")')
        assert result.message == 'TypeError: expected Integer or Hash, got String'
        result = run('import "time"\ntime.format({}, "YYYY")')
        assert result.message == "RuntimeError: time hash missing 'unix' or 'unix_ms' field"


class TestFs:
    def test_read_write_append(self, tmp_path):
        source = """
import "fs"
fs.write("notes.txt", "hello")
fs.append("notes.txt", " world")
fs.read("notes.txt")
"""
        assert run(source, base_dir=tmp_path).value == 'hello world'
        assert (tmp_path / 'notes.txt').read_text() == 'hello world'

    def test_directories(self, tmp_path):
        source = """
import "fs"
fs.create_dir("data/inner")
fs.write("data/b.txt", "b")
fs.copy("data/b.txt", "data/a.txt")
fs.rename("data/b.txt", "data/c.txt")
[fs.list_dir("data"), fs.is_dir("data/inner"), fs.exists("data/b.txt")]
"""
        assert run(source, base_dir=tmp_path).inspect() == '[["a.txt", "c.txt", "inner"], true, false]'

    def test_remove(self, tmp_path):
        (tmp_path / 'gone.txt').write_text('x')
        assert run('import "fs"\nfs.remove("gone.txt")', base_dir=tmp_path) is NULL
        assert not (tmp_path / 'gone.txt').exists()

    def test_errors(self, tmp_path):
        result = run('import "fs"\nfs.read("missing.txt")', base_dir=tmp_path)
        assert result.message.startswith('RuntimeError: error reading')
        assert result.message.endswith('missing.txt: No such file or directory')
        result = run('import "fs"\nfs.append("missing.txt", "x")', base_dir=tmp_path)
        assert result.message.endswith('missing.txt: no such file')
        result = run('import "fs"\nfs.is_dir("nowhere")', base_dir=tmp_path)
        assert result.code == 'RuntimeError'
        assert run('import "fs"\nfs.read(1)', base_dir=tmp_path).message == 'TypeError: expected String, got Integer'

    def test_read_binary_file_is_an_error_value(self, tmp_path):
        (tmp_path / 'bad.bin').write_bytes(b'\xff\xfe\xfa')
        result = run('import "fs"\nfs.read("bad.bin")', base_dir=tmp_path)
        assert is_error(result)
        assert result.message.startswith('RuntimeError: error reading bad.bin: not valid UTF-8 text')


class TestIo:
    def test_sprintf_and_printf(self, capsys):
        assert run('import "io"\nio.sprintf("{} + {} = {}", 1, 2, "three")').value == '1 + 2 = three'
        assert run('import "io"\nio.sprintf("{} and {}", 1)').value == '1 and {}'
        run('import "io"\nio.printf("[{}]", [1])\nio.print("a", "b")\nio.println("!")')
        assert capsys.readouterr().out == '[[1]]a b!\n'

    def test_args(self):
        assert run('import "io"\nio.args()', argv=['one', 'two']).inspect() == '["one", "two"]'
        assert run('import "io"\nio.args()').inspect() == '[]'

    def test_readln(self, monkeypatch, capsys):
        monkeypatch.setattr('sys.stdin', io.StringIO('first line\n'))
        assert run('import "io"\nio.readln("> ")').value == 'first line'
        assert capsys.readouterr().out == '> '
        assert run('import "io"\nio.readln()') is NULL

    def test_read_words(self, monkeypatch, capsys):
        monkeypatch.setattr('sys.stdin', io.StringIO('alpha beta\n'))
        assert run('import "io"\n[io.read("? "), io.read(), io.read()]').inspect() == '["alpha", "beta", null]'
        assert capsys.readouterr().out == '? '
        assert run('import "io"\nio.read(1)').message == 'TypeError: expected String, got Integer'

    def test_printfn_clear_and_beep(self, capsys):
        run('import "io"\nio.printfn("{}-{}", 1, "a")\nio.clear()\nio.beep()')
        assert capsys.readouterr().out == '1-a\n\033[H\033[2J\a'
        assert run('import "io"\nio.beep(1)').message == 'ArgumentError: expected 0 arguments, got 1'

    def test_print_functions_are_the_global_builtins(self):
        from sunbird.builtins import builtin_print, builtin_println
        module = get_builtin_module('io')
        assert module.exports['print'].fn is builtin_print
        assert module.exports['println'].fn is builtin_println


class TestHttp:
    @pytest.fixture
    def dispatch(self):
        interpreter = Interpreter(module_cache=ModuleCache())
        router = Router()

        def handler(source):
            return interpreter.run(parse_program(source))

        router.add('GET', '/users/:id', handler('func(req) { "user " + req.params.id + " " + req.query.q }'))
        router.add('POST', '/items', handler('func(req) { {status: 201, body: {got: req.body()}} }'))
        router.add('GET', '/token', handler('func(req) { req.header("X-Token") }'))
        router.add('GET', '/boom', handler('func(req) { 1 / 0 }'))
        router.add('GET', '/plain', handler('func(req) { {status: 204, headers: {"X-Kind": "empty"}} }'))
        router.add('GET', '/things/{id}', handler("""func(req, res) {
            res.status(201)
            res.header.set("X-Id", req.path_param("id"))
            res.json({id: req.path_param("id"), q: req.query_param("q"), missing: req.query_param("nope")})
        }"""))
        router.add('GET', '/headers', handler("""func(req, res) {
            res.header.add("X-A", "1")
            res.header.add("x-a", "2")
            res.header.set("X-B", "b")
            res.header.del("x-b")
            res.send(res.header.get("x-a"))
        }"""))
        router.add('GET', '/late-status', handler('func(req, res) { res.send("a"); res.status(500); res.send("b") }'))
        router.add('POST', '/echo', handler("""func(req) {
            [req.method(), req.url(), req.body(), len(req.json()), req.header("ACCEPT"), req.header("nope"),
             req.cookie("sid"), req.cookies(), req.path]
        }"""))
        router.add('GET', '/cookies', handler("""func(req, res) {
            res.cookie.set("sid", "abc", {max_age: 60, http_only: true, same_site: "lax"})
            res.cookie.delete("old")
        }"""))
        ctx = CallContext(interpreter=interpreter)

        def call(method, target, headers=None, body=''):
            return router.dispatch(ctx, method, target, headers or {}, body)
        return call

    def test_routes_and_params(self, dispatch):
        assert dispatch('GET', '/users/7?q=x') == (200, [], 'user 7 x')
        assert dispatch('GET', '/token', {'X-Token': 'abc'}) == (200, [], 'abc')

    def test_hash_responses(self, dispatch):
        status, headers, body = dispatch('POST', '/items', body='payload')
        assert status == 201
        assert headers == [('Content-Type', 'application/json')]
        assert body == '{"got":"payload"}'
        assert dispatch('GET', '/plain') == (204, [('X-Kind', 'empty')], '')

    def test_response_writer(self, dispatch):
        status, headers, body = dispatch('GET', '/things/9?q=z')
        assert status == 201
        assert headers == [('X-Id', '9'), ('Content-Type', 'application/json')]
        assert body == '{"id":"9","q":"z","missing":null}'

    def test_writer_headers(self, dispatch):
        assert dispatch('GET', '/headers') == (200, [('X-A', '1'), ('x-a', '2')], '1')

    def test_status_after_body_is_ignored(self, dispatch):
        assert dispatch('GET', '/late-status') == (200, [], 'ab')

    def test_request_accessors(self, dispatch):
        headers = {'Accept': 'text/plain', 'Cookie': 'sid=abc; theme=dark'}
        status, _, body = dispatch('POST', '/echo?x=1', headers, '[1, 2]')
        assert status == 200
        assert body == ('["POST", "/echo?x=1", "[1, 2]", 2, "text/plain", null, "abc", '
                        '{"sid": "abc", "theme": "dark"}, "/echo"]')

    def test_invalid_json_body_is_a_server_error(self, dispatch):
        status, _, body = dispatch('POST', '/echo', body='{nope')
        assert status == 500
        assert body.startswith('RuntimeError: invalid JSON')

    def test_cookies(self, dispatch):
        status, headers, body = dispatch('GET', '/cookies')
        assert status == 200 and body == ''
        assert [name for name, _ in headers] == ['Set-Cookie', 'Set-Cookie']
        assert set(headers[0][1].split('; ')) == {'sid=abc', 'HttpOnly', 'Max-Age=60', 'Path=/', 'SameSite=Lax'}
        deleted = headers[1][1].split('; ')
        assert deleted[0].startswith('old=')
        assert set(deleted[1:]) == {'Max-Age=0', 'Path=/'}

    def test_unmatched_requests(self, dispatch):
        assert dispatch('GET', '/missing') == (404, [], 'not found')
        assert dispatch('DELETE', '/items') == (405, [], 'method not allowed')

    def test_handler_errors_become_500(self, dispatch):
        status, _, body = dispatch('GET', '/boom')
        assert status == 500
        assert body.startswith('DivisionByZeroError: division by zero')

    def test_module_tables(self):
        assert run('import "http"\nhttp.status.not_found').value == 404
        assert run('import "http"\nhttp.methods.post').value == 'POST'
        source = 'import "http"\nlet server = http.create_server()\nserver.get("/", func(req, res) { res.send("hi") })'
        assert run(source) is NULL
        assert run('import "http"\nlet server = http.create_server()\nserver.status.ok').value == 200
