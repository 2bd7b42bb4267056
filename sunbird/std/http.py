"""The `http` module: a small blocking HTTP server driven by Sunbird handlers.

    import "http"
    let server = http.create_server()
    server.get("/users/:id", func(req, res) {
        res.header.set("X-Served-By", "sunbird")
        res.json({id: req.path_param("id"), q: req.query_param("q")})
    })
    server.listen(8080)

A handler taking two parameters receives a request and a response writer.
The request exposes `path_param`, `query_param`, `body`, `json`, `method`,
`url`, `header`, `headers`, `cookie` and `cookies` functions, plus the
`path`, `params` and `query` fields. The writer exposes `send`, `json`,
`status`, `header.set/add/del/get` and `cookie.set/delete`.

A handler taking one parameter receives only the request and answers with
its return value: a String (sent with status 200) or a Hash
`{status, body, headers}`. Route segments written `:name` or `{name}` are
captured as path parameters. Requests are served one at a time on the
calling thread.
"""

from __future__ import annotations

from email.message import Message
from http import HTTPStatus
from http.cookies import CookieError, SimpleCookie
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit

from ..builtin_function import CallContext, with_arity
from ..errors import expect_number_of_arguments, expect_one_of_types, expect_type, runtime_error
from ..types import (
    NULL, ArrayVal, BoolVal, FunctionVal, HashVal, IntVal, StringVal, Value, ValueKind, is_error, new_hash,
    to_text,
)
from .builder import ModuleBuilder
from .json import json_parse, json_stringify

METHODS = ('GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'HEAD', 'OPTIONS', 'CONNECT', 'TRACE')
CALLABLE = (ValueKind.FUNCTION, ValueKind.BUILTIN)
SAME_SITE = {'strict': 'Strict', 'lax': 'Lax', 'none': 'None'}

Response = Tuple[int, List[Tuple[str, str]], str]


def _segment_param(segment: str) -> Optional[str]:
    if segment.startswith(':'):
        return segment[1:]
    if segment.startswith('{') and segment.endswith('}'):
        return segment[1:-1]
    return None


def _match(pattern: str, path: str) -> Optional[Dict[str, str]]:
    want = pattern.strip('/').split('/')
    got = path.strip('/').split('/')
    if len(want) != len(got):
        return None
    params = {}
    for w, g in zip(want, got):
        name = _segment_param(w)
        if name is not None:
            params[name] = g
        elif w != g:
            return None
    return params


def _string_args(ctx: CallContext, count: int, args) -> Optional[Value]:
    err = expect_number_of_arguments(ctx.line, ctx.col, count, args)
    if err is not None:
        return err
    for arg in args:
        err = expect_type(ctx.line, ctx.col, arg, ValueKind.STRING)
        if err is not None:
            return err
    return None


class Request:
    """The incoming request, exposed to handlers as a Hash of accessors."""

    def __init__(self, method: str, target: str, headers: Dict[str, str], body: str, params: Dict[str, str]):
        self.method = method
        self.target = target
        self.url = urlsplit(target)
        self.headers = {k.lower(): v for k, v in headers.items()}
        self.body = body
        self.params = params
        self.query = dict(parse_qsl(self.url.query))
        self.cookies: Dict[str, str] = {}
        if 'cookie' in self.headers:
            try:
                jar = SimpleCookie(self.headers['cookie'])
            except CookieError:
                jar = SimpleCookie()
            self.cookies = {name: morsel.value for name, morsel in jar.items()}
        self._json: Optional[Value] = None

    def path_param(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 1, args)
        if err is not None:
            return err
        return StringVal(self.params.get(args[0].value, ''))

    def query_param(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 1, args)
        if err is not None:
            return err
        value = self.query.get(args[0].value)
        return StringVal(value) if value else NULL

    def header(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 1, args)
        if err is not None:
            return err
        value = self.headers.get(args[0].value.lower())
        return StringVal(value) if value else NULL

    def cookie(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 1, args)
        if err is not None:
            return err
        value = self.cookies.get(args[0].value)
        return NULL if value is None else StringVal(value)

    def json(self, ctx: CallContext, *args: Value) -> Value:
        err = expect_number_of_arguments(ctx.line, ctx.col, 0, args)
        if err is not None:
            return err
        if self._json is None:
            parsed = json_parse(ctx, StringVal(self.body))
            if is_error(parsed):
                return parsed
            self._json = parsed
        return self._json

    def to_value(self) -> HashVal:
        def constant(value):
            @with_arity(0)
            def accessor(ctx: CallContext) -> Value:
                return value()
            return accessor

        return (ModuleBuilder('request')
                .add_function('path_param', self.path_param)
                .add_function('query_param', self.query_param)
                .add_function('body', constant(lambda: StringVal(self.body)))
                .add_function('json', self.json)
                .add_function('method', constant(lambda: StringVal(self.method)))
                .add_function('url', constant(lambda: StringVal(self.target)))
                .add_function('header', self.header)
                .add_function('headers', constant(
                    lambda: new_hash({k: StringVal(v) for k, v in self.headers.items()})))
                .add_function('cookie', self.cookie)
                .add_function('cookies', constant(
                    lambda: new_hash({k: StringVal(v) for k, v in self.cookies.items()})))
                .add_value('path', StringVal(self.url.path))
                .add_value('params', new_hash({k: StringVal(v) for k, v in self.params.items()}))
                .add_value('query', new_hash({k: StringVal(v) for k, v in self.query.items()}))
                .build_hash())


class ResponseWriter:
    """Collects the status, headers and body a handler writes through `res`."""

    def __init__(self):
        self.status: Optional[int] = None
        self.headers = Message()
        self.chunks: List[str] = []

    def send(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 1, args)
        if err is not None:
            return err
        self.chunks.append(args[0].value)
        return NULL

    def json(self, ctx: CallContext, *args: Value) -> Value:
        err = expect_number_of_arguments(ctx.line, ctx.col, 1, args)
        if err is not None:
            return err
        err = expect_type(ctx.line, ctx.col, args[0], ValueKind.HASH)
        if err is not None:
            return err
        encoded = json_stringify(ctx, args[0])
        if is_error(encoded):
            return encoded
        self.set_header('Content-Type', 'application/json')
        self.chunks.append(encoded.value)
        return NULL

    def write_status(self, ctx: CallContext, *args: Value) -> Value:
        err = expect_number_of_arguments(ctx.line, ctx.col, 1, args)
        if err is not None:
            return err
        err = expect_type(ctx.line, ctx.col, args[0], ValueKind.INTEGER)
        if err is not None:
            return err
        # The status line is fixed once the handler has written a status or body.
        if self.status is None and not self.chunks:
            self.status = args[0].value
        return NULL

    def set_header(self, name: str, value: str) -> None:
        del self.headers[name]
        self.headers[name] = value

    def header_set(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 2, args)
        if err is not None:
            return err
        self.set_header(args[0].value, args[1].value)
        return NULL

    def header_add(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 2, args)
        if err is not None:
            return err
        self.headers[args[0].value] = args[1].value
        return NULL

    def header_del(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 1, args)
        if err is not None:
            return err
        del self.headers[args[0].value]
        return NULL

    def header_get(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 1, args)
        if err is not None:
            return err
        return StringVal(self.headers.get(args[0].value, ''))

    def cookie_set(self, ctx: CallContext, *args: Value) -> Value:
        if len(args) != 3:
            err = expect_number_of_arguments(ctx.line, ctx.col, 2, args)
            if err is not None:
                return err
        err = _string_args(ctx, 2, args[:2])
        if err is not None:
            return err
        jar = SimpleCookie()
        try:
            jar[args[0].value] = args[1].value
        except CookieError as e:
            return runtime_error(ctx.line, ctx.col, "invalid cookie: %s", e)
        morsel = jar[args[0].value]
        morsel['path'] = '/'
        if len(args) == 3:
            err = expect_type(ctx.line, ctx.col, args[2], ValueKind.HASH)
            if err is not None:
                return err
            _apply_cookie_options(morsel, args[2])
        self.headers['Set-Cookie'] = morsel.OutputString()
        return NULL

    def cookie_delete(self, ctx: CallContext, *args: Value) -> Value:
        err = _string_args(ctx, 1, args)
        if err is not None:
            return err
        jar = SimpleCookie()
        try:
            jar[args[0].value] = ''
        except CookieError as e:
            return runtime_error(ctx.line, ctx.col, "invalid cookie: %s", e)
        jar[args[0].value]['path'] = '/'
        jar[args[0].value]['max-age'] = 0
        self.headers['Set-Cookie'] = jar[args[0].value].OutputString()
        return NULL

    def to_value(self) -> HashVal:
        header = (ModuleBuilder('header')
                  .add_function('set', self.header_set)
                  .add_function('add', self.header_add)
                  .add_function('del', self.header_del)
                  .add_function('get', self.header_get)
                  .build_hash())
        cookie = (ModuleBuilder('cookie')
                  .add_function('set', self.cookie_set)
                  .add_function('delete', self.cookie_delete)
                  .build_hash())
        return (ModuleBuilder('response')
                .add_function('send', self.send)
                .add_function('json', self.json)
                .add_function('status', self.write_status)
                .add_value('header', header)
                .add_value('cookie', cookie)
                .build_hash())


def _apply_cookie_options(morsel, options: HashVal) -> None:
    max_age = options.get('max_age')
    if isinstance(max_age, IntVal):
        morsel['max-age'] = max_age.value
    for key in ('domain', 'path'):
        value = options.get(key)
        if isinstance(value, StringVal):
            morsel[key] = value.value
    for key, attr in (('secure', 'secure'), ('http_only', 'httponly')):
        value = options.get(key)
        if isinstance(value, BoolVal) and value.value:
            morsel[attr] = True
    same_site = options.get('same_site')
    if isinstance(same_site, StringVal) and same_site.value in SAME_SITE:
        morsel['samesite'] = SAME_SITE[same_site.value]


class Router:
    def __init__(self):
        self.routes: List[Tuple[str, str, Value]] = []

    def add(self, method: str, pattern: str, handler: Value) -> None:
        self.routes.append((method, pattern, handler))

    def find(self, method: str, path: str) -> Tuple[Optional[Value], Dict[str, str], bool]:
        """Return (handler, params, path_known)."""
        path_known = False
        for route_method, pattern, handler in self.routes:
            params = _match(pattern, path)
            if params is None:
                continue
            path_known = True
            if route_method == method:
                return handler, params, True
        return None, {}, path_known

    def dispatch(self, ctx: CallContext, method: str, target: str, headers: Dict[str, str], body: str) -> Response:
        handler, params, path_known = self.find(method, urlsplit(target).path)
        if handler is None:
            if path_known:
                return HTTPStatus.METHOD_NOT_ALLOWED, [], 'method not allowed'
            return HTTPStatus.NOT_FOUND, [], 'not found'
        request = Request(method, target, headers, body, params).to_value()
        writer = ResponseWriter()
        if isinstance(handler, FunctionVal) and len(handler.parameters) == 1:
            result = ctx.apply(handler, [request])
        else:
            result = ctx.apply(handler, [request, writer.to_value()])
        return to_response(ctx, result, writer)


def to_response(ctx: CallContext, result: Value, writer: Optional[ResponseWriter] = None) -> Response:
    if is_error(result):
        return HTTPStatus.INTERNAL_SERVER_ERROR, [], result.inspect()
    writer = writer or ResponseWriter()
    code: int = HTTPStatus.OK
    headers: List[Tuple[str, str]] = list(writer.headers.items())
    text = ''
    if isinstance(result, HashVal):
        status = result.get('status')
        body = result.get('body')
        extra = result.get('headers')
        if isinstance(status, IntVal):
            code = status.value
        if isinstance(extra, HashVal):
            headers += [(to_text(p.key), to_text(p.value)) for p in extra.pairs.values()]
        if isinstance(body, (HashVal, ArrayVal)):
            encoded = json_stringify(ctx, body)
            if is_error(encoded):
                return HTTPStatus.INTERNAL_SERVER_ERROR, [], encoded.inspect()
            if not any(name.lower() == 'content-type' for name, _ in headers):
                headers.append(('Content-Type', 'application/json'))
            text = encoded.value
        elif body is not None and body is not NULL:
            text = to_text(body)
    elif result is not NULL:
        text = to_text(result)
    if writer.chunks:
        text = ''.join(writer.chunks)
    if writer.status is not None:
        code = writer.status
    return code, headers, text


def make_handler_class(router: Router, ctx: CallContext):
    class SunbirdHTTPHandler(BaseHTTPRequestHandler):
        def handle_any(self):
            length = int(self.headers.get('Content-Length') or 0)
            body = self.rfile.read(length).decode('utf-8', errors='replace') if length else ''
            status, headers, text = router.dispatch(ctx, self.command, self.path, dict(self.headers), body)
            payload = text.encode('utf-8')
            self.send_response(int(status))
            if not any(name.lower() == 'content-type' for name, _ in headers):
                headers.append(('Content-Type', 'text/plain; charset=utf-8'))
            for name, value in headers:
                self.send_header(name, value)
            self.send_header('Content-Length', str(len(payload)))
            self.end_headers()
            if self.command != 'HEAD':
                self.wfile.write(payload)

        def log_message(self, format, *args):
            if ctx.interpreter is not None:
                ctx.interpreter.debug(f"http: {format % args}")

    for method in METHODS:
        setattr(SunbirdHTTPHandler, f"do_{method}", SunbirdHTTPHandler.handle_any)
    return SunbirdHTTPHandler


def _route_adder(router: Router, method: str):
    @with_arity(2)
    def add_route(ctx: CallContext, pattern: Value, handler: Value) -> Value:
        err = expect_type(ctx.line, ctx.col, pattern, ValueKind.STRING) or \
            expect_one_of_types(ctx.line, ctx.col, handler, *CALLABLE)
        if err is not None:
            return err
        router.add(method, pattern.value, handler)
        return NULL
    return add_route


def _listener(router: Router):
    @with_arity(1)
    def listen(ctx: CallContext, port: Value) -> Value:
        err = expect_type(ctx.line, ctx.col, port, ValueKind.INTEGER)
        if err is not None:
            return err
        try:
            httpd = HTTPServer(('', port.value), make_handler_class(router, ctx))
        except OSError as e:
            return runtime_error(ctx.line, ctx.col, "cannot listen on port %d: %s", port.value, e.strerror)
        print(f"Serving HTTP on port {port.value}...")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            httpd.server_close()
        return NULL
    return listen


def status_table() -> HashVal:
    return new_hash({s.name.lower(): IntVal(s.value) for s in HTTPStatus})


def methods_table() -> HashVal:
    return new_hash({m.lower(): StringVal(m) for m in METHODS})


@with_arity(0)
def create_server(ctx: CallContext) -> Value:
    router = Router()
    server = ModuleBuilder('server')
    for method in METHODS:
        server.add_function(method.lower(), _route_adder(router, method))
    server.add_function('listen', _listener(router))
    server.add_value('status', status_table())
    return server.build_hash()


def new_module() -> Value:
    return (ModuleBuilder('http')
            .add_function('create_server', create_server)
            .add_value('status', status_table())
            .add_value('methods', methods_table())
            .build())
