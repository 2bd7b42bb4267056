"""The `fs` module. Relative paths resolve against the directory of the
script being run."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from ..builtin_function import CallContext, with_arity
from ..errors import expect_type, runtime_error
from ..types import NULL, ArrayVal, StringVal, Value, ValueKind, native_bool
from .builder import ModuleBuilder


class FileSystem:
    def __init__(self, ctx: CallContext):
        self.ctx = ctx
        base = getattr(ctx.interpreter, 'base_dir', None)
        self.base_dir = Path(base) if base is not None else Path.cwd()

    def resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.base_dir / p

    def fail(self, action: str, e: OSError) -> Value:
        return runtime_error(self.ctx.line, self.ctx.col, "error %s %s: %s", action, e.filename, e.strerror)

    def read(self, path: str) -> Value:
        try:
            return StringVal(self.resolve(path).read_text(encoding='utf-8'))
        except OSError as e:
            return self.fail('reading', e)
        except UnicodeDecodeError as e:
            return runtime_error(self.ctx.line, self.ctx.col, "error reading %s: not valid UTF-8 text (%s)",
                                 path, e.reason)

    def write(self, path: str, data: str, mode: str = 'w') -> Value:
        try:
            with open(self.resolve(path), mode, encoding='utf-8') as f:
                f.write(data)
            return NULL
        except OSError as e:
            return self.fail('writing', e)

    def append(self, path: str, data: str) -> Value:
        target = self.resolve(path)
        if not target.is_file():
            return runtime_error(self.ctx.line, self.ctx.col, "error writing %s: no such file", target)
        return self.write(path, data, 'a')

    def remove(self, path: str) -> Value:
        try:
            os.remove(self.resolve(path))
            return NULL
        except OSError as e:
            return self.fail('removing', e)

    def exists(self, path: str) -> Value:
        return native_bool(self.resolve(path).exists())

    def is_dir(self, path: str) -> Value:
        target = self.resolve(path)
        if not target.exists():
            return runtime_error(self.ctx.line, self.ctx.col, "error reading %s: no such file or directory", target)
        return native_bool(target.is_dir())

    def list_dir(self, path: str) -> Value:
        try:
            return ArrayVal([StringVal(name) for name in sorted(os.listdir(self.resolve(path)))])
        except OSError as e:
            return self.fail('listing', e)

    def create_dir(self, path: str) -> Value:
        try:
            os.makedirs(self.resolve(path), exist_ok=True)
            return NULL
        except OSError as e:
            return self.fail('creating', e)

    def rename(self, old: str, new: str) -> Value:
        try:
            os.rename(self.resolve(old), self.resolve(new))
            return NULL
        except OSError as e:
            return self.fail('renaming', e)

    def copy(self, source: str, dest: str) -> Value:
        try:
            shutil.copy(self.resolve(source), self.resolve(dest))
            return NULL
        except OSError as e:
            return self.fail('copying', e)


def _fs_function(method: str, arity: int):
    @with_arity(arity)
    def wrapper(ctx: CallContext, *args: Value) -> Value:
        for arg in args:
            err = expect_type(ctx.line, ctx.col, arg, ValueKind.STRING)
            if err is not None:
                return err
        return getattr(FileSystem(ctx), method)(*(a.value for a in args))
    wrapper.__name__ = f"fs_{method}"
    return wrapper


def new_module() -> Value:
    builder = ModuleBuilder('fs')
    for name, arity in (('read', 1), ('write', 2), ('append', 2), ('remove', 1), ('exists', 1),
                        ('is_dir', 1), ('list_dir', 1), ('create_dir', 1), ('rename', 2), ('copy', 2)):
        builder.add_function(name, _fs_function(name, arity))
    return builder.build()
