"""Module resolution and the process-wide module cache.

An import path is resolved in this order:

1. a builtin module registered in `sunbird.std` (`math`, `io`, ...);
2. a package directory `.sb_modules/<path>/`, looked up next to the
   importing file and then in the current directory. The entry file is
   `[package] main` from the package's `sunbird.toml` when present,
   otherwise the first of `main.sb`, `src/main.sb`, `index.sb`,
   `src/index.sb` that exists;
3. a file relative to the importing file, tried as given and then with a
   `.sb` extension.

File modules are evaluated once into their own environment and exposed as
a Hash of their exported names. Builtin modules are exposed as Module
values. Results are cached per resolved location.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Set

from .environment import Environment
from .errors import ParseError
from .parser import parse_program
from .std import get_builtin_module, is_builtin_module
from .types import Value, is_error, new_hash

if TYPE_CHECKING:
    from .interpreter import Interpreter


PACKAGE_DIR = '.sb_modules'
PACKAGE_CONFIG = 'sunbird.toml'
DEFAULT_ENTRIES = ('main.sb', 'src/main.sb', 'index.sb', 'src/index.sb')
SOURCE_SUFFIX = '.sb'


class ModuleNotFound(Exception):
    pass


class ModuleLoadError(Exception):
    pass


def read_package_main(package_dir: Path) -> Optional[str]:
    """Return `[package] main` from the package's sunbird.toml, if any."""
    config_path = package_dir / PACKAGE_CONFIG
    if not config_path.is_file():
        return None
    try:
        with open(config_path, 'rb') as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ModuleLoadError(f"invalid {PACKAGE_CONFIG} in {package_dir}: {e}") from e
    main = config.get('package', {}).get('main')
    return main if isinstance(main, str) else None


def find_package_entry(name: str, search_dirs) -> Optional[Path]:
    for base in search_dirs:
        package_dir = base / PACKAGE_DIR / name
        if not package_dir.is_dir():
            continue
        main = read_package_main(package_dir)
        candidates = (main,) if main else DEFAULT_ENTRIES
        for candidate in candidates:
            entry = package_dir / candidate
            if entry.is_file():
                return entry.resolve()
        raise ModuleNotFound(f"package {name} has no entry file")
    return None


def find_file_module(path: str, base_dir: Path) -> Optional[Path]:
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    for option in (candidate, candidate.with_name(candidate.name + SOURCE_SUFFIX)):
        if option.is_file():
            return option.resolve()
    return None


class ModuleCache:
    """Caches loaded modules. Access is serialized by a re-entrant lock so a
    module may import other modules while it is being loaded."""
    def __init__(self):
        self._lock = threading.RLock()
        self._modules: Dict[str, Value] = {}
        self._loading: Set[str] = set()

    def clear(self) -> None:
        with self._lock:
            self._modules.clear()
            self._loading.clear()

    def load(self, path: str, base_dir: Path, interpreter: 'Interpreter') -> Value:
        """Resolve `path` and return the module value, evaluating it if needed."""
        with self._lock:
            if is_builtin_module(path):
                key = f"builtin:{path}"
                if key not in self._modules:
                    self._modules[key] = get_builtin_module(path)
                return self._modules[key]

            search_dirs = [base_dir]
            if Path.cwd() != base_dir:
                search_dirs.append(Path.cwd())
            location = find_package_entry(path, search_dirs) or find_file_module(path, base_dir)
            if location is None:
                raise ModuleNotFound(f"module not found: {path}")

            key = str(location)
            if key in self._modules:
                return self._modules[key]
            if key in self._loading:
                raise ModuleLoadError(f"circular import of {path}")

            self._loading.add(key)
            try:
                module = self._evaluate(location, interpreter)
            finally:
                self._loading.discard(key)
            self._modules[key] = module
            return module

    def _evaluate(self, location: Path, interpreter: 'Interpreter') -> Value:
        interpreter.debug(f"loading module {location}")
        try:
            source = location.read_text(encoding='utf-8')
        except OSError as e:
            raise ModuleLoadError(f"cannot read {location}: {e.strerror}") from e
        try:
            program = parse_program(source)
        except ParseError as e:
            raise ModuleLoadError(f"parse errors in module {location.name}: {'; '.join(e.messages)}") from e

        env = Environment()
        result = interpreter.eval_module(program, env, location.parent)
        if is_error(result):
            raise ModuleLoadError(f"error in module {location.name}: {result.inspect()}")
        return new_hash(env.get_exports())


DEFAULT_MODULE_CACHE = ModuleCache()
