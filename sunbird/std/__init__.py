"""Standard modules available to `import "<name>"`.

Each entry maps a module name to the factory that builds it. Factories run
on first import; the module cache keeps the result.
"""

from __future__ import annotations

from importlib import import_module
from typing import Dict, Optional

from ..types import Value

BUILTIN_MODULES: Dict[str, str] = {
    'io': 'io',
    'math': 'math',
    'string': 'string',
    'array': 'array',
    'json': 'json',
    'errors': 'errors',
    'random': 'random',
    'time': 'time',
    'fs': 'fs',
    'http': 'http',
}


def get_builtin_module(name: str) -> Optional[Value]:
    module_name = BUILTIN_MODULES.get(name)
    if module_name is None:
        return None
    return import_module(f"{__name__}.{module_name}").new_module()


def is_builtin_module(name: str) -> bool:
    return name in BUILTIN_MODULES
