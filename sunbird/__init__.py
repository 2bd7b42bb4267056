# Sunbird language package
# This package provides a parser and tree-walking interpreter for the Sunbird language.
from .environment import Environment
from .errors import ParseError
from .interpreter import Interpreter, run_program
from .parser import parse_program

__all__ = [
    'Environment',
    'Interpreter',
    'ParseError',
    'parse_program',
    'run_program',
]
