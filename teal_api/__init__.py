"""
Teal Python API

Compiles Teal code and runs the resulting modules on a reference
interpreter.
"""

from .context import Context, Script, OutputLog, run, run_with_output
from .interpreter import Interpreter
from .types import format_number

__all__ = [
    'Context',
    'Script',
    'OutputLog',
    'Interpreter',
    'run',
    'run_with_output',
    'format_number',
]
