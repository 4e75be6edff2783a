"""
Teal Context

The main interface for compiling and running Teal code from Python.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Optional

from teal import Lexer, Parser, CodeGenerator, CompilerOptions, Module, TealError
from teal.wat import write_module, read_module

from .interpreter import Interpreter
from .types import format_number, to_python


logger = logging.getLogger(__name__)


class OutputLog:
    """
    Ordered record of values passed to the host `log` import.

    Appends are serialized by a lock so one log can be shared by threads
    running instances concurrently.
    """

    def __init__(self):
        self._lines: List[str] = []
        self._lock = threading.Lock()

    def append(self, value: Any) -> None:
        line = format_number(value)
        with self._lock:
            self._lines.append(line)

    @property
    def lines(self) -> List[str]:
        """Snapshot of the captured lines."""
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


@dataclass
class Script:
    """
    A compiled Teal script.

    Contains the target module and metadata ready for execution.
    """

    source: str
    module: Module
    filename: Optional[str] = None

    @property
    def text(self) -> str:
        """The module as WebAssembly text."""
        return write_module(self.module)

    def save(self, path: str) -> None:
        """Save the module text to a file."""
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.text)

    @classmethod
    def load(cls, path: str) -> 'Script':
        """Load a module previously written with save()."""
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
        return cls(source="", module=read_module(text), filename=path)


class Context:
    """
    Teal execution context.

    Holds the compiler options and runs compiled scripts on the reference
    interpreter. This is the main entry point for using Teal from Python.

    Example:
        ctx = Context()
        script = ctx.compile('let x = 10; print x * 2;')
        ctx.execute(script)
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        """
        Create a new Teal context.

        Args:
            options: Compiler options used by compile()
        """
        self.options = options or CompilerOptions()

    def compile(self, source: str, filename: Optional[str] = None) -> Script:
        """
        Compile Teal source code.

        Args:
            source: Teal source code string
            filename: Optional filename for error messages

        Returns:
            Compiled Script object
        """
        try:
            # Tokenize
            tokens = Lexer(source).tokenize()

            # Parse
            ast = Parser(tokens).parse()

            # Generate module
            module = CodeGenerator(self.options).generate(ast)
        except TealError as e:
            if filename is not None:
                e.set_filename(filename)
            raise

        logger.debug(f"Compiled {filename or '<source>'}: {len(tokens)} tokens")
        return Script(source=source, module=module, filename=filename)

    def compile_file(self, path: str) -> Script:
        """Compile a Teal source file."""
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        return self.compile(source, filename=path)

    def execute(self, script: Script, output: Optional[OutputLog] = None) -> Any:
        """
        Run a compiled script's entry function.

        Args:
            script: Compiled Script object
            output: Log receiving printed values (a fresh one if omitted)

        Returns:
            The entry result as a Python number, or None for `main` entries
        """
        output = output if output is not None else OutputLog()

        # Instantiate from the emitted text, as a host engine would
        module = read_module(script.text)
        interp = Interpreter(module, {"log": output.append})

        result = interp.invoke(module.entry)

        logger.info(f"Ran '{module.entry}': {len(output)} line(s) logged")
        return to_python(result)

    def run(self, source: str) -> Any:
        """Compile and run source, returning the entry result."""
        return self.execute(self.compile(source))

    def run_with_output(self, source: str) -> List[str]:
        """Compile and run source, returning the logged lines in order."""
        output = OutputLog()
        self.execute(self.compile(source), output)
        return output.lines


def run(source: str, options: Optional[CompilerOptions] = None) -> Any:
    """Compile and run Teal source with a fresh context."""
    return Context(options).run(source)


def run_with_output(source: str, options: Optional[CompilerOptions] = None) -> List[str]:
    """Compile and run Teal source, returning everything it printed."""
    return Context(options).run_with_output(source)
