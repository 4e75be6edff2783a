"""
Teal Compiler Package

A Python compiler for the Teal scripting language.
Compiles Teal source code to WebAssembly text modules.
"""

from typing import List, Optional

from .tokens import Token, TokenType, Span
from .lexer import Lexer
from .ast import *
from .parser import Parser
from .options import CompilerOptions, ValueType, EntryStyle
from .module import Module, Instruction, InstrKind
from .codegen import CodeGenerator
from .wat import ModuleWriter, ModuleReader, write_module, read_module, tokenize_wat
from .errors import TealError, SyntaxError, CompileError, ReadError

__version__ = "0.1.0"
__all__ = [
    "Token",
    "TokenType",
    "Span",
    "Lexer",
    "Parser",
    "CompilerOptions",
    "ValueType",
    "EntryStyle",
    "Module",
    "Instruction",
    "InstrKind",
    "CodeGenerator",
    "ModuleWriter",
    "ModuleReader",
    "write_module",
    "read_module",
    "tokenize_wat",
    "TealError",
    "SyntaxError",
    "CompileError",
    "ReadError",
    "lex",
    "parse",
    "compile_module",
    "compile_source",
    "compile_file",
]


def lex(source: str) -> List[Token]:
    """Tokenize Teal source. The last token is always EOF."""
    return Lexer(source).tokenize()


def parse(source: str) -> Program:
    """Parse Teal source into a program AST."""
    return Parser(lex(source)).parse()


def compile_module(source: str, options: Optional[CompilerOptions] = None) -> Module:
    """
    Compile Teal source code to a target module.

    Args:
        source: Teal source code string
        options: Compiler options (f64 values, `main` entry by default)

    Returns:
        Module ready for writing or execution

    Raises:
        SyntaxError: If lexing or parsing fails
        CompileError: If code generation fails
    """
    return CodeGenerator(options).generate(parse(source))


def compile_source(source: str, options: Optional[CompilerOptions] = None) -> str:
    """
    Compile Teal source code to WebAssembly text.

    Args:
        source: Teal source code string
        options: Compiler options

    Returns:
        Module text
    """
    return write_module(compile_module(source, options))


def compile_file(filepath: str, options: Optional[CompilerOptions] = None) -> str:
    """
    Compile a Teal source file to WebAssembly text.

    Args:
        filepath: Path to .teal source file
        options: Compiler options
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        source = f.read()
    return compile_source(source, options)
