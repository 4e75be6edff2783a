"""
Teal Code Generator

Lowers an AST into a target Module.

Scoping has exactly two levels: module globals, and one flat set of
parameters and locals per function. A `let` declares a local inside a named
function and a global at top level; which one is decided only by where the
declaration appears.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional

from .ast import *
from .module import (
    Module, Function, Instruction, LOG_FUNCTION,
    binary_opcode, from_i32_opcode, zero_of,
)
from .options import CompilerOptions, EntryStyle, ValueType
from .errors import CompileError, NameError, CalleeError, ArgumentError, TypeError


logger = logging.getLogger(__name__)

VALUE_NODES = (BinaryExpr, UnaryExpr, LetGetExpr, CallExpr, LiteralExpr)


def produces_value(node: Expr) -> bool:
    """Check if a node leaves a value on the operand stack."""
    return isinstance(node, VALUE_NODES)


class FunctionKind(Enum):
    SCRIPT = auto()     # top-level code, lowered into the entry function
    FUNCTION = auto()   # a named `fun` definition


@dataclass
class FunctionContext:
    """The function currently being generated."""
    name: str
    kind: FunctionKind
    params: List[str] = field(default_factory=list)
    locals: List[str] = field(default_factory=list)
    instructions: List[Instruction] = field(default_factory=list)

    def is_local(self, name: str) -> bool:
        return name in self.params or name in self.locals

    def add_local(self, name: str) -> None:
        if not self.is_local(name):
            self.locals.append(name)

    def to_function(self, result: Optional[ValueType]) -> Function:
        return Function(
            name=self.name,
            params=list(self.params),
            result=result,
            locals=list(self.locals),
            body=list(self.instructions),
        )


class CodeGenerator(ASTVisitor):
    """Generates a target Module from an AST."""

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()
        self.module: Optional[Module] = None
        self.contexts: List[FunctionContext] = []
        self.signatures: Dict[str, int] = {}   # function name -> arity

    @property
    def value_type(self) -> ValueType:
        return self.options.value_type

    @property
    def current(self) -> FunctionContext:
        return self.contexts[-1]

    def generate(self, program: Program) -> Module:
        """Generate a module from a program AST."""
        entry = self.options.entry.function_name
        self.module = Module(
            value_type=self.value_type,
            entry=entry,
            import_module=self.options.import_module,
            memory=self.options.memory,
        )
        self.contexts = [FunctionContext(entry, FunctionKind.SCRIPT)]
        self.signatures = {}

        returns_value = self.options.entry == EntryStyle.EXPRESSION
        program.accept(self)

        script = self.contexts.pop()
        self.module.add_function(
            script.to_function(self.value_type if returns_value else None))

        logger.debug(
            f"Generated module: {len(self.module.globals)} globals, "
            f"{len(self.module.functions)} functions, {len(self.module.data)} data segments")
        return self.module

    # =========================================================================
    # Helpers
    # =========================================================================

    def emit(self, instruction: Instruction) -> None:
        self.current.instructions.append(instruction)

    def emit_raw(self, mnemonic: str, operand=None) -> None:
        self.emit(Instruction.raw(mnemonic, operand))

    def emit_zero(self) -> None:
        self.emit(Instruction.const(zero_of(self.value_type)))

    def emit_from_i32(self) -> None:
        """Widen an i32 flag or address to the module value type."""
        conversion = from_i32_opcode(self.value_type)
        if conversion:
            self.emit_raw(conversion)

    def statements(self, statements: List[Expr], keep_last: bool = False) -> None:
        """
        Generate a statement list. Values of statements are dropped, except
        the last one when keep_last is set; a value-less or missing last
        statement then yields zero.
        """
        for index, stmt in enumerate(statements):
            if keep_last and index == len(statements) - 1 and self._yields_value(stmt):
                self.value(stmt)
                return

            stmt.accept(self)
            if produces_value(stmt):
                self.emit_raw("drop")

        if keep_last:
            self.emit_zero()

    def value(self, node: Expr) -> None:
        """Generate a node that must leave exactly one value on the stack."""
        node.accept(self)

        if isinstance(node, LetSetExpr):
            # Assignment used as a value: reload the cell just stored
            self.load(node.name, node.line)
        elif not produces_value(node):
            raise TypeError(f"{type(node).__name__} does not produce a value", node.line)

    def _yields_value(self, node: Expr) -> bool:
        return produces_value(node) or isinstance(node, LetSetExpr)

    def condition(self, node: Expr) -> None:
        """Generate a node as an i32 branch condition."""
        if isinstance(node, BinaryExpr) and node.operator.is_comparison():
            self.value(node.left)
            self.value(node.right)
            self.emit_raw(binary_opcode(node.operator, self.value_type))
        elif isinstance(node, UnaryExpr) and node.operator == UnaryOperator.NOT:
            self.value(node.operand)
            self.emit_is_zero()
        else:
            self.value(node)
            if self.value_type != ValueType.I32:
                self.emit_zero()
                self.emit_raw(f"{self.value_type.value}.ne")

    def emit_is_zero(self) -> None:
        """Replace the top of stack by an i32 flag: 1 if it was zero."""
        if self.value_type.is_float:
            self.emit_zero()
            self.emit_raw(f"{self.value_type.value}.eq")
        else:
            self.emit_raw(f"{self.value_type.value}.eqz")

    def resolve(self, name: str, line: int) -> str:
        """
        Resolve a variable name.
        Returns: 'local' or 'global'
        """
        if self.current.is_local(name):
            return 'local'
        if self.module.get_global(name) is not None:
            return 'global'
        if name in self.signatures:
            raise TypeError(f"Function '{name}' cannot be used as a value", line)
        raise NameError(f"Undefined variable '{name}'", line)

    def declare(self, name: str, line: int) -> None:
        """Check a declared name can be written as a module identifier."""
        # Text format ids are ASCII only
        if not name.isascii():
            raise NameError(f"Name '{name}' must be ASCII", line)

    def load(self, name: str, line: int) -> None:
        self.emit_raw(f"{self.resolve(name, line)}.get", name)

    def store(self, name: str, line: int) -> None:
        self.emit_raw(f"{self.resolve(name, line)}.set", name)

    def constant(self, value, line: int) -> None:
        """Emit a numeric constant, checked against an integer value type."""
        if self.value_type.is_float:
            self.emit(Instruction.const(float(value)))
            return

        if isinstance(value, float) and not value.is_integer():
            raise TypeError(
                f"Fractional literal {value} in a {self.value_type.value} module", line)

        value = int(value)
        bits = 32 if self.value_type == ValueType.I32 else 64
        if not -(1 << (bits - 1)) <= value < (1 << (bits - 1)):
            raise TypeError(
                f"Literal {value} out of range for {self.value_type.value}", line)
        self.emit(Instruction.const(value))

    # =========================================================================
    # Visitors
    # =========================================================================

    def visit_program(self, node: Program) -> None:
        keep_last = self.options.entry == EntryStyle.EXPRESSION
        self.statements(node.statements, keep_last=keep_last)

    def visit_block(self, node: BlockExpr) -> None:
        self.statements(node.body)

    def visit_binary(self, node: BinaryExpr) -> None:
        self.value(node.left)
        self.value(node.right)
        self.emit_raw(binary_opcode(node.operator, self.value_type))

        if node.operator.is_comparison():
            self.emit_from_i32()

    def visit_unary(self, node: UnaryExpr) -> None:
        self.value(node.operand)
        prefix = self.value_type.value

        if node.operator == UnaryOperator.NEGATE:
            if self.value_type.is_float:
                self.emit_raw(f"{prefix}.neg")
            else:
                self.emit(Instruction.const(-1))
                self.emit_raw(f"{prefix}.mul")
        elif node.operator == UnaryOperator.NOT:
            self.emit_is_zero()
            self.emit_from_i32()
        else:
            raise CompileError(f"Unknown unary operator: {node.operator}", node.line)

    def visit_let_assign(self, node: LetAssignExpr) -> None:
        self.declare(node.name, node.line)
        self.value(node.initializer)

        if self.current.kind == FunctionKind.FUNCTION:
            self.current.add_local(node.name)
            self.emit_raw("local.set", node.name)
        else:
            self.module.add_global(node.name)
            self.emit_raw("global.set", node.name)

    def visit_let_get(self, node: LetGetExpr) -> None:
        self.load(node.name, node.line)

    def visit_let_set(self, node: LetSetExpr) -> None:
        self.value(node.value)
        self.store(node.name, node.line)

    def visit_print(self, node: PrintExpr) -> None:
        self.value(node.value)
        self.emit(Instruction.call(LOG_FUNCTION))

    def visit_if_else(self, node: IfElseExpr) -> None:
        self.condition(node.condition)

        self.emit(Instruction.if_())
        self.statements([node.then_branch])
        self.emit(Instruction.else_())
        if node.else_branch is not None:
            self.statements([node.else_branch])
        self.emit(Instruction.end())

    def visit_function_def(self, node: FunctionDefExpr) -> None:
        if self.current.kind == FunctionKind.FUNCTION:
            raise CompileError(
                f"Function '{node.name}' cannot be defined inside '{self.current.name}'",
                node.line)
        for name in [node.name] + list(node.params):
            self.declare(name, node.line)
        if node.name in (LOG_FUNCTION, self.options.entry.function_name):
            raise NameError(f"'{node.name}' is a reserved function name", node.line)
        if node.name in self.signatures:
            raise NameError(f"Function '{node.name}' is already defined", node.line)
        if len(set(node.params)) != len(node.params):
            raise ArgumentError(f"Duplicate parameter name in '{node.name}'", node.line)

        # Registered before the body so the function can call itself
        self.signatures[node.name] = len(node.params)

        self.contexts.append(
            FunctionContext(node.name, FunctionKind.FUNCTION, params=list(node.params)))
        self.statements(node.body, keep_last=True)
        context = self.contexts.pop()

        self.module.add_function(context.to_function(self.value_type))
        logger.debug(
            f"Added function '{node.name}' ({len(node.params)} params, "
            f"{len(context.locals)} locals, {len(context.instructions)} instructions)")

    def visit_call(self, node: CallExpr) -> None:
        if not isinstance(node.callee, LetGetExpr):
            raise CalleeError(
                f"Callee must be a function name, got {type(node.callee).__name__}",
                node.line)

        name = node.callee.name
        if name not in self.signatures:
            if self.current.is_local(name) or self.module.get_global(name) is not None:
                raise CalleeError(f"'{name}' is a variable, not a function", node.line)
            raise NameError(f"Undefined function '{name}'", node.line)

        arity = self.signatures[name]
        if len(node.arguments) != arity:
            raise ArgumentError(
                f"Function '{name}' expects {arity} argument(s), got {len(node.arguments)}",
                node.line)

        for argument in node.arguments:
            self.value(argument)

        self.emit(Instruction.call(name))

    def visit_literal(self, node: LiteralExpr) -> None:
        if node.kind == LiteralKind.NUMBER:
            self.constant(node.value, node.line)
        elif node.kind == LiteralKind.TRUE:
            self.constant(1, node.line)
        elif node.kind == LiteralKind.FALSE:
            self.constant(0, node.line)
        elif node.kind == LiteralKind.STRING:
            # Strings live in linear memory; the value is their address
            offset = self.module.add_data(node.value.encode("utf-8"))
            self.emit_raw("i32.const", offset)
            self.emit_from_i32()
        else:
            raise CompileError(f"Unknown literal kind: {node.kind}", node.line)
