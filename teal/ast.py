"""
Teal Abstract Syntax Tree

Defines AST node classes for the Teal language.

Every construct is an expression node; statements are simply expressions
that appear at statement level. Nodes compare by value (source lines are
excluded from comparison) so trees can be asserted directly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Any, Union

from .tokens import TokenType
from .errors import UnexpectedTokenError


# =============================================================================
# Operators
# =============================================================================

class BinaryOperator(Enum):
    SUBTRACT = auto()
    ADD = auto()
    DIVIDE = auto()
    MULTIPLY = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()

    @classmethod
    def from_token(cls, token_type: TokenType, line: Optional[int] = None) -> 'BinaryOperator':
        try:
            return _BINARY_TOKENS[token_type]
        except KeyError:
            raise UnexpectedTokenError(token_type, line) from None

    def is_comparison(self) -> bool:
        return self in COMPARISON_OPERATORS


_BINARY_TOKENS = {
    TokenType.MINUS: BinaryOperator.SUBTRACT,
    TokenType.PLUS: BinaryOperator.ADD,
    TokenType.SLASH: BinaryOperator.DIVIDE,
    TokenType.STAR: BinaryOperator.MULTIPLY,
    TokenType.EQUAL_EQUAL: BinaryOperator.EQUAL,
    TokenType.BANG_EQUAL: BinaryOperator.NOT_EQUAL,
    TokenType.GREATER: BinaryOperator.GREATER,
    TokenType.GREATER_EQUAL: BinaryOperator.GREATER_EQUAL,
    TokenType.LESS: BinaryOperator.LESS,
    TokenType.LESS_EQUAL: BinaryOperator.LESS_EQUAL,
}

COMPARISON_OPERATORS = frozenset({
    BinaryOperator.EQUAL,
    BinaryOperator.NOT_EQUAL,
    BinaryOperator.GREATER,
    BinaryOperator.GREATER_EQUAL,
    BinaryOperator.LESS,
    BinaryOperator.LESS_EQUAL,
})


class UnaryOperator(Enum):
    NEGATE = auto()
    NOT = auto()

    @classmethod
    def from_token(cls, token_type: TokenType, line: Optional[int] = None) -> 'UnaryOperator':
        if token_type == TokenType.MINUS:
            return cls.NEGATE
        if token_type == TokenType.BANG:
            return cls.NOT
        raise UnexpectedTokenError(token_type, line)


class LiteralKind(Enum):
    NUMBER = auto()
    STRING = auto()
    TRUE = auto()
    FALSE = auto()


# =============================================================================
# Base Classes
# =============================================================================

class Expr(ABC):
    """Base class for all AST nodes."""

    @abstractmethod
    def accept(self, visitor: 'ASTVisitor') -> Any:
        """Accept a visitor for traversal."""
        pass


# =============================================================================
# Nodes
# =============================================================================

@dataclass(frozen=True)
class BlockExpr(Expr):
    """Nested statement list. Does not open a new scope."""
    body: List[Expr]
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_block(self)


@dataclass(frozen=True)
class BinaryExpr(Expr):
    """Binary operator expression."""
    left: Expr
    operator: BinaryOperator
    right: Expr
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_binary(self)


@dataclass(frozen=True)
class UnaryExpr(Expr):
    """Unary operator expression (-, !)."""
    operator: UnaryOperator
    operand: Expr
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_unary(self)


@dataclass(frozen=True)
class LetAssignExpr(Expr):
    """First declaration of a variable."""
    name: str
    initializer: Expr
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_let_assign(self)


@dataclass(frozen=True)
class LetGetExpr(Expr):
    """Read of a bound name."""
    name: str
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_let_get(self)


@dataclass(frozen=True)
class LetSetExpr(Expr):
    """Write to an already bound name."""
    name: str
    value: Expr
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_let_set(self)


@dataclass(frozen=True)
class PrintExpr(Expr):
    """Hand a value to the host log function."""
    value: Expr
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_print(self)


@dataclass(frozen=True)
class IfElseExpr(Expr):
    """If statement with optional else branch."""
    condition: Expr
    then_branch: Expr
    else_branch: Optional[Expr] = None
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_if_else(self)


@dataclass(frozen=True)
class FunctionDefExpr(Expr):
    """Named function definition."""
    name: str
    params: List[str]
    body: List[Expr]
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_function_def(self)


@dataclass(frozen=True)
class CallExpr(Expr):
    """Function call expression."""
    callee: Expr
    arguments: List[Expr]
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_call(self)


@dataclass(frozen=True)
class LiteralExpr(Expr):
    """Literal value: number, string, true or false."""
    kind: LiteralKind
    value: Union[int, float, str, bool]
    line: int = field(default=0, compare=False)

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_literal(self)

    @classmethod
    def number(cls, value: Union[int, float], line: int = 0) -> 'LiteralExpr':
        return cls(LiteralKind.NUMBER, value, line)

    @classmethod
    def string(cls, value: str, line: int = 0) -> 'LiteralExpr':
        return cls(LiteralKind.STRING, value, line)

    @classmethod
    def true(cls, line: int = 0) -> 'LiteralExpr':
        return cls(LiteralKind.TRUE, True, line)

    @classmethod
    def false(cls, line: int = 0) -> 'LiteralExpr':
        return cls(LiteralKind.FALSE, False, line)


@dataclass(frozen=True)
class Program:
    """Root node of the AST: top-level statements in execution order."""
    statements: List[Expr]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_program(self)


# =============================================================================
# Visitor Interface
# =============================================================================

class ASTVisitor(ABC):
    """Visitor interface for AST traversal."""

    @abstractmethod
    def visit_block(self, node: BlockExpr) -> Any:
        pass

    @abstractmethod
    def visit_binary(self, node: BinaryExpr) -> Any:
        pass

    @abstractmethod
    def visit_unary(self, node: UnaryExpr) -> Any:
        pass

    @abstractmethod
    def visit_let_assign(self, node: LetAssignExpr) -> Any:
        pass

    @abstractmethod
    def visit_let_get(self, node: LetGetExpr) -> Any:
        pass

    @abstractmethod
    def visit_let_set(self, node: LetSetExpr) -> Any:
        pass

    @abstractmethod
    def visit_print(self, node: PrintExpr) -> Any:
        pass

    @abstractmethod
    def visit_if_else(self, node: IfElseExpr) -> Any:
        pass

    @abstractmethod
    def visit_function_def(self, node: FunctionDefExpr) -> Any:
        pass

    @abstractmethod
    def visit_call(self, node: CallExpr) -> Any:
        pass

    @abstractmethod
    def visit_literal(self, node: LiteralExpr) -> Any:
        pass

    @abstractmethod
    def visit_program(self, node: Program) -> Any:
        pass


# =============================================================================
# AST Printer (for debugging)
# =============================================================================

class ASTPrinter(ASTVisitor):
    """Prints AST for debugging."""

    def __init__(self):
        self.indent = 0

    def print(self, node) -> str:
        return node.accept(self)

    def _indent(self) -> str:
        return "  " * self.indent

    def _nested(self, header: str, *children: Expr) -> str:
        self.indent += 1
        lines = [child.accept(self) for child in children]
        self.indent -= 1
        return "\n".join([f"{self._indent()}{header}"] + lines)

    def visit_block(self, node: BlockExpr) -> str:
        return self._nested("Block", *node.body)

    def visit_binary(self, node: BinaryExpr) -> str:
        return self._nested(f"Binary({node.operator.name})", node.left, node.right)

    def visit_unary(self, node: UnaryExpr) -> str:
        return self._nested(f"Unary({node.operator.name})", node.operand)

    def visit_let_assign(self, node: LetAssignExpr) -> str:
        return self._nested(f"LetAssign({node.name})", node.initializer)

    def visit_let_get(self, node: LetGetExpr) -> str:
        return f"{self._indent()}LetGet({node.name})"

    def visit_let_set(self, node: LetSetExpr) -> str:
        return self._nested(f"LetSet({node.name})", node.value)

    def visit_print(self, node: PrintExpr) -> str:
        return self._nested("Print", node.value)

    def visit_if_else(self, node: IfElseExpr) -> str:
        branches = [node.condition, node.then_branch]
        if node.else_branch is not None:
            branches.append(node.else_branch)
        return self._nested("IfElse", *branches)

    def visit_function_def(self, node: FunctionDefExpr) -> str:
        params = ", ".join(node.params)
        return self._nested(f"FunctionDef({node.name}({params}))", *node.body)

    def visit_call(self, node: CallExpr) -> str:
        return self._nested("Call", node.callee, *node.arguments)

    def visit_literal(self, node: LiteralExpr) -> str:
        return f"{self._indent()}Literal({node.value!r})"

    def visit_program(self, node: Program) -> str:
        stmts = [stmt.accept(self) for stmt in node.statements]
        return "\n".join(["Program"] + stmts)
