"""
Teal Target Module

Defines the instruction model, the operator-to-opcode tables and the
compiled module container handed to the writer.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Union

from .ast import BinaryOperator
from .options import ValueType, EntryStyle


LOG_FUNCTION = "log"
MEMORY_NAME = "memory"
PAGE_SIZE = 64 * 1024


# =============================================================================
# Instructions
# =============================================================================

class InstrKind(Enum):
    """Instruction kinds."""
    CONST = auto()   # push a constant of the module value type
    CALL = auto()    # operand: function name
    RAW = auto()     # fixed mnemonic, optional $name or numeric immediate
    IF = auto()
    ELSE = auto()
    END = auto()


Operand = Union[None, int, float, str]


@dataclass(frozen=True)
class Instruction:
    """A single instruction of a function body."""

    kind: InstrKind
    mnemonic: Optional[str] = None
    operand: Operand = None

    @classmethod
    def const(cls, value: Union[int, float]) -> 'Instruction':
        return cls(InstrKind.CONST, operand=value)

    @classmethod
    def call(cls, name: str) -> 'Instruction':
        return cls(InstrKind.CALL, "call", name)

    @classmethod
    def raw(cls, mnemonic: str, operand: Operand = None) -> 'Instruction':
        return cls(InstrKind.RAW, mnemonic, operand)

    @classmethod
    def if_(cls) -> 'Instruction':
        return cls(InstrKind.IF)

    @classmethod
    def else_(cls) -> 'Instruction':
        return cls(InstrKind.ELSE)

    @classmethod
    def end(cls) -> 'Instruction':
        return cls(InstrKind.END)

    def __repr__(self) -> str:
        if self.kind == InstrKind.CONST:
            return f"Instruction(const {self.operand!r})"
        if self.kind in (InstrKind.CALL, InstrKind.RAW):
            if self.operand is None:
                return f"Instruction({self.mnemonic})"
            return f"Instruction({self.mnemonic} {self.operand!r})"
        return f"Instruction({self.kind.name.lower()})"


# =============================================================================
# Opcode tables
# =============================================================================

_ARITHMETIC = {
    BinaryOperator.ADD: "add",
    BinaryOperator.SUBTRACT: "sub",
    BinaryOperator.MULTIPLY: "mul",
}

_EQUALITY = {
    BinaryOperator.EQUAL: "eq",
    BinaryOperator.NOT_EQUAL: "ne",
}

_ORDERING = {
    BinaryOperator.LESS: "lt",
    BinaryOperator.LESS_EQUAL: "le",
    BinaryOperator.GREATER: "gt",
    BinaryOperator.GREATER_EQUAL: "ge",
}


def binary_opcode(op: BinaryOperator, value_type: ValueType) -> str:
    """
    Get the mnemonic for a binary operator.

    Integer modules use signed division and signed comparisons.
    """
    prefix = value_type.value

    if op in _ARITHMETIC:
        return f"{prefix}.{_ARITHMETIC[op]}"
    if op == BinaryOperator.DIVIDE:
        return f"{prefix}.div" if value_type.is_float else f"{prefix}.div_s"
    if op in _EQUALITY:
        return f"{prefix}.{_EQUALITY[op]}"
    if op in _ORDERING:
        suffix = "" if value_type.is_float else "_s"
        return f"{prefix}.{_ORDERING[op]}{suffix}"
    raise ValueError(f"Unknown binary operator: {op}")


def from_i32_opcode(value_type: ValueType) -> Optional[str]:
    """Mnemonic converting an i32 (flag or address) to value_type, if needed."""
    if value_type == ValueType.I32:
        return None
    if value_type == ValueType.I64:
        return "i64.extend_i32_u"
    return f"{value_type.value}.convert_i32_u"


def zero_of(value_type: ValueType) -> Union[int, float]:
    return 0.0 if value_type.is_float else 0


# =============================================================================
# Module
# =============================================================================

@dataclass
class Global:
    """A module-level storage cell."""
    name: str
    mutable: bool
    value_type: ValueType


@dataclass
class DataSegment:
    """Constant bytes placed in linear memory at offset."""
    offset: int
    data: bytes


@dataclass
class Function:
    """A compiled function. Parameters and locals use the module value type."""
    name: str
    params: List[str] = field(default_factory=list)
    result: Optional[ValueType] = None
    locals: List[str] = field(default_factory=list)
    body: List[Instruction] = field(default_factory=list)

    @property
    def arity(self) -> int:
        return len(self.params)


@dataclass
class Export:
    """An export declaration: (export "name" (kind $ref))."""
    name: str
    kind: str   # "func" or "memory"
    ref: str


@dataclass
class Module:
    """Container for a compiled Teal module."""

    value_type: ValueType = ValueType.F64
    entry: str = EntryStyle.SCRIPT.function_name
    import_module: str = "env"
    memory: bool = False
    globals: List[Global] = field(default_factory=list)
    data: List[DataSegment] = field(default_factory=list)
    functions: List[Function] = field(default_factory=list)

    def add_global(self, name: str) -> Global:
        """Add a mutable global, or return the existing one with that name."""
        existing = self.get_global(name)
        if existing is not None:
            return existing

        global_ = Global(name, True, self.value_type)
        self.globals.append(global_)
        return global_

    def get_global(self, name: str) -> Optional[Global]:
        for global_ in self.globals:
            if global_.name == name:
                return global_
        return None

    def add_data(self, data: bytes) -> int:
        """Add bytes to the data segment, returning their memory offset."""
        for segment in self.data:
            if segment.data == data:
                return segment.offset

        offset = self.data_size
        self.data.append(DataSegment(offset, data))
        return offset

    @property
    def data_size(self) -> int:
        if not self.data:
            return 0
        last = self.data[-1]
        return last.offset + len(last.data)

    def add_function(self, function: Function) -> None:
        self.functions.append(function)

    def get_function(self, name: str) -> Optional[Function]:
        for function in self.functions:
            if function.name == name:
                return function
        return None

    @property
    def has_memory(self) -> bool:
        return self.memory or bool(self.data)

    @property
    def memory_pages(self) -> int:
        """Number of 64KiB pages needed for the data segments (at least 1)."""
        return max(1, -(-self.data_size // PAGE_SIZE))

    @property
    def exports(self) -> List[Export]:
        exports = [Export(self.entry, "func", self.entry)]
        if self.has_memory:
            exports.append(Export(MEMORY_NAME, "memory", MEMORY_NAME))
        return exports
