"""
Teal Reference Interpreter

A Python stack machine for compiled Teal modules.
Used to run modules and check their output without a WebAssembly engine.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from teal.module import Module, Function, Instruction, InstrKind, LOG_FUNCTION, PAGE_SIZE
from teal.options import ValueType
from teal.errors import RuntimeError

from .types import coerce, zero, to_unsigned, wrap_int


logger = logging.getLogger(__name__)

MAX_CALL_DEPTH = 200

VALUE_TYPES = {vt.value: vt for vt in ValueType}


@dataclass
class CallFrame:
    """A function activation."""
    function: Function
    locals: Dict[str, Any]
    stack: List[Any] = field(default_factory=list)
    pc: int = 0


def build_jump_table(body: List[Instruction]) -> Dict[int, int]:
    """
    Match structured control markers.

    Maps each IF to the instruction after its ELSE (or its END when there
    is no ELSE), and each ELSE to its END.
    """
    jumps: Dict[int, int] = {}
    open_ifs: List[List[int]] = []

    for index, instruction in enumerate(body):
        if instruction.kind == InstrKind.IF:
            open_ifs.append([index])
        elif instruction.kind == InstrKind.ELSE:
            if not open_ifs or len(open_ifs[-1]) != 1:
                raise RuntimeError(f"Unmatched else at instruction {index}")
            open_ifs[-1].append(index)
        elif instruction.kind == InstrKind.END:
            if not open_ifs:
                raise RuntimeError(f"Unmatched end at instruction {index}")
            markers = open_ifs.pop()
            if len(markers) == 2:
                jumps[markers[0]] = markers[1] + 1
                jumps[markers[1]] = index
            else:
                jumps[markers[0]] = index

    if open_ifs:
        raise RuntimeError("Unterminated if block")
    return jumps


class Interpreter:
    """
    CPU interpreter for a target Module.

    Follows WebAssembly semantics for the instructions the compiler emits:
    wrapping integers, trapping integer division, IEEE floats and i32
    comparison results.
    """

    def __init__(self, module: Module, imports: Dict[str, Callable]):
        """
        Instantiate a module.

        Args:
            module: Compiled module
            imports: Host functions by name; must provide `log`
        """
        if LOG_FUNCTION not in imports:
            raise RuntimeError(f"Missing import: {module.import_module}.{LOG_FUNCTION}")

        self.module = module
        self.imports = imports
        self.value_type = module.value_type
        self.globals: Dict[str, Any] = {
            g.name: zero(g.value_type) for g in module.globals
        }
        self.memory: Optional[np.ndarray] = None
        if module.has_memory:
            self.memory = np.zeros(module.memory_pages * PAGE_SIZE, dtype=np.uint8)
            for segment in module.data:
                data = np.frombuffer(segment.data, dtype=np.uint8)
                self.memory[segment.offset:segment.offset + len(data)] = data

        self._jumps: Dict[str, Dict[int, int]] = {}
        self.depth = 0

    def invoke(self, name: str, *args) -> Any:
        """
        Call an exported or internal function.

        Returns:
            The function's result as a numpy scalar, or None
        """
        function = self.module.get_function(name)
        if function is None:
            raise RuntimeError(f"Unknown function: {name}")
        if len(args) != function.arity:
            raise RuntimeError(
                f"Function '{name}' expects {function.arity} argument(s), got {len(args)}")

        logger.debug(f"Invoking '{name}' with {len(args)} argument(s)")
        return self.call(function, [coerce(a, self.value_type) for a in args])

    def read_bytes(self, offset: int, length: int) -> bytes:
        """Read raw bytes from linear memory."""
        if self.memory is None:
            raise RuntimeError("Module has no memory")
        if offset < 0 or offset + length > len(self.memory):
            raise RuntimeError(f"Memory access out of bounds: {offset}+{length}")
        return self.memory[offset:offset + length].tobytes()

    # =========================================================================
    # Execution
    # =========================================================================

    def call(self, function: Function, args: List[Any]) -> Any:
        if self.depth >= MAX_CALL_DEPTH:
            raise RuntimeError(f"Call stack exhausted in '{function.name}'")

        frame = CallFrame(function, dict(zip(function.params, args)))
        for name in function.locals:
            frame.locals[name] = zero(self.value_type)

        self.depth += 1
        try:
            self.run(frame)
        finally:
            self.depth -= 1

        expected = 0 if function.result is None else 1
        if len(frame.stack) != expected:
            raise RuntimeError(
                f"Function '{function.name}' left {len(frame.stack)} value(s), "
                f"expected {expected}")
        return frame.stack[0] if expected else None

    def jumps_for(self, function: Function) -> Dict[int, int]:
        if function.name not in self._jumps:
            self._jumps[function.name] = build_jump_table(function.body)
        return self._jumps[function.name]

    def run(self, frame: CallFrame) -> None:
        body = frame.function.body
        jumps = self.jumps_for(frame.function)

        while frame.pc < len(body):
            instruction = body[frame.pc]
            frame.pc += 1
            kind = instruction.kind

            if kind == InstrKind.CONST:
                frame.stack.append(coerce(instruction.operand, self.value_type))

            elif kind == InstrKind.IF:
                condition = self.pop(frame)
                if not condition:
                    frame.pc = jumps[frame.pc - 1]

            elif kind == InstrKind.ELSE:
                # End of the taken branch
                frame.pc = jumps[frame.pc - 1]

            elif kind == InstrKind.END:
                pass

            elif kind == InstrKind.CALL:
                self.execute_call(frame, instruction.operand)

            else:
                self.execute(frame, instruction)

    def execute_call(self, frame: CallFrame, name: str) -> None:
        if name == LOG_FUNCTION:
            self.imports[LOG_FUNCTION](self.pop(frame))
            return

        function = self.module.get_function(name)
        if function is None:
            raise RuntimeError(f"Call to unknown function: {name}")

        args = [self.pop(frame) for _ in range(function.arity)]
        args.reverse()
        result = self.call(function, args)
        if result is not None:
            frame.stack.append(result)

    def execute(self, frame: CallFrame, instruction: Instruction) -> None:
        mnemonic = instruction.mnemonic
        operand = instruction.operand

        if mnemonic == "drop":
            self.pop(frame)
        elif mnemonic == "local.get":
            frame.stack.append(self.local(frame, operand))
        elif mnemonic == "local.set":
            self.local(frame, operand)
            frame.locals[operand] = self.pop(frame)
        elif mnemonic == "global.get":
            frame.stack.append(self.global_(operand))
        elif mnemonic == "global.set":
            self.global_(operand)
            self.globals[operand] = self.pop(frame)
        else:
            self.numeric(frame, mnemonic, operand)

    def numeric(self, frame: CallFrame, mnemonic: str, operand: Any) -> None:
        prefix, _, op = mnemonic.partition(".")
        value_type = VALUE_TYPES.get(prefix)
        if value_type is None or not op:
            raise RuntimeError(f"Unknown instruction: {mnemonic}")

        if op == "const":
            frame.stack.append(coerce(operand, value_type))
            return

        if op in UNARY_OPS:
            a = self.pop(frame)
            frame.stack.append(UNARY_OPS[op](a, value_type))
            return

        if op in BINARY_OPS:
            b = self.pop(frame)
            a = self.pop(frame)
            frame.stack.append(BINARY_OPS[op](a, b, value_type))
            return

        raise RuntimeError(f"Unknown instruction: {mnemonic}")

    # =========================================================================
    # Helpers
    # =========================================================================

    def pop(self, frame: CallFrame) -> Any:
        if not frame.stack:
            raise RuntimeError(f"Stack underflow in '{frame.function.name}'")
        return frame.stack.pop()

    def local(self, frame: CallFrame, name: str) -> Any:
        if name not in frame.locals:
            raise RuntimeError(f"Unknown local '{name}' in '{frame.function.name}'")
        return frame.locals[name]

    def global_(self, name: str) -> Any:
        if name not in self.globals:
            raise RuntimeError(f"Unknown global '{name}'")
        return self.globals[name]


# =============================================================================
# Numeric operations
# =============================================================================

def _flag(value: bool) -> np.int32:
    return np.int32(1 if value else 0)


def _integer(op: Callable[[int, int], int]) -> Callable:
    def apply(a, b, value_type: ValueType):
        return coerce(wrap_int(op(int(a), int(b)), value_type), value_type)
    return apply


def _float(op: Callable) -> Callable:
    def apply(a, b, value_type: ValueType):
        with np.errstate(all='ignore'):
            return coerce(op(a, b), value_type)
    return apply


def _add(a, b, value_type: ValueType):
    if value_type.is_float:
        return _float(lambda x, y: x + y)(a, b, value_type)
    return _integer(lambda x, y: x + y)(a, b, value_type)


def _sub(a, b, value_type: ValueType):
    if value_type.is_float:
        return _float(lambda x, y: x - y)(a, b, value_type)
    return _integer(lambda x, y: x - y)(a, b, value_type)


def _mul(a, b, value_type: ValueType):
    if value_type.is_float:
        return _float(lambda x, y: x * y)(a, b, value_type)
    return _integer(lambda x, y: x * y)(a, b, value_type)


def _div(a, b, value_type: ValueType):
    if value_type.is_integer:
        raise RuntimeError(f"Unknown instruction: {value_type.value}.div")
    return _float(lambda x, y: x / y)(a, b, value_type)


def _div_s(a, b, value_type: ValueType):
    a, b = int(a), int(b)
    if b == 0:
        raise RuntimeError("Integer divide by zero")
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        quotient = -quotient
    if wrap_int(quotient, value_type) != quotient:
        raise RuntimeError("Integer overflow")
    return coerce(quotient, value_type)


def _compare(op: Callable) -> Callable:
    def apply(a, b, value_type: ValueType):
        if value_type.is_integer:
            a, b = int(a), int(b)
        return _flag(op(a, b))
    return apply


def _neg(a, value_type: ValueType):
    if value_type.is_integer:
        raise RuntimeError(f"Unknown instruction: {value_type.value}.neg")
    return coerce(-a, value_type)


def _eqz(a, value_type: ValueType):
    if value_type.is_float:
        raise RuntimeError(f"Unknown instruction: {value_type.value}.eqz")
    return _flag(int(a) == 0)


def _from_i32_unsigned(a, value_type: ValueType):
    return coerce(to_unsigned(a, ValueType.I32), value_type)


BINARY_OPS = {
    "add": _add,
    "sub": _sub,
    "mul": _mul,
    "div": _div,
    "div_s": _div_s,
    "eq": _compare(lambda x, y: x == y),
    "ne": _compare(lambda x, y: x != y),
    "lt": _compare(lambda x, y: x < y),
    "le": _compare(lambda x, y: x <= y),
    "gt": _compare(lambda x, y: x > y),
    "ge": _compare(lambda x, y: x >= y),
    "lt_s": _compare(lambda x, y: x < y),
    "le_s": _compare(lambda x, y: x <= y),
    "gt_s": _compare(lambda x, y: x > y),
    "ge_s": _compare(lambda x, y: x >= y),
}

UNARY_OPS = {
    "neg": _neg,
    "eqz": _eqz,
    "convert_i32_u": _from_i32_unsigned,
    "extend_i32_u": _from_i32_unsigned,
}
