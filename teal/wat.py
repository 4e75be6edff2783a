"""
Teal Module Text Format

Serializes a Module to WebAssembly text (the writer), and reads that same
subset of the text format back into a Module (the reader).

Layout, in fixed order:

    (module
      (import "env" "log" (func $log (param f64)))
      (memory $memory 1)
      (global $x (mut f64) (f64.const 0))
      (data (i32.const 0) "abc")
      (func $main
        f64.const 10
        global.set $x
      )
      (export "main" (func $main))
      (export "memory" (memory $memory))
    )
"""

import math
import re
from dataclasses import dataclass
from typing import List, Union

from .module import (
    Module, Global, DataSegment, Function, Instruction, InstrKind,
    LOG_FUNCTION, MEMORY_NAME,
)
from .options import ValueType
from .errors import ReadError


INDENT = "  "

# Mnemonics followed by one immediate
IMMEDIATE_MNEMONICS = frozenset({
    "call", "local.get", "local.set", "local.tee", "global.get", "global.set",
    "i32.const", "i64.const", "f32.const", "f64.const",
})

_INT_RE = re.compile(r"^[+-]?\d+$")


def format_number(value: Union[int, float]) -> str:
    """Render a numeric immediate. Integral floats are written without '.0'."""
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        text = str(int(value))
        return "-0" if text == "0" and math.copysign(1.0, value) < 0 else text
    return repr(value)


def escape_bytes(data: bytes) -> str:
    """Escape bytes as a text-format string body."""
    out = []
    for byte in data:
        c = chr(byte)
        if c in '"\\' or not 0x20 <= byte < 0x7f:
            out.append(f"\\{byte:02x}")
        else:
            out.append(c)
    return "".join(out)


# =============================================================================
# Writer
# =============================================================================

class ModuleWriter:
    """Renders a Module as WebAssembly text. Pure serialization."""

    def __init__(self, module: Module):
        self.module = module
        self.lines: List[str] = []

    def write(self) -> str:
        """Serialize the module to text."""
        self.lines = ["(module"]
        vt = self.module.value_type.value

        self.line(1, f'(import "{self.module.import_module}" "{LOG_FUNCTION}" '
                     f'(func ${LOG_FUNCTION} (param {vt})))')

        if self.module.has_memory:
            self.line(1, f"(memory ${MEMORY_NAME} {self.module.memory_pages})")

        for global_ in self.module.globals:
            self.write_global(global_)

        for segment in self.module.data:
            self.line(1, f'(data (i32.const {segment.offset}) "{escape_bytes(segment.data)}")')

        for function in self.module.functions:
            self.write_function(function)

        for export in self.module.exports:
            self.line(1, f'(export "{export.name}" ({export.kind} ${export.ref}))')

        self.lines.append(")")
        return "\n".join(self.lines) + "\n"

    def line(self, depth: int, text: str) -> None:
        self.lines.append(INDENT * depth + text)

    def write_global(self, global_: Global) -> None:
        vt = global_.value_type.value
        type_ = f"(mut {vt})" if global_.mutable else vt
        self.line(1, f"(global ${global_.name} {type_} ({vt}.const 0))")

    def write_function(self, function: Function) -> None:
        vt = self.module.value_type.value

        header = [f"(func ${function.name}"]
        header.extend(f"(param ${param} {vt})" for param in function.params)
        if function.result is not None:
            header.append(f"(result {function.result.value})")
        self.line(1, " ".join(header))

        for local in function.locals:
            self.line(2, f"(local ${local} {vt})")

        depth = 2
        for instruction in function.body:
            depth = self.write_instruction(instruction, depth)

        self.line(1, ")")

    def write_instruction(self, instruction: Instruction, depth: int) -> int:
        """Write one instruction; returns the nesting depth that follows it."""
        kind = instruction.kind

        if kind == InstrKind.IF:
            self.line(depth, "(if")
            self.line(depth + 1, "(then")
            return depth + 2
        if kind == InstrKind.ELSE:
            self.line(depth - 1, ")")
            self.line(depth - 1, "(else")
            return depth
        if kind == InstrKind.END:
            self.line(depth - 1, ")")
            self.line(depth - 2, ")")
            return depth - 2

        self.line(depth, self.render(instruction))
        return depth

    def render(self, instruction: Instruction) -> str:
        if instruction.kind == InstrKind.CONST:
            return f"{self.module.value_type.value}.const {format_number(instruction.operand)}"

        operand = instruction.operand
        if operand is None:
            return instruction.mnemonic
        if isinstance(operand, str):
            return f"{instruction.mnemonic} ${operand}"
        return f"{instruction.mnemonic} {format_number(operand)}"


def write_module(module: Module) -> str:
    """Serialize a module to WebAssembly text."""
    return ModuleWriter(module).write()


# =============================================================================
# Reader
# =============================================================================

@dataclass(frozen=True)
class WatString:
    """A string token, already unescaped."""
    data: bytes


SExpr = Union[str, WatString, list]


def tokenize_wat(text: str) -> List[Union[str, WatString]]:
    """Split module text into parens, atoms and strings, skipping comments."""
    tokens: List[Union[str, WatString]] = []
    i = 0
    n = len(text)

    while i < n:
        c = text[i]

        if c in " \t\r\n":
            i += 1
        elif text.startswith(";;", i):
            while i < n and text[i] != "\n":
                i += 1
        elif text.startswith("(;", i):
            end = text.find(";)", i + 2)
            if end < 0:
                raise ReadError("Unterminated block comment")
            i = end + 2
        elif c in "()":
            tokens.append(c)
            i += 1
        elif c == '"':
            data, i = _read_string(text, i + 1)
            tokens.append(WatString(data))
        elif c == ";":
            raise ReadError(f"Unexpected ';' at offset {i}")
        else:
            start = i
            while i < n and text[i] not in ' \t\r\n()";':
                i += 1
            tokens.append(text[start:i])

    return tokens


def _read_string(text: str, i: int):
    out = bytearray()
    n = len(text)

    while i < n and text[i] != '"':
        c = text[i]
        if c != "\\":
            out.extend(c.encode("utf-8"))
            i += 1
            continue

        escape = text[i + 1:i + 2]
        named = {"n": b"\n", "t": b"\t", "r": b"\r", '"': b'"', "'": b"'", "\\": b"\\"}
        if escape in named:
            out.extend(named[escape])
            i += 2
        elif re.match(r"[0-9a-fA-F]{2}", text[i + 1:i + 3]):
            out.append(int(text[i + 1:i + 3], 16))
            i += 3
        else:
            raise ReadError(f"Invalid string escape: \\{escape}")

    if i >= n:
        raise ReadError("Unterminated string")
    return bytes(out), i + 1


def parse_sexprs(tokens: List[Union[str, WatString]]) -> List[SExpr]:
    """Build nested lists from a token stream."""
    stack: List[list] = [[]]

    for token in tokens:
        if token == "(":
            stack.append([])
        elif token == ")":
            if len(stack) == 1:
                raise ReadError("Unbalanced ')'")
            closed = stack.pop()
            stack[-1].append(closed)
        else:
            stack[-1].append(token)

    if len(stack) != 1:
        raise ReadError("Unbalanced '('")
    return stack[0]


class ModuleReader:
    """Reads the writer's text format back into a Module."""

    def __init__(self, text: str):
        self.text = text
        self.value_type = ValueType.F64

    def read(self) -> Module:
        forms = parse_sexprs(tokenize_wat(self.text))
        if len(forms) != 1 or not isinstance(forms[0], list) or forms[0][:1] != ["module"]:
            raise ReadError("Expected a single (module ...) form")

        fields = forms[0][1:]
        module = Module()

        imports = [f for f in fields if _head(f) == "import"]
        self.read_import(imports, module)

        for form in fields:
            head = _head(form)
            if head == "import":
                continue
            elif head == "memory":
                module.memory = True
            elif head == "global":
                module.globals.append(self.read_global(form))
            elif head == "data":
                module.data.append(self.read_data(form))
            elif head == "func":
                module.functions.append(self.read_function(form))
            elif head == "export":
                self.read_export(form, module)
            else:
                raise ReadError(f"Unsupported module field: {head}")

        # Data segments imply memory; only a data-less memory is forced
        module.memory = module.memory and not module.data
        return module

    def read_import(self, imports: List[list], module: Module) -> None:
        for form in imports:
            # (import "env" "log" (func $log (param f64)))
            if (len(form) == 4 and isinstance(form[1], WatString)
                    and form[2] == WatString(LOG_FUNCTION.encode())
                    and _head(form[3]) == "func"):
                params = [p for p in form[3][2:] if _head(p) == "param"]
                if len(params) != 1 or len(params[0]) != 2:
                    raise ReadError("The log import must take exactly one parameter")
                self.value_type = _value_type(params[0][1])
                module.value_type = self.value_type
                module.import_module = form[1].data.decode("utf-8")
                return
            raise ReadError("Unsupported import")
        raise ReadError("Missing log import")

    def read_global(self, form: list) -> Global:
        # (global $x (mut f64) (f64.const 0))
        if len(form) != 4:
            raise ReadError("Malformed global")
        name = _name(form[1])
        type_ = form[2]
        if isinstance(type_, list) and _head(type_) == "mut":
            return Global(name, True, _value_type(type_[1]))
        return Global(name, False, _value_type(type_))

    def read_data(self, form: list) -> DataSegment:
        # (data (i32.const 0) "bytes")
        if (len(form) != 3 or not isinstance(form[1], list)
                or len(form[1]) != 2 or form[1][0] != "i32.const" or not isinstance(form[2], WatString)):
            raise ReadError("Malformed data segment")
        return DataSegment(_number(form[1][1], False), form[2].data)

    def read_export(self, form: list, module: Module) -> None:
        # (export "main" (func $main)) / (export "memory" (memory $memory))
        if (len(form) != 3 or not isinstance(form[1], WatString)
                or not isinstance(form[2], list) or len(form[2]) != 2):
            raise ReadError("Malformed export")
        if _head(form[2]) == "func":
            module.entry = _name(form[2][1])
        elif _head(form[2]) != "memory":
            raise ReadError(f"Unsupported export kind: {_head(form[2])}")

    def read_function(self, form: list) -> Function:
        if len(form) < 2:
            raise ReadError("Function without a name")
        function = Function(_name(form[1]))
        items = form[2:]

        while items and isinstance(items[0], list) and _head(items[0]) in ("param", "result", "local"):
            head, rest = items[0][0], items[0][1:]
            if head == "param":
                function.params.append(_name(rest[0]))
            elif head == "result":
                function.result = _value_type(rest[0])
            else:
                function.locals.append(_name(rest[0]))
            items = items[1:]

        function.body = self.read_instructions(items)
        return function

    def read_instructions(self, items: List[SExpr]) -> List[Instruction]:
        body: List[Instruction] = []
        i = 0

        while i < len(items):
            item = items[i]
            i += 1

            if isinstance(item, list):
                body.extend(self.read_if(item))
                continue
            if not isinstance(item, str):
                raise ReadError("Unexpected string in function body")

            if item in IMMEDIATE_MNEMONICS:
                if i >= len(items) or not isinstance(items[i], str):
                    raise ReadError(f"Missing immediate for {item}")
                body.append(self.read_immediate(item, items[i]))
                i += 1
            else:
                body.append(Instruction.raw(item))

        return body

    def read_immediate(self, mnemonic: str, atom: str) -> Instruction:
        if mnemonic == "call":
            return Instruction.call(_name(atom))
        if mnemonic == f"{self.value_type.value}.const":
            return Instruction.const(_number(atom, self.value_type.is_float))
        if mnemonic.endswith(".const"):
            return Instruction.raw(mnemonic, _number(atom, mnemonic[0] == "f"))
        return Instruction.raw(mnemonic, _name(atom))

    def read_if(self, form: list) -> List[Instruction]:
        # (if (then ...) (else ...))
        if _head(form) != "if" or not 2 <= len(form) <= 3 or _head(form[1]) != "then":
            raise ReadError(f"Unsupported folded form: {_head(form)}")

        body = [Instruction.if_()]
        body.extend(self.read_instructions(form[1][1:]))
        if len(form) == 3:
            if _head(form[2]) != "else":
                raise ReadError("Expected (else ...)")
            body.append(Instruction.else_())
            body.extend(self.read_instructions(form[2][1:]))
        body.append(Instruction.end())
        return body


def read_module(text: str) -> Module:
    """Read WebAssembly text written by ModuleWriter back into a Module."""
    return ModuleReader(text).read()


def _head(form: SExpr):
    if isinstance(form, list) and form and isinstance(form[0], str):
        return form[0]
    return None


def _name(atom: SExpr) -> str:
    if not isinstance(atom, str) or not atom.startswith("$"):
        raise ReadError(f"Expected a $name, got {atom!r}")
    return atom[1:]


def _value_type(atom: SExpr) -> ValueType:
    try:
        return ValueType(atom)
    except ValueError:
        raise ReadError(f"Unknown value type: {atom!r}") from None


def _number(atom: str, is_float: bool) -> Union[int, float]:
    try:
        if is_float:
            return float(atom)
        if _INT_RE.match(atom):
            return int(atom)
    except ValueError:
        pass
    raise ReadError(f"Invalid numeric immediate: {atom!r}")
