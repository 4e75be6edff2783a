"""
Teal Compiler Options

One numeric value type and one entry style per compilation unit.
"""

from dataclasses import dataclass
from enum import Enum


class ValueType(Enum):
    """Numeric representation used for every value in a module."""
    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"

    @property
    def is_float(self) -> bool:
        return self in (ValueType.F32, ValueType.F64)

    @property
    def is_integer(self) -> bool:
        return not self.is_float


class EntryStyle(Enum):
    """
    How top-level code is exposed to the host.

    SCRIPT: exported as `main`, runs eagerly and returns nothing.
    EXPRESSION: exported as `init`, returns the value of the last
    top-level statement.
    """
    SCRIPT = "main"
    EXPRESSION = "init"

    @property
    def function_name(self) -> str:
        return self.value


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        value_type: Numeric type of every value, global, parameter and result
        entry: Entry function style (`main` or `init`)
        memory: Always declare and export a linear memory region. Memory is
                declared anyway as soon as a string literal needs data.
        import_module: Module name the host `log` function is imported from
    """
    value_type: ValueType = ValueType.F64
    entry: EntryStyle = EntryStyle.SCRIPT
    memory: bool = False
    import_module: str = "env"

    def __post_init__(self):
        # Accept plain strings from the CLI and config files
        if isinstance(self.value_type, str):
            self.value_type = ValueType(self.value_type)
        if isinstance(self.entry, str):
            self.entry = EntryStyle(self.entry)
