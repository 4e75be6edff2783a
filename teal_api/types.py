"""
Teal Value Helpers

numpy representations of the four module value types.
"""

from typing import Any, Union

import numpy as np

from teal.options import ValueType


DTYPES = {
    ValueType.I32: np.int32,
    ValueType.I64: np.int64,
    ValueType.F32: np.float32,
    ValueType.F64: np.float64,
}

BITS = {
    ValueType.I32: 32,
    ValueType.I64: 64,
}

Number = Union[np.int32, np.int64, np.float32, np.float64]


def dtype_of(value_type: ValueType) -> type:
    """Get the numpy scalar type of a value type."""
    return DTYPES[value_type]


def wrap_int(value: int, value_type: ValueType) -> int:
    """Wrap an unbounded integer into the signed range of value_type."""
    bits = BITS[value_type]
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def to_unsigned(value: Any, value_type: ValueType) -> int:
    """Reinterpret an integer value as unsigned."""
    return int(value) & ((1 << BITS[value_type]) - 1)


def coerce(value: Any, value_type: ValueType) -> Number:
    """
    Convert a Python or numpy number to the scalar type of value_type.

    Integers wrap around like WebAssembly integers; floats round to the
    nearest representable value.
    """
    dtype = DTYPES[value_type]
    if value_type.is_float:
        return dtype(value)
    return dtype(wrap_int(int(value), value_type))


def zero(value_type: ValueType) -> Number:
    return DTYPES[value_type](0)


def to_python(value: Any) -> Any:
    """Convert a numpy scalar back to a plain Python number."""
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


def format_number(value: Any) -> str:
    """
    Format a logged value.

    Integral floats print without a fraction (`1`), others in their
    shortest form (`2.5`); non-finite values print as `inf`, `-inf` and
    `NaN`.
    """
    if isinstance(value, (bool, np.bool_)):
        return str(int(value))
    if isinstance(value, (int, np.integer)):
        return str(int(value))

    if np.isnan(value):
        return "NaN"
    if np.isinf(value):
        return "inf" if value > 0 else "-inf"
    if not isinstance(value, np.floating):
        value = np.float64(value)
    return np.format_float_positional(value, trim='-')
