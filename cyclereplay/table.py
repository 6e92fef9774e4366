"""LogTable — typed key/value snapshot of one component for one cycle.

Usage:
    from cyclereplay.table import LogTable

    table = LogTable()
    table.put("MatchTime", 134.2)
    table.put("Buttons", np.array([True, False]))

    match_time = table.get_double("MatchTime", 0.0)
    buttons = table.get_boolean_array("Buttons", np.zeros(0, dtype=bool))

A missing key never raises: every read takes a default and returns it
unchanged when the key is absent. Reading a key back as a different type
than it was written with raises LogTableTypeError. Stored arrays are
read-only snapshots; array reads return a writable copy owned by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Sequence

import numpy as np


class LogTableTypeError(TypeError):
    """A key was written or read with a type other than the one it holds."""


class LogType(str, Enum):
    """Type tag of a value stored in a LogTable."""

    BOOLEAN = "boolean"
    INTEGER = "int64"
    DOUBLE = "double"
    STRING = "string"
    BOOLEAN_ARRAY = "boolean[]"
    INTEGER_ARRAY = "int64[]"
    DOUBLE_ARRAY = "double[]"
    STRING_ARRAY = "string[]"

    @property
    def is_array(self) -> bool:
        return self.value.endswith("[]")


# numpy dtype for each numeric array type
ARRAY_DTYPES: dict[LogType, type] = {
    LogType.BOOLEAN_ARRAY: np.bool_,
    LogType.INTEGER_ARRAY: np.int64,
    LogType.DOUBLE_ARRAY: np.float64,
}


@dataclass(frozen=True, eq=False)
class LogValue:
    """A tagged value. Array payloads are read-only snapshots."""

    type: LogType
    value: Any

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LogValue):
            return NotImplemented
        if self.type != other.type:
            return False
        if self.type in ARRAY_DTYPES:
            return np.array_equal(self.value, other.value)
        return self.value == other.value

    def __repr__(self) -> str:
        return f"LogValue({self.type.value}, {self.value!r})"


INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _check_int64(value: int) -> int:
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"Integer {value} is outside the int64 range")
    return value


def _frozen_array(data: Any, log_type: LogType) -> np.ndarray:
    if log_type is LogType.INTEGER_ARRAY:
        # Python ints beyond int64 arrive as object arrays, large uint64 would wrap
        source = np.asarray(data)
        if source.dtype.kind in "uO":
            for v in source.ravel().tolist():
                _check_int64(int(v))
    arr = np.array(data, dtype=ARRAY_DTYPES[log_type], copy=True)
    if arr.ndim != 1:
        raise ValueError(f"Array values must be one-dimensional, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


def make_value(log_type: LogType, data: Any) -> LogValue:
    """Build a LogValue of an explicit type, copying array payloads."""
    if log_type is LogType.BOOLEAN:
        return LogValue(log_type, bool(data))
    if log_type is LogType.INTEGER:
        return LogValue(log_type, _check_int64(int(data)))
    if log_type is LogType.DOUBLE:
        return LogValue(log_type, float(data))
    if log_type is LogType.STRING:
        return LogValue(log_type, str(data))
    if log_type is LogType.STRING_ARRAY:
        return LogValue(log_type, tuple(str(s) for s in data))
    return LogValue(log_type, _frozen_array(data, log_type))


def infer_type(value: Any) -> LogType | None:
    """Infer the LogType of a Python or numpy value.

    Returns None for values that carry no element type (an empty list or
    tuple). Raises TypeError for unsupported values.
    """
    # bool is a subclass of int, so it has to be checked first
    if isinstance(value, (bool, np.bool_)):
        return LogType.BOOLEAN
    if isinstance(value, (int, np.integer)):
        return LogType.INTEGER
    if isinstance(value, (float, np.floating)):
        return LogType.DOUBLE
    if isinstance(value, str):
        return LogType.STRING

    if isinstance(value, np.ndarray):
        kind = value.dtype.kind
        if kind == "b":
            return LogType.BOOLEAN_ARRAY
        if kind in "iu":
            return LogType.INTEGER_ARRAY
        if kind == "f":
            return LogType.DOUBLE_ARRAY
        if kind in "UO" and all(isinstance(v, str) for v in value.tolist()):
            return LogType.STRING_ARRAY
        raise TypeError(f"Unsupported array dtype: {value.dtype}")

    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            return None
        element_types = {infer_type(v) for v in value}
        if len(element_types) != 1:
            raise TypeError(f"Array elements must share one type, got {element_types}")
        element = element_types.pop()
        if element is None or element.is_array:
            raise TypeError("Nested arrays are not supported")
        return LogType(element.value + "[]")

    raise TypeError(f"Unsupported value type: {type(value).__name__}")


def _owned(stored: LogValue) -> Any:
    """Value handed to callers; numeric arrays come back as writable copies."""
    if stored.type in ARRAY_DTYPES:
        return stored.value.copy()
    return stored.value


class LogTable:
    """Ordered mapping from string keys to typed values.

    Created fresh for every component on every cycle and never shared.
    """

    def __init__(self, values: dict[str, LogValue] | None = None) -> None:
        self._values: dict[str, LogValue] = dict(values) if values else {}

    # --- Writing ---

    def put_value(self, key: str, value: LogValue) -> None:
        """Store an already tagged value."""
        current = self._values.get(key)
        if current is not None and current.type is not value.type:
            raise LogTableTypeError(
                f"Key '{key}' holds {current.type.value}, cannot write {value.type.value}"
            )
        self._values[key] = value

    def put(self, key: str, value: Any) -> None:
        """Store a value, inferring its type.

        Empty lists and tuples have no element type; use one of the typed
        put_* methods or a typed numpy array for them.
        """
        log_type = infer_type(value)
        if log_type is None:
            raise ValueError(
                f"Cannot infer the element type of empty sequence for '{key}'. "
                "Use a typed numpy array or a put_*_array method."
            )
        self.put_value(key, make_value(log_type, value))

    def put_boolean(self, key: str, value: bool) -> None:
        self.put_value(key, make_value(LogType.BOOLEAN, value))

    def put_integer(self, key: str, value: int) -> None:
        self.put_value(key, make_value(LogType.INTEGER, value))

    def put_double(self, key: str, value: float) -> None:
        self.put_value(key, make_value(LogType.DOUBLE, value))

    def put_string(self, key: str, value: str) -> None:
        self.put_value(key, make_value(LogType.STRING, value))

    def put_boolean_array(self, key: str, value: Sequence[bool] | np.ndarray) -> None:
        self.put_value(key, make_value(LogType.BOOLEAN_ARRAY, value))

    def put_integer_array(self, key: str, value: Sequence[int] | np.ndarray) -> None:
        self.put_value(key, make_value(LogType.INTEGER_ARRAY, value))

    def put_double_array(self, key: str, value: Sequence[float] | np.ndarray) -> None:
        self.put_value(key, make_value(LogType.DOUBLE_ARRAY, value))

    def put_string_array(self, key: str, value: Sequence[str]) -> None:
        self.put_value(key, make_value(LogType.STRING_ARRAY, value))

    # --- Reading ---

    def get_value(self, key: str) -> LogValue | None:
        """Raw tagged value at key, or None."""
        return self._values.get(key)

    def get_typed(self, key: str, log_type: LogType, default: Any) -> Any:
        """Value at key read as log_type, or default when absent."""
        stored = self._values.get(key)
        if stored is None:
            return default
        if stored.type is not log_type:
            raise LogTableTypeError(
                f"Key '{key}' holds {stored.type.value}, read as {log_type.value}"
            )
        return _owned(stored)

    def get(self, key: str, default: Any = None) -> Any:
        """Stored value at key, or default unmodified when absent.

        If the default has a determinable type, the stored value must have
        the same type.
        """
        stored = self._values.get(key)
        if stored is None:
            return default
        if default is not None:
            expected = infer_type(default)
            if expected is not None and expected is not stored.type:
                raise LogTableTypeError(
                    f"Key '{key}' holds {stored.type.value}, read as {expected.value}"
                )
        return _owned(stored)

    def get_boolean(self, key: str, default: bool) -> bool:
        return self.get_typed(key, LogType.BOOLEAN, default)

    def get_integer(self, key: str, default: int) -> int:
        return self.get_typed(key, LogType.INTEGER, default)

    def get_double(self, key: str, default: float) -> float:
        return self.get_typed(key, LogType.DOUBLE, default)

    def get_string(self, key: str, default: str) -> str:
        return self.get_typed(key, LogType.STRING, default)

    def get_boolean_array(self, key: str, default: Any) -> np.ndarray:
        return self.get_typed(key, LogType.BOOLEAN_ARRAY, default)

    def get_integer_array(self, key: str, default: Any) -> np.ndarray:
        return self.get_typed(key, LogType.INTEGER_ARRAY, default)

    def get_double_array(self, key: str, default: Any) -> np.ndarray:
        return self.get_typed(key, LogType.DOUBLE_ARRAY, default)

    def get_string_array(self, key: str, default: Any) -> tuple[str, ...]:
        return self.get_typed(key, LogType.STRING_ARRAY, default)

    # --- Mapping protocol ---

    def keys(self) -> list[str]:
        return list(self._values.keys())

    def items(self) -> list[tuple[str, LogValue]]:
        return list(self._values.items())

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LogTable):
            return NotImplemented
        return self._values == other._values

    def copy(self) -> LogTable:
        # Values are immutable, a shallow copy is a full snapshot
        return LogTable(self._values)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v.value!r}" for k, v in self._values.items())
        return f"LogTable({fields})"
